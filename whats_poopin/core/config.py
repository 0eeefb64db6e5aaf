# whats_poopin/core/config.py

import os


def _env_bool(name: str, default: bool = False) -> bool:
    """'true', '1', 'yes' 형태의 환경 변수를 bool로 해석합니다."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # API 액세스 토큰 서명 키
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # Google OAuth (외부 ID 제공자)
    GOOGLE_CLIENT_SECRETS_PATH = os.getenv('GOOGLE_CLIENT_SECRETS_PATH')
    GOOGLE_REDIRECT_URI = os.getenv('GOOGLE_REDIRECT_URI', 'postmessage')

    # Firebase (Firestore + Storage)
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # OpenAI 분석 호출 (요청당 1회 시도, 초 단위 타임아웃)
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o')
    OPENAI_TIMEOUT_SECONDS = float(os.getenv('OPENAI_TIMEOUT_SECONDS', '60'))
    OPENAI_MAX_TOKENS = int(os.getenv('OPENAI_MAX_TOKENS', '1500'))

    # 이미지 업로드 정규화
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'poop-analysis')
    UPLOAD_MAX_DIMENSION = int(os.getenv('UPLOAD_MAX_DIMENSION', '800'))
    UPLOAD_WEBP_QUALITY = int(os.getenv('UPLOAD_WEBP_QUALITY', '80'))
    UPLOAD_MAX_MB = int(os.getenv('UPLOAD_MAX_MB', '10'))
    MAX_CONTENT_LENGTH = UPLOAD_MAX_MB * 1024 * 1024

    # 클라이언트 빌드 정보. 모바일(Capacitor) 빌드는 상대 경로 대신 절대 API 주소를 사용합니다.
    MOBILE_BUILD = _env_bool('MOBILE_BUILD')
    PUBLIC_API_BASE_URL = os.getenv('PUBLIC_API_BASE_URL', '')


class DevelopmentConfig(Config):
    """개발 환경 설정입니다."""
    DEBUG = True


class TestingConfig(Config):
    """테스트 환경 설정입니다. 외부 서비스 없이 동작하도록 기본값을 채웁니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-with-enough-length-32')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET', 'test-bucket')
    OPENAI_API_KEY = 'sk-test-dummy'


class ProductionConfig(Config):
    """운영 환경 설정입니다."""
    DEBUG = False


# config_by_name: FLASK_ENV 값 또는 create_app 인자로 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
