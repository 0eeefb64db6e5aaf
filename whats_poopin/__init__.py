# whats_poopin/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트
# =====================================================================================
import os
import logging
from typing import Optional, Dict, Any

from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정
from whats_poopin.core.config import config_by_name

# - API 블루프린트
from whats_poopin.api.auth.routes import auth_bp
from whats_poopin.api.uploads.routes import uploads_bp
from whats_poopin.api.analyses.routes import analyses_bp
from whats_poopin.api.users.routes import users_bp
from whats_poopin.api.meta.routes import meta_bp

# - 서비스 모듈
from whats_poopin.services.storage_service import StorageService
from whats_poopin.services.openai_service import OpenAIService
from whats_poopin.api.analyses.services import AnalysisService, AnalysisRepository
from whats_poopin.api.users.services import IdentitySyncService


def build_services(app: Flask) -> Dict[str, Any]:
    """
    외부 클라이언트(Firebase, OpenAI)를 한 번만 생성하고 서비스 객체에 주입합니다.
    생성된 객체는 프로세스 수명 동안 app.services 에 보관됩니다.
    """
    if not firebase_admin._apps:
        cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase credentials file not found: {cred_path}")
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred, {
            'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
        })

    db = firestore.client()

    storage_instance = StorageService()
    storage_instance.init_app(app)

    openai_instance = OpenAIService()
    openai_instance.init_app(app)

    return {
        'storage': storage_instance,
        'openai': openai_instance,
        'analyses': AnalysisService(openai_service=openai_instance, repository=AnalysisRepository(db)),
        'identity_sync': IdentitySyncService(db),
    }


def _error(message: str, error_code: str, status: int):
    return jsonify({"error": message, "error_code": error_code}), status


def create_app(config_name: Optional[str] = None, services: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production'. 없으면 FLASK_ENV 값을 사용합니다.
    :param services: 미리 생성된 서비스 객체들. 주어지면 외부 클라이언트를 새로 만들지 않습니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    # =====================================================================================
    # 4. JWT 설정 (인증 실패는 다른 검증보다 먼저 401로 응답)
    # =====================================================================================
    jwt = JWTManager(app)

    @jwt.unauthorized_loader
    def handle_missing_token(reason):
        return _error("Unauthorized", "UNAUTHORIZED", 401)

    @jwt.invalid_token_loader
    def handle_invalid_token(reason):
        return _error("Unauthorized", "INVALID_TOKEN", 401)

    @jwt.expired_token_loader
    def handle_expired_token(jwt_header, jwt_payload):
        return _error("Unauthorized", "TOKEN_EXPIRED", 401)

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    if services is None:
        try:
            services = build_services(app)
        except Exception as e:
            logging.error(f"Failed to initialize services: {e}")
            raise
    app.services = services
    logging.info(f"Services registered: {', '.join(sorted(app.services))}")

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(uploads_bp, url_prefix='/api/uploads')
    app.register_blueprint(analyses_bp, url_prefix='/api/analyses')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(meta_bp, url_prefix='/api')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error": "Invalid request parameters", "error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        return _error(err.description, err.name.upper().replace(' ', '_'), err.code)

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외. 원본 오류 내용은 로그에만 남깁니다.
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        return _error("An unexpected server error occurred.", "INTERNAL_SERVER_ERROR", 500)

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
