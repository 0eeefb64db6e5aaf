# whats_poopin/api/meta/routes.py
from flask import Blueprint, jsonify, current_app

meta_bp = Blueprint('meta_bp', __name__)


@meta_bp.route('/health', methods=['GET'])
def health():
    """서버 상태와 외부 서비스 설정 여부."""
    services = current_app.services
    return jsonify({
        "status": "ok",
        "openaiConfigured": services['openai'].is_configured,
        "storageConfigured": services['storage'].is_configured
    }), 200


@meta_bp.route('/client-config', methods=['GET'])
def client_config():
    """
    클라이언트 빌드별 API 주소.
    웹 빌드는 상대 경로(빈 문자열), 모바일 빌드는 배포된 웹 앱의 절대 주소를 사용합니다.
    """
    mobile_build = current_app.config.get('MOBILE_BUILD', False)
    return jsonify({
        "mobileBuild": mobile_build,
        "apiBaseUrl": current_app.config.get('PUBLIC_API_BASE_URL', '') if mobile_build else ''
    }), 200
