# whats_poopin/api/auth/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
    get_jwt
)
from marshmallow import ValidationError

from whats_poopin.models.user import ExternalIdentity
from whats_poopin.services.google_auth_service import GoogleAuthService
from .schemas import SocialLoginSchema

auth_bp = Blueprint('auth_bp', __name__)

# 토큰에 싣는 사용자 정보 클레임
PROFILE_CLAIMS = ('email', 'given_name', 'family_name', 'picture')


@auth_bp.route('/social', methods=['POST'])
def social_login():
    """Google 로그인 후 API 토큰을 발급합니다. 프로필 동기화 실패는 로그인 실패로 이어지지 않습니다."""
    try:
        validated_data = SocialLoginSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return jsonify({"error": "Invalid login request", "error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    client_secrets_path = current_app.config.get('GOOGLE_CLIENT_SECRETS_PATH')
    if not client_secrets_path:
        logging.error("GOOGLE_CLIENT_SECRETS_PATH is not configured.")
        return jsonify({
            "error": "Service temporarily unavailable. Please try again later.",
            "error_code": "SERVICE_UNAVAILABLE"
        }), 503

    try:
        google_user_info = GoogleAuthService.exchange_code_for_user_info(
            auth_code=validated_data['auth_code'],
            client_secrets_path=client_secrets_path,
            redirect_uri=current_app.config.get('GOOGLE_REDIRECT_URI')
        )
        identity = ExternalIdentity.from_google_user_info(google_user_info or {})
    except Exception as e:
        logging.warning(f"Google auth code exchange failed: {e}")
        return jsonify({"error": "Invalid auth code", "error_code": "INVALID_AUTH_CODE"}), 401

    is_new_user = None
    internal_user_id = None
    try:
        profile, is_new_user = current_app.services['identity_sync'].sync_user(identity)
        internal_user_id = profile.internal_user_id
    except Exception as e:
        logging.error(f"Identity sync during login failed for {identity.external_id}: {e}", exc_info=True)

    claims = identity.to_claims()
    return jsonify({
        "access_token": create_access_token(identity=identity.external_id, additional_claims=claims),
        "refresh_token": create_refresh_token(identity=identity.external_id, additional_claims=claims),
        "user_id": identity.external_id,
        "is_new_user": is_new_user,
        "user_info": {
            "user_id": identity.external_id,
            "internal_user_id": internal_user_id,
            "email": identity.email,
            "first_name": identity.first_name,
            "last_name": identity.last_name,
            "image_url": identity.image_url
        }
    }), 200


@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)  # Refresh Token만 허용
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다."""
    current_user_id = get_jwt_identity()
    claims = {key: value for key, value in get_jwt().items() if key in PROFILE_CLAIMS}
    new_access_token = create_access_token(identity=current_user_id, additional_claims=claims)
    return jsonify(access_token=new_access_token), 200
