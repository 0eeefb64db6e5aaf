# whats_poopin/api/users/routes.py
import logging
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

from whats_poopin.models.user import ExternalIdentity
from .schemas import ProfileResponseSchema

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/sync', methods=['POST'])
@jwt_required()
def sync_user():
    """토큰의 사용자 정보로 프로필을 동기화합니다 (멱등)."""
    identity = ExternalIdentity.from_jwt_claims(get_jwt_identity(), get_jwt())
    sync_service = current_app.services['identity_sync']

    try:
        profile, is_new_user = sync_service.sync_user(identity)
    except Exception as e:
        logging.error(f"User sync failed for {identity.external_id}: {e}", exc_info=True)
        return jsonify({"error": "Failed to sync user", "error_code": "SYNC_FAILED"}), 500

    message = "User and profile created successfully" if is_new_user else "Profile updated successfully"
    return jsonify({
        "message": message,
        "is_new_user": is_new_user,
        "user": ProfileResponseSchema().dump(profile)
    }), 200


@users_bp.route('/me', methods=['GET'])
@jwt_required()
def get_my_profile():
    """로그인한 사용자의 동기화된 프로필을 조회합니다."""
    sync_service = current_app.services['identity_sync']
    profile = sync_service.find_profile(get_jwt_identity())
    if profile is None:
        return jsonify({"error": "Profile not found", "error_code": "PROFILE_NOT_FOUND"}), 404
    return jsonify(ProfileResponseSchema().dump(profile)), 200
