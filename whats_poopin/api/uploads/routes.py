# whats_poopin/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

# 이 블루프린트에 속한 API는 '/api/uploads' 접두사 URL을 갖습니다.
uploads_bp = Blueprint('uploads', __name__)


@uploads_bp.route('', methods=['POST'])
@jwt_required()
def upload_image():
    """
    분석할 이미지를 multipart/form-data 의 'file' 필드로 받아 정규화 후 업로드합니다.
    응답: {"url": 공개 URL, "publicId": 저장 경로}
    """
    user_id = get_jwt_identity()

    file = request.files.get('file')
    if file is None or not file.filename:
        return jsonify({"error": "No file provided", "error_code": "NO_FILE"}), 400

    storage_service = current_app.services['storage']

    try:
        uploaded = storage_service.upload_analysis_image(user_id, file.read())
    except ValueError as e:
        logging.warning(f"Upload rejected for user {user_id}: {e}")
        return jsonify({"error": "Unsupported image file", "error_code": "INVALID_IMAGE"}), 400
    except Exception as e:
        logging.error(f"Image upload failed for user {user_id}: {e}", exc_info=True)
        return jsonify({
            "error": "Failed to upload image. Please try again.",
            "error_code": "UPLOAD_FAILED"
        }), 500

    return jsonify({"url": uploaded['url'], "publicId": uploaded['public_id']}), 200
