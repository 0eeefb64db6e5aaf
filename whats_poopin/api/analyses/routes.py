# whats_poopin/api/analyses/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from whats_poopin.core.exceptions import AnalysisError
from whats_poopin.models.analysis import AnimalType
from whats_poopin.utils.scoring import trends_for, average_rating
from .schemas import (
    AnalyzeRequestSchema,
    AnalysisResultSchema,
    AnalysisRecordSchema,
    HistoryQuerySchema,
    has_missing_fields,
    validate_analyze_request
)

analyses_bp = Blueprint('analyses_bp', __name__)


@analyses_bp.route('/analyze', methods=['POST'])
@jwt_required()
def analyze():
    """
    업로드된 이미지 URL 을 분석합니다.
    검증 순서: 인증(데코레이터) -> 필수 필드 -> 종/URL -> 모델 호출.
    """
    user_id = get_jwt_identity()

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}

    try:
        data = AnalyzeRequestSchema().load(payload)
    except ValidationError as err:
        if has_missing_fields(payload):
            return jsonify({
                "error": "Missing required fields: imageUrl and animalType",
                "error_code": "MISSING_FIELDS",
                "details": err.messages
            }), 400
        return jsonify({
            "error": "Invalid request parameters",
            "error_code": "VALIDATION_ERROR",
            "details": err.messages
        }), 400

    try:
        animal_type = validate_analyze_request(data)
    except ValueError as e:
        return jsonify({"error": str(e), "error_code": "INVALID_PARAMETERS"}), 400

    analysis_service = current_app.services['analyses']
    try:
        result, analysis_id = analysis_service.analyze(
            user_id=user_id,
            image_url=data['image_url'],
            animal_type=animal_type,
            save=data['save'],
            is_public=data['is_public']
        )
    except AnalysisError as e:
        logging.warning(f"Analysis failed for user {user_id}: {type(e).__name__}: {e.detail}")
        return jsonify(e.to_response()), e.status_code

    response = AnalysisResultSchema().dump(result)
    response.update({
        "analysisId": analysis_id,
        "animalType": animal_type.value,
        "imageUrl": data['image_url']
    })
    return jsonify(response), 200


@analyses_bp.route('', methods=['GET'])
@jwt_required()
def get_history():
    """로그인한 사용자의 분석 기록과 요약 통계(평균, 최근 추세)를 최신순으로 조회합니다."""
    user_id = get_jwt_identity()
    query = HistoryQuerySchema().load(request.args)

    analysis_service = current_app.services['analyses']
    animal_type = AnimalType(query['animal_type']) if query['animal_type'] else None
    records = analysis_service.get_history(
        user_id, limit=query['limit'], animal_type=animal_type, since_ms=query['since']
    )

    ratings = [record.result.rating for record in records]
    trends = trends_for(ratings)
    items = AnalysisRecordSchema(many=True).dump(records)
    for item, item_trend in zip(items, trends):
        item['trend'] = item_trend

    return jsonify({
        "analyses": items,
        "stats": {
            "count": len(records),
            "averageRating": average_rating(ratings),
            "latestTrend": trends[0] if trends else None
        }
    }), 200


@analyses_bp.route('/<string:analysis_id>', methods=['GET'])
@jwt_required()
def get_analysis(analysis_id: str):
    """단일 분석 기록을 조회합니다 (본인 또는 공개 기록)."""
    user_id = get_jwt_identity()
    analysis_service = current_app.services['analyses']
    try:
        record = analysis_service.get_analysis(analysis_id, user_id)
    except LookupError as e:
        return jsonify({"error": str(e), "error_code": "ANALYSIS_NOT_FOUND"}), 404
    return jsonify(AnalysisRecordSchema().dump(record)), 200
