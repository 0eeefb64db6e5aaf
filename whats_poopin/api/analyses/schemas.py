# whats_poopin/api/analyses/schemas.py
from marshmallow import (
    Schema, fields, validate, pre_load, post_load, validates_schema, ValidationError, EXCLUDE
)

from whats_poopin.models.analysis import (
    AnimalType, UrgencyLevel, HealthMetrics, DetailedBreakdown, AnalysisResult
)
from whats_poopin.utils.datetime_utils import DateTimeUtils
from whats_poopin.utils.scoring import health_category

SCORE_RANGE = validate.Range(min=0, max=100)


def validate_not_blank(value: str):
    if not value or not value.strip():
        raise ValidationError("Must not be blank.")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =====================================================================================
# 모델 응답 검증 (엄격: 불일치 시 거부)
# =====================================================================================
class HealthMetricsSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    color = fields.Float(required=True, validate=SCORE_RANGE)
    consistency = fields.Float(required=True, validate=SCORE_RANGE)
    shape = fields.Float(required=True, validate=SCORE_RANGE)
    frequency = fields.Float(required=True, validate=SCORE_RANGE)
    volume = fields.Float(required=True, validate=SCORE_RANGE)

    @validates_schema(pass_original=True)
    def validate_numeric(self, data, original_data, **kwargs):
        # "73.6" 같은 문자열 점수는 허용하지 않습니다.
        if isinstance(original_data, dict):
            bad = [k for k in self.fields if k in original_data and not _is_number(original_data[k])]
            if bad:
                raise ValidationError({k: ["Must be a number."] for k in bad})

    @post_load
    def make_metrics(self, data, **kwargs):
        return HealthMetrics(**data)


class DetailedBreakdownSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    color_analysis = fields.Str(data_key="colorAnalysis", allow_none=True)
    consistency_analysis = fields.Str(data_key="consistencyAnalysis", allow_none=True)
    shape_analysis = fields.Str(data_key="shapeAnalysis", allow_none=True)
    overall_health = fields.Str(data_key="overallHealth", allow_none=True)

    @post_load
    def make_breakdown(self, data, **kwargs):
        return DetailedBreakdown(**data)


class ModelReplySchema(Schema):
    """
    비전 모델이 돌려준 JSON 을 검증하고 AnalysisResult 로 변환하는 스키마.
    rating, summary, recommendations, healthMetrics 중 하나라도 없거나 형식이 다르면 거부합니다.
    """
    class Meta:
        unknown = EXCLUDE

    rating = fields.Float(required=True, validate=SCORE_RANGE)
    health_metrics = fields.Nested(HealthMetricsSchema, data_key="healthMetrics", required=True)
    summary = fields.Str(required=True, validate=validate_not_blank)
    recommendations = fields.List(
        fields.Str(validate=validate_not_blank), required=True, validate=validate.Length(min=1)
    )
    health_concerns = fields.List(fields.Str(), data_key="healthConcerns", load_default=list, allow_none=True)
    dietary_changes = fields.List(fields.Str(), data_key="dietaryChanges", load_default=list, allow_none=True)
    urgency_level = fields.Str(
        data_key="urgencyLevel",
        validate=validate.OneOf([e.value for e in UrgencyLevel]),
        load_default=None,
        allow_none=True,
    )
    detailed_breakdown = fields.Nested(
        DetailedBreakdownSchema, data_key="detailedBreakdown", load_default=None, allow_none=True
    )

    @pre_load
    def normalize_urgency(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("urgencyLevel"), str):
            data = dict(data)
            data["urgencyLevel"] = data["urgencyLevel"].strip().lower()
        return data

    @validates_schema(pass_original=True)
    def validate_rating_is_number(self, data, original_data, **kwargs):
        if isinstance(original_data, dict) and "rating" in original_data and not _is_number(original_data["rating"]):
            raise ValidationError("Must be a number.", "rating")

    @post_load
    def make_result(self, data, **kwargs):
        urgency = data.pop("urgency_level", None)
        data["health_concerns"] = data.get("health_concerns") or []
        data["dietary_changes"] = data.get("dietary_changes") or []
        return AnalysisResult(urgency_level=UrgencyLevel(urgency) if urgency else None, **data)


# =====================================================================================
# API 응답 직렬화
# =====================================================================================
class AnalysisResultSchema(Schema):
    """AnalysisResult -> camelCase JSON."""
    rating = fields.Float()
    health_metrics = fields.Nested(HealthMetricsSchema, data_key="healthMetrics", allow_none=True)
    summary = fields.Str()
    recommendations = fields.List(fields.Str())
    health_concerns = fields.List(fields.Str(), data_key="healthConcerns")
    dietary_changes = fields.List(fields.Str(), data_key="dietaryChanges")
    urgency_level = fields.Method("get_urgency_level", data_key="urgencyLevel")
    detailed_breakdown = fields.Nested(DetailedBreakdownSchema, data_key="detailedBreakdown", allow_none=True)

    def get_urgency_level(self, obj):
        urgency = getattr(obj, "urgency_level", None)
        return urgency.value if urgency else None


class AnalysisRecordSchema(Schema):
    """저장된 분석 기록(AnalysisRecord)의 응답 스키마."""
    id = fields.Str(attribute="analysis_id")
    user_id = fields.Str(data_key="userId")
    image_url = fields.Str(data_key="imageUrl")
    animal_type = fields.Function(lambda obj: obj.animal_type.value, data_key="animalType")
    created_at = fields.Int(data_key="createdAt")
    created_at_iso = fields.Function(
        lambda obj: DateTimeUtils.to_iso_string(DateTimeUtils.from_timestamp_ms(obj.created_at)),
        data_key="createdAtIso",
    )
    is_public = fields.Bool(data_key="isPublic")
    schema_version = fields.Int(data_key="schemaVersion")
    rating = fields.Float(attribute="result.rating")
    health_category = fields.Function(lambda obj: health_category(obj.result.rating), data_key="healthCategory")
    health_metrics = fields.Nested(
        HealthMetricsSchema, attribute="result.health_metrics", data_key="healthMetrics", allow_none=True
    )
    summary = fields.Str(attribute="result.summary")
    recommendations = fields.List(fields.Str(), attribute="result.recommendations")
    health_concerns = fields.List(fields.Str(), attribute="result.health_concerns", data_key="healthConcerns")
    dietary_changes = fields.List(fields.Str(), attribute="result.dietary_changes", data_key="dietaryChanges")
    urgency_level = fields.Function(
        lambda obj: obj.result.urgency_level.value if obj.result.urgency_level else None,
        data_key="urgencyLevel",
    )
    detailed_breakdown = fields.Nested(
        DetailedBreakdownSchema, attribute="result.detailed_breakdown", data_key="detailedBreakdown", allow_none=True
    )


# =====================================================================================
# API 요청 검증
# =====================================================================================
class AnalyzeRequestSchema(Schema):
    """
    POST /api/analyses/analyze 요청의 형태(shape) 검증.
    종(animalType)과 URL 형식 같은 도메인 검증은 validate_analyze_request 에서 별도로 수행합니다.
    """
    class Meta:
        unknown = EXCLUDE

    image_url = fields.Str(data_key="imageUrl", required=True, validate=validate_not_blank)
    animal_type = fields.Str(data_key="animalType", required=True, validate=validate_not_blank)
    save = fields.Bool(load_default=True)
    is_public = fields.Bool(data_key="isPublic", load_default=False)


ANALYZE_REQUIRED_FIELDS = ("imageUrl", "animalType")


def has_missing_fields(payload: dict) -> bool:
    """필수 필드가 없거나 빈 문자열이면 True. 타입이 틀린 값은 누락으로 보지 않습니다."""
    for key in ANALYZE_REQUIRED_FIELDS:
        value = payload.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            return True
    return False


_URL_VALIDATOR = validate.URL(schemes={"http", "https"}, require_tld=False)


def validate_analyze_request(data: dict) -> AnimalType:
    """
    형태 검증을 통과한 요청에 대해 도메인 검증을 수행하고 AnimalType 을 반환합니다.

    :raises ValueError: 허용되지 않는 종 또는 잘못된 URL
    """
    if data["animal_type"] not in AnimalType.values():
        raise ValueError('Invalid animalType. Must be "human" or "dog"')
    try:
        _URL_VALIDATOR(data["image_url"])
    except ValidationError:
        raise ValueError("Invalid imageUrl")
    return AnimalType(data["animal_type"])


class HistoryQuerySchema(Schema):
    """GET /api/analyses 쿼리 파라미터 스키마."""
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=50, validate=validate.Range(min=1, max=100))
    animal_type = fields.Str(data_key="animalType", load_default=None, validate=validate.OneOf(AnimalType.values()))
    since = fields.Str(load_default=None)

    @post_load
    def parse_since(self, data, **kwargs):
        since = data.get("since")
        if since:
            try:
                data["since"] = DateTimeUtils.to_timestamp_ms(DateTimeUtils.parse_iso_datetime(since))
            except ValueError:
                raise ValidationError("Invalid ISO datetime.", "since")
        return data
