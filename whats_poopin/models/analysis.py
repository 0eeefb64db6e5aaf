# whats_poopin/models/analysis.py
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any

# 저장 레코드 스키마 버전
# 1: rating, summary, recommendations 만 존재하던 초기 레코드
# 2: healthMetrics, urgencyLevel 등 상세 필드 포함
LEGACY_SCHEMA_VERSION = 1
CURRENT_SCHEMA_VERSION = 2


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """dataclass 에 정의된 키만 남깁니다."""
    return {k: v for k, v in data.items() if k in cls.__dataclass_fields__}


class AnimalType(Enum):
    HUMAN = "human"
    DOG = "dog"

    @classmethod
    def values(cls) -> List[str]:
        return [e.value for e in cls]


class UrgencyLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class HealthMetrics:
    """세부 점수 (각 0-100)."""
    color: float
    consistency: float
    shape: float
    frequency: float
    volume: float


@dataclass
class DetailedBreakdown:
    color_analysis: Optional[str] = None
    consistency_analysis: Optional[str] = None
    shape_analysis: Optional[str] = None
    overall_health: Optional[str] = None


@dataclass
class AnalysisResult:
    """
    모델 응답을 검증한 뒤의 분석 결과.
    ModelReplySchema 검증을 통과한 경우에만 생성됩니다.
    """
    rating: float
    summary: str
    recommendations: List[str]
    health_metrics: Optional[HealthMetrics] = None
    health_concerns: List[str] = field(default_factory=list)
    dietary_changes: List[str] = field(default_factory=list)
    urgency_level: Optional[UrgencyLevel] = None
    detailed_breakdown: Optional[DetailedBreakdown] = None


@dataclass
class AnalysisRecord:
    """
    Firestore 'analyses' 컬렉션의 문서 구조.
    한 번 생성된 뒤에는 수정되지 않습니다.
    """
    analysis_id: str
    user_id: str
    image_url: str
    animal_type: AnimalType
    created_at: int  # epoch millis
    result: AnalysisResult
    is_public: bool = False
    schema_version: int = CURRENT_SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Firestore 저장용 딕셔너리로 변환합니다 (결과 필드는 최상위로 펼침)."""
        data = asdict(self.result)
        data['urgency_level'] = self.result.urgency_level.value if self.result.urgency_level else None
        data.update({
            'analysis_id': self.analysis_id,
            'user_id': self.user_id,
            'image_url': self.image_url,
            'animal_type': self.animal_type.value,
            'created_at': self.created_at,
            'is_public': self.is_public,
            'schema_version': self.schema_version,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisRecord":
        """
        Firestore 문서로부터 레코드를 복원합니다.
        schema_version 이 없는 문서는 버전 1(초기 스키마)로 간주하고,
        없는 선택 필드는 None 또는 빈 리스트로 채웁니다.

        :raises ValueError: rating 이 숫자가 아닌 경우
        :raises KeyError: analysis_id 또는 user_id 가 없는 경우
        """
        version = data.get('schema_version') or LEGACY_SCHEMA_VERSION

        rating = data.get('rating')
        if isinstance(rating, bool) or not isinstance(rating, (int, float)):
            raise ValueError(f"rating must be a number: {rating!r}")

        metrics = data.get('health_metrics')
        health_metrics = HealthMetrics(**_known_fields(HealthMetrics, metrics)) if isinstance(metrics, dict) else None

        breakdown = data.get('detailed_breakdown')
        detailed_breakdown = (
            DetailedBreakdown(**_known_fields(DetailedBreakdown, breakdown)) if isinstance(breakdown, dict) else None
        )

        urgency = data.get('urgency_level')
        try:
            urgency_level = UrgencyLevel(urgency) if urgency else None
        except ValueError:
            logging.warning(f"Unknown urgency level '{urgency}' on analysis {data.get('analysis_id')}")
            urgency_level = None

        result = AnalysisResult(
            rating=rating,
            summary=data.get('summary', ''),
            recommendations=list(data.get('recommendations') or []),
            health_metrics=health_metrics,
            health_concerns=list(data.get('health_concerns') or []),
            dietary_changes=list(data.get('dietary_changes') or []),
            urgency_level=urgency_level,
            detailed_breakdown=detailed_breakdown,
        )
        return cls(
            analysis_id=data['analysis_id'],
            user_id=data['user_id'],
            image_url=data.get('image_url', ''),
            animal_type=AnimalType(data.get('animal_type', AnimalType.HUMAN.value)),
            created_at=int(data.get('created_at') or 0),
            result=result,
            is_public=bool(data.get('is_public', False)),
            schema_version=int(version),
        )
