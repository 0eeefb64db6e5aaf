# whats_poopin/api/analyses/services.py
import logging
import uuid
from typing import Optional, List, Tuple

from firebase_admin import firestore

from whats_poopin.models.analysis import AnalysisRecord, AnalysisResult, AnimalType
from whats_poopin.services.openai_service import OpenAIService
from whats_poopin.utils.datetime_utils import DateTimeUtils


class AnalysisRepository:
    """Firestore 'analyses' 컬렉션 접근을 전담하는 저장소. 기록은 생성만 하고 수정하지 않습니다."""

    def __init__(self, db):
        """
        :param db: Firestore 클라이언트 (프로세스 수명 동안 공유)
        """
        self.analyses_ref = db.collection('analyses')

    def save(self, record: AnalysisRecord) -> str:
        """분석 기록을 새 문서로 저장하고 문서 ID 를 반환합니다."""
        self.analyses_ref.document(record.analysis_id).set(record.to_dict())
        logging.info(f"Firestore save succeeded (Collection: analyses, Doc ID: {record.analysis_id})")
        return record.analysis_id

    def get(self, analysis_id: str) -> Optional[AnalysisRecord]:
        doc = self.analyses_ref.document(analysis_id).get()
        if not doc.exists:
            return None
        try:
            return AnalysisRecord.from_dict(doc.to_dict())
        except (KeyError, TypeError, ValueError) as e:
            logging.warning(f"Unreadable analysis document {analysis_id}: {e}")
            return None

    def list_for_user(self, user_id: str, limit: int = 50,
                      animal_type: Optional[AnimalType] = None,
                      since_ms: Optional[int] = None) -> List[AnalysisRecord]:
        """사용자의 분석 기록을 최신순으로 조회합니다."""
        query = self.analyses_ref.where('user_id', '==', user_id)
        if animal_type:
            query = query.where('animal_type', '==', animal_type.value)
        if since_ms is not None:
            query = query.where('created_at', '>=', since_ms)
        query = query.order_by('created_at', direction=firestore.Query.DESCENDING).limit(limit)

        records = []
        for doc in query.stream():
            try:
                records.append(AnalysisRecord.from_dict(doc.to_dict()))
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"Skipping unreadable analysis document {doc.id}: {e}")
        return records


class AnalysisService:
    """
    분석 요청 처리 서비스.
    모델 호출(실패 시 예외 전파)과 결과 저장(실패해도 요청은 성공)을 순서대로 수행합니다.
    """

    def __init__(self, openai_service: OpenAIService, repository: AnalysisRepository):
        self.openai_service = openai_service
        self.repository = repository
        logging.info("AnalysisService initialized with dependencies.")

    def analyze(self, user_id: str, image_url: str, animal_type: AnimalType,
                save: bool = True, is_public: bool = False) -> Tuple[AnalysisResult, Optional[str]]:
        """
        이미지를 분석하고, 요청 시 결과를 저장합니다.

        :return: (검증된 분석 결과, 저장된 기록 ID 또는 None)
        :raises AnalysisError: 분석 실패 (저장 실패는 예외를 발생시키지 않음)
        """
        result = self.openai_service.analyze_image(image_url, animal_type)

        if not save:
            return result, None

        record = AnalysisRecord(
            analysis_id=str(uuid.uuid4()),
            user_id=user_id,
            image_url=image_url,
            animal_type=animal_type,
            created_at=DateTimeUtils.now_ms(),
            result=result,
            is_public=is_public,
        )
        try:
            analysis_id = self.repository.save(record)
        except Exception as e:
            # 저장 실패는 분석 결과 반환을 막지 않음
            logging.error(f"Failed to save analysis result for user {user_id}: {e}", exc_info=True)
            analysis_id = None
        return result, analysis_id

    def get_history(self, user_id: str, limit: int = 50,
                    animal_type: Optional[AnimalType] = None,
                    since_ms: Optional[int] = None) -> List[AnalysisRecord]:
        return self.repository.list_for_user(user_id, limit=limit, animal_type=animal_type, since_ms=since_ms)

    def get_analysis(self, analysis_id: str, user_id: str) -> AnalysisRecord:
        """
        단일 분석 기록을 조회합니다. 본인 기록이거나 공개된 기록만 볼 수 있습니다.

        :raises LookupError: 기록이 없거나 볼 권한이 없는 경우
        """
        record = self.repository.get(analysis_id)
        if record is None or (record.user_id != user_id and not record.is_public):
            raise LookupError("Analysis not found.")
        return record
