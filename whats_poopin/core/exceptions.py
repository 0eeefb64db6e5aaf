# whats_poopin/core/exceptions.py
"""
분석 파이프라인의 실패 유형.

각 예외는 HTTP 경계에서 고정된 상태 코드와 사용자용 메시지로 변환됩니다.
원본 업스트림 오류 내용은 로그에만 남기고 클라이언트에는 절대 전달하지 않습니다.
"""


class AnalysisError(Exception):
    """분석 실패의 공통 부모 클래스."""
    status_code = 500
    error_code = "ANALYSIS_FAILED"
    user_message = "Failed to analyze image. Please try again."

    def __init__(self, detail: str = None):
        super().__init__(detail or self.user_message)
        self.detail = detail

    def to_response(self) -> dict:
        return {"error": self.user_message, "error_code": self.error_code}


class AnalysisConfigurationError(AnalysisError):
    """API 키 등 운영자 설정 누락. 호출자가 재시도해도 해결되지 않습니다."""
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"
    user_message = "Service temporarily unavailable. Please try again later."


class ContentRejectedError(AnalysisError):
    """모델이 응답을 거부했거나 빈 응답을 돌려준 경우."""
    status_code = 400
    error_code = "CONTENT_REJECTED"
    user_message = "Unable to analyze this image. Please ensure the image is clear and contains a visible sample."


class MalformedOutputError(AnalysisError):
    """JSON 파싱 실패 또는 응답 스키마 불일치. 잠시 후 재시도를 권합니다."""
    status_code = 500
    error_code = "ANALYSIS_SERVICE_ERROR"
    user_message = "Analysis service error. Please try again in a moment."


class AnalysisFailedError(AnalysisError):
    """그 밖의 전송/런타임 오류."""
