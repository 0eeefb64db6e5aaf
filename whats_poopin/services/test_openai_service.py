# whats_poopin/services/test_openai_service.py
"""
비전 모델 어댑터 테스트 (OpenAI 클라이언트는 MagicMock)

사용법: python -m pytest whats_poopin/services/test_openai_service.py -v
"""
import json
from unittest.mock import MagicMock

import pytest
from flask import Flask
from openai import OpenAIError

from whats_poopin.core.exceptions import (
    AnalysisConfigurationError,
    ContentRejectedError,
    MalformedOutputError,
    AnalysisFailedError,
)
from whats_poopin.models.analysis import AnimalType, UrgencyLevel
from whats_poopin.services import openai_service as openai_service_module
from whats_poopin.services.openai_service import OpenAIService

IMAGE_URL = "https://storage.googleapis.com/test-bucket/poop-analysis/u1/sample.webp"


def _service_returning(completion, content, **kwargs):
    client = MagicMock()
    client.chat.completions.create.return_value = completion(content, **kwargs)
    return OpenAIService(client=client), client


def test_analyze_image_returns_validated_result(openai_client):
    """정상 응답은 rating 정밀도를 그대로 유지한 결과로 변환되어야 함"""
    service = OpenAIService(client=openai_client)

    result = service.analyze_image(IMAGE_URL, AnimalType.DOG)

    assert result.rating == 73.6
    assert result.summary.startswith("Well-formed")
    assert result.recommendations == ["Increase water intake", "Add more fiber to meals"]
    assert result.health_metrics.consistency == 68.4
    assert result.urgency_level == UrgencyLevel.LOW
    assert result.detailed_breakdown.consistency_analysis == "Bristol type 3."


def test_request_payload(openai_client):
    """이미지 + 지시문, JSON 모드, 단일 호출"""
    service = OpenAIService(client=openai_client, model="gpt-4o")
    service.analyze_image(IMAGE_URL, AnimalType.HUMAN)

    openai_client.chat.completions.create.assert_called_once()
    kwargs = openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["response_format"] == {"type": "json_object"}
    content = kwargs["messages"][0]["content"]
    assert content[1]["image_url"] == {"url": IMAGE_URL, "detail": "high"}
    assert "human stool image" in content[0]["text"]


def test_prompt_embeds_schema_and_precision_rules():
    prompt = OpenAIService.build_prompt(AnimalType.DOG)

    assert "dog" in prompt
    for key in ("rating", "healthMetrics", "summary", "recommendations", "urgencyLevel"):
        assert f'"{key}"' in prompt
    assert "DO NOT use round numbers or intervals of 5" in prompt


def test_invalid_animal_type_rejected_before_call(openai_client):
    service = OpenAIService(client=openai_client)

    with pytest.raises(ValueError):
        service.analyze_image(IMAGE_URL, "cat")

    openai_client.chat.completions.create.assert_not_called()


def test_missing_client_is_configuration_error():
    service = OpenAIService(client=None)

    with pytest.raises(AnalysisConfigurationError) as exc_info:
        service.analyze_image(IMAGE_URL, AnimalType.DOG)

    assert exc_info.value.status_code == 503


@pytest.mark.parametrize("content", [None, "", "   \n"])
def test_empty_content_is_content_rejected(completion, content):
    service, _ = _service_returning(completion, content)

    with pytest.raises(ContentRejectedError):
        service.analyze_image(IMAGE_URL, AnimalType.HUMAN)


def test_content_filter_is_content_rejected(completion, valid_reply):
    service, _ = _service_returning(completion, json.dumps(valid_reply), finish_reason="content_filter")

    with pytest.raises(ContentRejectedError):
        service.analyze_image(IMAGE_URL, AnimalType.HUMAN)


def test_refusal_is_content_rejected(completion):
    service, _ = _service_returning(completion, None, refusal="I can't help with that.")

    with pytest.raises(ContentRejectedError):
        service.analyze_image(IMAGE_URL, AnimalType.HUMAN)


def test_unparseable_json_is_malformed_not_rejected(completion):
    """파싱 실패는 응답 거부와 다른 유형이어야 함"""
    service, _ = _service_returning(completion, '{"rating": 73.6, "summary": ')

    with pytest.raises(MalformedOutputError) as exc_info:
        service.analyze_image(IMAGE_URL, AnimalType.HUMAN)

    assert not isinstance(exc_info.value, ContentRejectedError)
    assert exc_info.value.status_code == 500


def test_non_object_json_is_malformed(completion):
    service, _ = _service_returning(completion, '[1, 2, 3]')

    with pytest.raises(MalformedOutputError):
        service.analyze_image(IMAGE_URL, AnimalType.DOG)


@pytest.mark.parametrize("mutate", [
    lambda r: r.pop("healthMetrics"),
    lambda r: r.pop("summary"),
    lambda r: r.update(summary="  "),
    lambda r: r.update(recommendations=[]),
    lambda r: r.update(rating="73.6"),
    lambda r: r.update(rating=True),
    lambda r: r.update(rating=104.2),
    lambda r: r["healthMetrics"].pop("volume"),
    lambda r: r["healthMetrics"].update(color="high"),
    lambda r: r.update(urgencyLevel="critical"),
])
def test_schema_mismatch_is_malformed(completion, valid_reply, mutate):
    mutate(valid_reply)
    service, _ = _service_returning(completion, json.dumps(valid_reply))

    with pytest.raises(MalformedOutputError):
        service.analyze_image(IMAGE_URL, AnimalType.DOG)


def test_optional_fields_default(completion, valid_reply):
    for key in ("healthConcerns", "dietaryChanges", "urgencyLevel", "detailedBreakdown"):
        valid_reply.pop(key)
    service, _ = _service_returning(completion, json.dumps(valid_reply))

    result = service.analyze_image(IMAGE_URL, AnimalType.DOG)

    assert result.health_concerns == []
    assert result.dietary_changes == []
    assert result.urgency_level is None
    assert result.detailed_breakdown is None


def test_code_fenced_json_is_accepted(completion, valid_reply):
    fenced = "```json\n" + json.dumps(valid_reply) + "\n```"
    service, _ = _service_returning(completion, fenced)

    assert service.analyze_image(IMAGE_URL, AnimalType.DOG).rating == 73.6


def test_urgency_level_is_case_insensitive(completion, valid_reply):
    valid_reply["urgencyLevel"] = "High"
    service, _ = _service_returning(completion, json.dumps(valid_reply))

    assert service.analyze_image(IMAGE_URL, AnimalType.DOG).urgency_level == UrgencyLevel.HIGH


@pytest.mark.parametrize("error", [OpenAIError("connection reset"), RuntimeError("boom")])
def test_transport_errors_are_generic_failures(error):
    client = MagicMock()
    client.chat.completions.create.side_effect = error
    service = OpenAIService(client=client)

    with pytest.raises(AnalysisFailedError) as exc_info:
        service.analyze_image(IMAGE_URL, AnimalType.DOG)

    assert exc_info.value.to_response() == {
        "error": "Failed to analyze image. Please try again.",
        "error_code": "ANALYSIS_FAILED"
    }
    # 내부 재시도 없음
    assert client.chat.completions.create.call_count == 1


# =====================================================================================
# init_app: 클라이언트 생성 설정
# =====================================================================================
def _flask_app(**config):
    app = Flask(__name__)
    app.config.update(config)
    return app


def test_init_app_builds_client_with_timeout_and_no_retries(monkeypatch):
    client_class = MagicMock()
    monkeypatch.setattr(openai_service_module, 'OpenAI', client_class)
    app = _flask_app(OPENAI_API_KEY='sk-live', OPENAI_TIMEOUT_SECONDS=12.5, OPENAI_MODEL='gpt-4o-mini')

    service = OpenAIService()
    service.init_app(app)

    client_class.assert_called_once_with(api_key='sk-live', timeout=12.5, max_retries=0)
    assert service.client is client_class.return_value
    assert service.model == 'gpt-4o-mini'
    assert service.is_configured is True


def test_init_app_without_key_keeps_app_running(monkeypatch):
    client_class = MagicMock()
    monkeypatch.setattr(openai_service_module, 'OpenAI', client_class)

    service = OpenAIService()
    service.init_app(_flask_app(OPENAI_API_KEY=None))

    client_class.assert_not_called()
    assert service.is_configured is False
    with pytest.raises(AnalysisConfigurationError):
        service.analyze_image(IMAGE_URL, AnimalType.HUMAN)
