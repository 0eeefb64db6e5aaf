# whats_poopin/services/openai_service.py
import json
import logging
import re
from typing import Optional, Any

from flask import Flask
from marshmallow import ValidationError
from openai import OpenAI, OpenAIError

from whats_poopin.api.analyses.schemas import ModelReplySchema
from whats_poopin.core.exceptions import (
    AnalysisError,
    AnalysisConfigurationError,
    ContentRejectedError,
    MalformedOutputError,
    AnalysisFailedError,
)
from whats_poopin.models.analysis import AnimalType, AnalysisResult

ANALYSIS_PROMPT_TEMPLATE = """You are a professional veterinary and medical health analyst with expertise in digestive health assessment. Analyze this {animal_type} stool image and provide a comprehensive, precise health assessment.

IMPORTANT CONTEXT:
- The sample may appear in various environments (grass, ground, pavement, toilet, etc.)
- Lighting conditions and angles may vary
- Focus on what you can observe, even if the image quality varies

CRITICAL SCORING INSTRUCTIONS:
- DO NOT use round numbers or intervals of 5
- Provide precise decimal scores (e.g., 67.3, 82.7, 91.2)
- Base scores on actual visual evidence, not convenient numbers
- If certain aspects are unclear due to image quality, estimate based on visible features

Evaluation criteria:
1. COLOR (0-100): healthy brown variations vs concerning colors (green, black, white, red, yellow)
2. CONSISTENCY (0-100): Bristol Stool Scale assessment, ideal formed but soft vs too hard/too loose
3. SHAPE (0-100): well-formed logs vs fragmented, pellets, or shapeless
4. FREQUENCY indicators (0-100): based on visual cues about health patterns
5. VOLUME (0-100): appropriate size relative to a {animal_type}

You MUST respond with ONLY a valid JSON object in exactly this format, with no text before or after it:
{{
  "rating": <precise decimal between 0 and 100, not a multiple of 5>,
  "healthMetrics": {{
    "color": <precise decimal 0-100>,
    "consistency": <precise decimal 0-100>,
    "shape": <precise decimal 0-100>,
    "frequency": <precise decimal 0-100>,
    "volume": <precise decimal 0-100>
  }},
  "summary": "<professional 2-3 sentence summary with specific observations>",
  "recommendations": ["<specific recommendation>", "..."],
  "healthConcerns": ["<specific concern, if any>"],
  "dietaryChanges": ["<specific dietary change>", "..."],
  "urgencyLevel": "low" | "medium" | "high",
  "detailedBreakdown": {{
    "colorAnalysis": "<detailed color assessment>",
    "consistencyAnalysis": "<consistency assessment with Bristol Scale reference>",
    "shapeAnalysis": "<shape and formation assessment>",
    "overallHealth": "<comprehensive health interpretation>"
  }}
}}

Be specific to what you observe and avoid generic advice. If image quality limits certain observations, say so in the analysis but still provide the best assessment possible."""

_CODE_FENCE = re.compile(r'^```(?:json)?\s*([\s\S]*?)\s*```$')


class OpenAIService:
    """
    비전 모델 호출과 응답 검증을 담당하는 서비스 클래스.
    이미지 URL 과 종(human/dog)을 받아 검증된 AnalysisResult 를 돌려주거나,
    실패 유형별 AnalysisError 하위 예외를 발생시킵니다.
    내부 재시도는 하지 않습니다 (요청당 1회 호출).
    """

    def __init__(self, client: Optional[OpenAI] = None, model: str = "gpt-4o", max_tokens: int = 1500):
        """
        :param client: 미리 생성된 OpenAI 클라이언트. None 이면 init_app 에서 설정 값으로 생성합니다.
        """
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 OpenAI 클라이언트를 설정합니다.
        API 키가 없으면 앱은 그대로 기동하고, 분석 요청 시 설정 오류(503)로 응답합니다.

        :param app: Flask 애플리케이션 객체
        """
        self.model = app.config.get('OPENAI_MODEL', self.model)
        self.max_tokens = app.config.get('OPENAI_MAX_TOKENS', self.max_tokens)

        api_key = app.config.get('OPENAI_API_KEY')
        if not api_key:
            logging.warning("OpenAIService: OPENAI_API_KEY is not configured. Analysis requests will fail with 503.")
            return

        self.client = OpenAI(
            api_key=api_key,
            timeout=app.config.get('OPENAI_TIMEOUT_SECONDS', 60.0),
            max_retries=0,
        )
        logging.info(f"OpenAIService: initialized (model={self.model})")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    @staticmethod
    def build_prompt(animal_type: AnimalType) -> str:
        """종에 맞춰 분석 지시문을 구성합니다."""
        return ANALYSIS_PROMPT_TEMPLATE.format(animal_type=animal_type.value)

    def analyze_image(self, image_url: str, animal_type: AnimalType) -> AnalysisResult:
        """
        이미지를 분석하여 검증된 결과를 반환합니다.

        :param image_url: 추론 엔드포인트가 접근할 수 있는 이미지 URL
        :param animal_type: AnimalType.HUMAN 또는 AnimalType.DOG
        :return: 검증된 AnalysisResult
        :raises ValueError: 허용되지 않는 animal_type (호출 전에 거부)
        :raises AnalysisError: 설정 누락, 응답 거부, 응답 형식 오류, 그 밖의 실패
        """
        if not isinstance(animal_type, AnimalType):
            raise ValueError(f"Unsupported animal type: {animal_type!r}")

        if not self.client:
            raise AnalysisConfigurationError("OpenAI API key is not configured")

        logging.info(f"Requesting image analysis (animal_type={animal_type.value}, model={self.model})")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": self.build_prompt(animal_type)},
                            {
                                "type": "image_url",
                                "image_url": {"url": image_url, "detail": "high"}
                            }
                        ]
                    }
                ],
                max_tokens=self.max_tokens,
                temperature=0.1,
                response_format={"type": "json_object"}
            )
            content = self._extract_content(response)
            result = self.parse_reply(content)
        except AnalysisError:
            raise
        except OpenAIError as e:
            logging.error(f"OpenAI request failed: {e}", exc_info=True)
            raise AnalysisFailedError(str(e)) from e
        except Exception as e:
            logging.error(f"Unexpected error during image analysis: {e}", exc_info=True)
            raise AnalysisFailedError(str(e)) from e

        logging.info(f"Image analysis completed (rating={result.rating})")
        return result

    @staticmethod
    def _extract_content(response: Any) -> str:
        """응답에서 본문을 꺼냅니다. 비어 있거나 거부된 응답은 ContentRejectedError."""
        choices = getattr(response, 'choices', None) or []
        if not choices:
            logging.error("OpenAI returned no choices")
            raise ContentRejectedError("OpenAI returned no choices")

        choice = choices[0]
        message = getattr(choice, 'message', None)
        finish_reason = getattr(choice, 'finish_reason', None)
        refusal = getattr(message, 'refusal', None)
        content = getattr(message, 'content', None)

        if finish_reason == 'content_filter' or refusal:
            logging.error(f"OpenAI refused the request (finish_reason={finish_reason}, refusal={refusal})")
            raise ContentRejectedError("OpenAI refused to analyze the image")

        if not content or not content.strip():
            logging.error(f"OpenAI returned empty content (finish_reason={finish_reason})")
            raise ContentRejectedError("OpenAI returned empty response")

        return content

    @staticmethod
    def parse_reply(content: str) -> AnalysisResult:
        """
        모델 응답 문자열을 JSON 으로 파싱하고 ModelReplySchema 로 검증합니다.
        앞뒤를 감싼 마크다운 코드 블록 하나는 허용합니다.

        :raises MalformedOutputError: JSON 이 아니거나 스키마와 맞지 않는 경우
        """
        text = content.strip()
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            logging.error(f"Failed to parse JSON response ({len(content)} chars): {e}")
            raise MalformedOutputError("Invalid JSON response from OpenAI") from e

        if not isinstance(payload, dict):
            logging.error(f"OpenAI response is not a JSON object: {type(payload).__name__}")
            raise MalformedOutputError("OpenAI response is not a JSON object")

        try:
            return ModelReplySchema().load(payload)
        except ValidationError as e:
            logging.error(f"Invalid response structure from OpenAI: {e.messages}")
            raise MalformedOutputError("Invalid response structure from OpenAI") from e
