from __future__ import annotations

import base64
import json
import logging

from openai import OpenAI, OpenAIError

from balancewise.application.ports.vision_port import VisionPort
from balancewise.domain.entities.diet import DietAnalysis
from balancewise.domain.exceptions import AnalysisFailedError


logger = logging.getLogger(__name__)

FOOD_ANALYSIS_PROMPT = """Analyze this food image and provide nutritional estimates in JSON format.
Return ONLY a JSON object with these exact fields:
{
  "food_name": "Brief description of the food items",
  "calories": estimated total calories (number),
  "protein": estimated protein in grams (number),
  "fat": estimated fat in grams (number),
  "carbs": estimated carbohydrates in grams (number)
}

Provide your best estimates based on typical portion sizes. Do not include any explanation, only return the JSON object."""


class OpenAIVisionClient(VisionPort):
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: float,
        max_completion_tokens: int = 500,
        client: OpenAI | None = None,
    ):
        self._client = client or OpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        self._model = model
        self._max_completion_tokens = max_completion_tokens

    def analyze_food(self, *, image: bytes, mime_type: str) -> DietAnalysis:
        b64_image = base64.b64encode(image).decode("utf-8")
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": FOOD_ANALYSIS_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime_type};base64,{b64_image}"},
                            },
                        ],
                    }
                ],
                max_completion_tokens=self._max_completion_tokens,
            )
        except OpenAIError as exc:
            logger.error("openai_vision_client: request failed error=%s", exc)
            raise AnalysisFailedError("openai api request failed") from exc

        if not response.choices:
            raise AnalysisFailedError("no response from openai")

        content = response.choices[0].message.content or ""
        return parse_analysis(content)


def parse_analysis(content: str) -> DietAnalysis:
    body = _strip_code_fence(content)
    try:
        payload = json.loads(body)
        return DietAnalysis(
            food_name=str(payload.get("food_name") or ""),
            calories=float(payload.get("calories") or 0),
            protein=float(payload.get("protein") or 0),
            fat=float(payload.get("fat") or 0),
            carbs=float(payload.get("carbs") or 0),
        )
    except (ValueError, TypeError, AttributeError) as exc:
        raise AnalysisFailedError("failed to parse openai response") from exc


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()
