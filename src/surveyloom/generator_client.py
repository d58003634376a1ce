from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .errors import GenerationError
from .surveys.schema import SurveySpec, parse_survey


logger = logging.getLogger(__name__)

SURVEY_PROMPT = (
    "Generate a fun, engaging, and visually stunning survey. The theme should have vibrant, "
    "harmonious colors with good contrast. Include a creative title, a captivating description, "
    "and 1-2 pages, each with 2-4 varied questions (text, radio, checkbox, slider, and the new "
    "'star_rating'). Questions should be creative and use emojis (e.g., 'Rate your energy level "
    "today ⚡️'). For sliders, provide logical min/max/step values. For star_ratings, use a count "
    "of 5. Strictly adhere to the provided schema. Make it awesome!"
)

_STRING = {"type": "STRING"}
_NUMBER = {"type": "NUMBER", "nullable": True}

SURVEY_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING", "description": "Creative and engaging title for the survey."},
        "description": {"type": "STRING", "description": "A captivating description of the survey's purpose."},
        "config": {
            "type": "OBJECT",
            "properties": {
                "theme": {
                    "type": "OBJECT",
                    "properties": {
                        "primaryColor": {"type": "STRING", "description": "Primary theme color in hex format (e.g., #6200ee)."},
                        "backgroundColor": {"type": "STRING", "description": "Survey card background color in hex format (e.g., #ffffff)."},
                        "textColor": {"type": "STRING", "description": "Main text color for title/description in hex format (e.g., #121212)."},
                        "questionTextColor": {"type": "STRING", "description": "Color for question labels in hex format."},
                        "answerTextColor": {"type": "STRING", "description": "Color for answer/option text in hex format."},
                        "fontFamily": {"type": "STRING", "description": "A web-safe font family from Google Fonts (e.g., 'Roboto, sans-serif')."},
                        "borderRadius": {"type": "STRING", "description": "CSS border-radius value (e.g., '12px')."},
                    },
                    "required": [
                        "primaryColor",
                        "backgroundColor",
                        "textColor",
                        "questionTextColor",
                        "answerTextColor",
                        "fontFamily",
                        "borderRadius",
                    ],
                },
                "pages": {
                    "type": "ARRAY",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "id": _STRING,
                            "title": _STRING,
                            "questions": {
                                "type": "ARRAY",
                                "items": {
                                    "type": "OBJECT",
                                    "properties": {
                                        "id": _STRING,
                                        "type": {
                                            "type": "STRING",
                                            "description": "Type: 'text', 'textarea', 'radio', 'checkbox', 'dropdown', 'slider', or 'star_rating'.",
                                        },
                                        "label": {"type": "STRING", "description": "The question text, can include emojis."},
                                        "required": {"type": "BOOLEAN"},
                                        "options": {
                                            "type": "ARRAY",
                                            "nullable": True,
                                            "items": {
                                                "type": "OBJECT",
                                                "properties": {
                                                    "value": _STRING,
                                                    "label": {"type": "STRING", "description": "Option label, can include emojis."},
                                                },
                                                "required": ["value", "label"],
                                            },
                                        },
                                        "min": dict(_NUMBER, description="Minimum value for a slider."),
                                        "max": dict(_NUMBER, description="Maximum value for a slider."),
                                        "step": dict(_NUMBER, description="Step value for a slider."),
                                        "count": dict(_NUMBER, description="Number of stars for a star_rating question (e.g., 5)."),
                                    },
                                    "required": ["id", "type", "label", "required"],
                                },
                            },
                        },
                        "required": ["id", "title", "questions"],
                    },
                },
            },
            "required": ["theme", "pages"],
        },
    },
    "required": ["title", "description", "config"],
}


class GeneratorClient:
    """Asks a Gemini model for a fresh survey schema via the generateContent REST endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout: float = 60.0,
        prompt: str = SURVEY_PROMPT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.prompt = prompt
        self._transport = transport

    def build_payload(self) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": self.prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": SURVEY_RESPONSE_SCHEMA,
            },
        }

    async def generate(self) -> SurveySpec:
        """Generate one survey; any transport, parse or content failure raises GenerationError."""
        if not self.api_key:
            raise GenerationError("GEMINI_API_KEY is not configured")
        url = f"{self.base_url}/models/{self.model}:generateContent"
        logger.info("Requesting survey from %s", self.model)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    url,
                    json=self.build_payload(),
                    headers={"x-goog-api-key": self.api_key},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise GenerationError(f"survey generation request failed: {exc}") from exc
        except ValueError as exc:
            raise GenerationError("survey generation returned invalid JSON") from exc

        text = extract_text(data)
        try:
            payload = json.loads(text)
        except ValueError as exc:
            raise GenerationError("generated survey is not valid JSON") from exc
        try:
            return parse_survey(payload)
        except ValidationError as exc:
            raise GenerationError(f"generated survey does not match the schema: {exc}") from exc


def extract_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate of a generateContent response."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
        text = "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise GenerationError("generation response has no candidate text") from exc
    if not text.strip():
        raise GenerationError("generation response has no candidate text")
    return text
