from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionType(str, Enum):
    """Closed set of question kinds the generation service may emit."""

    SINGLE_LINE_TEXT = "text"
    MULTI_LINE_TEXT = "textarea"
    SINGLE_CHOICE = "radio"
    MULTI_CHOICE = "checkbox"
    DROPDOWN_CHOICE = "dropdown"
    NUMERIC_SLIDER = "slider"
    STAR_RATING = "star_rating"


DEFAULT_STAR_COUNT = 5
MAX_STAR_COUNT = 10

AnswerMap = Dict[str, Any]
FieldErrorMap = Dict[str, str]


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


class ChoiceOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str = ""

    @model_validator(mode="before")
    @classmethod
    def _label_defaults_to_value(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if data.get("value") is not None:
                data["value"] = str(data["value"])
            if data.get("label") is None or data.get("label") == "":
                data["label"] = data.get("value")
            elif not isinstance(data["label"], str):
                data["label"] = str(data["label"])
        return data


class QuestionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: str = ""  # raw tag; unknown tags are kept and rendered as unsupported
    label: str = ""
    required: bool = False
    options: Optional[List[ChoiceOption]] = None  # for choice-like types
    min: Optional[float] = None  # slider bounds
    max: Optional[float] = None
    step: Optional[float] = None
    count: int = DEFAULT_STAR_COUNT  # stars for type="star_rating"

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("type", "label", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return str(_blank_if_none(value))

    @field_validator("required", mode="before")
    @classmethod
    def _coerce_required(cls, value: Any) -> bool:
        return value is True or (isinstance(value, str) and value.lower() == "true")

    @field_validator("options", mode="before")
    @classmethod
    def _drop_malformed_options(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [o for o in value if isinstance(o, dict) and o.get("value") is not None]

    @field_validator("min", "max", "step", mode="before")
    @classmethod
    def _numeric_or_none(cls, value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            return None
        try:
            number = float(value)
        except (ValueError, OverflowError):
            return None
        return number if math.isfinite(number) else None

    @field_validator("count", mode="before")
    @classmethod
    def _positive_count(cls, value: Any) -> int:
        if isinstance(value, bool):
            return DEFAULT_STAR_COUNT
        try:
            count = int(value)
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_STAR_COUNT
        return count if 0 < count <= MAX_STAR_COUNT else DEFAULT_STAR_COUNT

    @property
    def kind(self) -> Optional[QuestionType]:
        """The known question type, or None for tags outside the closed set."""
        try:
            return QuestionType(self.type)
        except ValueError:
            return None


class PageSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    title: str = ""
    questions: List[QuestionSpec] = Field(default_factory=list)

    @field_validator("id", "title", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return str(_blank_if_none(value))


_THEME_DEFAULTS = {
    "primaryColor": "#6200ee",
    "backgroundColor": "#ffffff",
    "textColor": "#121212",
    "questionTextColor": "#121212",
    "answerTextColor": "#333333",
    "fontFamily": "system-ui, sans-serif",
    "borderRadius": "8px",
}


class Theme(BaseModel):
    """Opaque styling tokens; only non-emptiness is enforced."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    primary_color: str = Field(default=_THEME_DEFAULTS["primaryColor"], alias="primaryColor")
    background_color: str = Field(default=_THEME_DEFAULTS["backgroundColor"], alias="backgroundColor")
    text_color: str = Field(default=_THEME_DEFAULTS["textColor"], alias="textColor")
    question_text_color: str = Field(default=_THEME_DEFAULTS["questionTextColor"], alias="questionTextColor")
    answer_text_color: str = Field(default=_THEME_DEFAULTS["answerTextColor"], alias="answerTextColor")
    font_family: str = Field(default=_THEME_DEFAULTS["fontFamily"], alias="fontFamily")
    border_radius: str = Field(default=_THEME_DEFAULTS["borderRadius"], alias="borderRadius")

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_tokens(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        # Empty or non-string tokens fall back to the defaults
        return {k: v.strip() for k, v in data.items() if isinstance(v, str) and v.strip()}


class SurveySpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    description: str = ""
    theme: Theme = Field(default_factory=Theme)
    pages: List[PageSpec]

    @model_validator(mode="before")
    @classmethod
    def _lift_config(cls, data: Any) -> Any:
        # The generation service nests theme/pages under "config"
        if isinstance(data, dict) and isinstance(data.get("config"), dict):
            data = dict(data)
            config = data.pop("config")
            for key in ("theme", "pages"):
                if key not in data and key in config:
                    data[key] = config[key]
        if isinstance(data, dict):
            for key in ("title", "description"):
                if data.get(key) is None:
                    data.pop(key, None)
            if data.get("theme") is None:
                data.pop("theme", None)
        return data

    @model_validator(mode="after")
    def _check_invariants(self) -> "SurveySpec":
        if not self.pages:
            raise ValueError("survey must have at least one page")
        seen = set()
        for q in self.questions():
            if q.id in seen:
                raise ValueError(f"duplicate question id: {q.id}")
            seen.add(q.id)
        return self

    def questions(self) -> Iterator[QuestionSpec]:
        for page in self.pages:
            yield from page.questions

    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions()]


def parse_survey(payload: Any) -> SurveySpec:
    """Validate an untrusted payload into a SurveySpec (raises pydantic.ValidationError)."""
    return SurveySpec.model_validate(payload)
