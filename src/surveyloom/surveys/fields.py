"""Question-type handlers.

Each handler knows the default value of a question kind, how to coerce
raw input (from JSON or a posted form) into that kind's value shape and
how to validate it at submit time. ``resolve`` maps a type tag to its
handler; tags outside the closed ``QuestionType`` set resolve to ``None``
and callers fall back to ``UNSUPPORTED``.
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence, Tuple

from .schema import QuestionSpec, QuestionType


REQUIRED_MESSAGE = "This field is required"
SELECT_OPTION_MESSAGE = "Please select an option"
SELECT_AT_LEAST_ONE_MESSAGE = "Please select at least one option"
RATING_MESSAGE = "Please provide a rating"

SLIDER_DEFAULT_MIN = 0.0
SLIDER_DEFAULT_MAX = 100.0
SLIDER_DEFAULT_STEP = 1.0
SLIDER_NEUTRAL_VALUE = 50.0


def _as_number(value: float) -> float | int:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def option_values(question: QuestionSpec) -> List[str]:
    return [o.value for o in question.options or []]


def slider_bounds(question: QuestionSpec) -> Tuple[float, float, float]:
    """Effective (min, max, step) of a slider with the HTML range defaults applied."""
    lo = question.min if question.min is not None else SLIDER_DEFAULT_MIN
    hi = question.max if question.max is not None else SLIDER_DEFAULT_MAX
    if lo > hi:
        lo, hi = hi, lo
    if not math.isfinite(hi - lo):
        lo, hi = SLIDER_DEFAULT_MIN, SLIDER_DEFAULT_MAX
    step = question.step if question.step and question.step > 0 else SLIDER_DEFAULT_STEP
    if not math.isfinite((hi - lo) / step):
        step = SLIDER_DEFAULT_STEP
    return lo, hi, step


class WidgetHandler:
    """Value semantics of one question kind."""

    # Discrete inputs (star clicks) are validated as soon as they are set
    validate_on_set = False

    def default(self, question: QuestionSpec) -> Any:
        return None

    def coerce(self, question: QuestionSpec, raw: Any, current: Any) -> Any:
        return raw

    def validate(self, question: QuestionSpec, value: Any) -> Optional[str]:
        return None

    def from_form(self, question: QuestionSpec, values: Sequence[str]) -> Any:
        """Decode the values a browser posts for this question's input(s)."""
        return values[0] if values else None


class UnsupportedHandler(WidgetHandler):
    """Unknown types are rendered as a placeholder and never block submission."""


class TextHandler(WidgetHandler):
    def default(self, question: QuestionSpec) -> str:
        return ""

    def coerce(self, question: QuestionSpec, raw: Any, current: Any) -> str:
        if raw is None:
            return ""
        return raw if isinstance(raw, str) else str(raw)

    def validate(self, question: QuestionSpec, value: Any) -> Optional[str]:
        if question.required and not (value or "").strip():
            return REQUIRED_MESSAGE
        return None

    def from_form(self, question: QuestionSpec, values: Sequence[str]) -> str:
        return values[-1] if values else ""


class SingleChoiceHandler(WidgetHandler):
    """Radio groups and dropdowns: one value out of the options, or unset."""

    def coerce(self, question: QuestionSpec, raw: Any, current: Any) -> Optional[str]:
        if raw is None or raw == "":
            return None
        value = str(raw)
        allowed = option_values(question)
        if allowed and value not in allowed:
            return None
        return value

    def validate(self, question: QuestionSpec, value: Any) -> Optional[str]:
        if question.required and value is None:
            return SELECT_OPTION_MESSAGE
        return None


class MultiChoiceHandler(WidgetHandler):
    def default(self, question: QuestionSpec) -> List[str]:
        return []

    def coerce(self, question: QuestionSpec, raw: Any, current: Any) -> List[str]:
        if raw is None or raw == "":
            return []
        if isinstance(raw, (list, tuple, set, frozenset)):
            picked = {str(v) for v in raw}
        else:
            picked = {str(raw)}
        allowed = option_values(question)
        if allowed:
            # Keep option order so the answer is deterministic
            return [v for v in allowed if v in picked]
        return sorted(picked)

    def validate(self, question: QuestionSpec, value: Any) -> Optional[str]:
        if question.required and not value:
            return SELECT_AT_LEAST_ONE_MESSAGE
        return None

    def from_form(self, question: QuestionSpec, values: Sequence[str]) -> List[str]:
        return list(values)


class SliderHandler(WidgetHandler):
    """Sliders always hold a value; out-of-range input is clamped, never rejected."""

    def default(self, question: QuestionSpec) -> float | int:
        start = question.min if question.min is not None else SLIDER_NEUTRAL_VALUE
        return self.clamp(question, start)

    def coerce(self, question: QuestionSpec, raw: Any, current: Any) -> float | int:
        if isinstance(raw, bool):
            return current
        try:
            number = float(raw)
        except (TypeError, ValueError):
            return current
        if math.isnan(number):
            return current
        return self.clamp(question, number)

    def clamp(self, question: QuestionSpec, number: float) -> float | int:
        lo, hi, step = slider_bounds(question)
        max_steps = math.floor((hi - lo) / step + 1e-9)
        offset = (number - lo) / step
        if math.isinf(offset):
            steps = max_steps if offset > 0 else 0
        else:
            steps = min(max(round(offset), 0), max_steps)
        return _as_number(round(lo + steps * step, 10))


class StarRatingHandler(WidgetHandler):
    validate_on_set = True

    def default(self, question: QuestionSpec) -> int:
        return 0

    def coerce(self, question: QuestionSpec, raw: Any, current: Any) -> int:
        if raw is None or raw == "":
            return 0
        if isinstance(raw, bool):
            return current
        try:
            rating = int(float(raw))
        except (TypeError, ValueError, OverflowError):
            return current
        return min(max(rating, 0), question.count)

    def validate(self, question: QuestionSpec, value: Any) -> Optional[str]:
        if question.required and not value:
            return RATING_MESSAGE
        return None

    def from_form(self, question: QuestionSpec, values: Sequence[str]) -> Any:
        return values[0] if values else 0


UNSUPPORTED = UnsupportedHandler()

_TEXT = TextHandler()
_SINGLE_CHOICE = SingleChoiceHandler()
_MULTI_CHOICE = MultiChoiceHandler()
_SLIDER = SliderHandler()
_STAR_RATING = StarRatingHandler()


def resolve(question_type: Any) -> Optional[WidgetHandler]:
    """Return the handler for a type tag, or None when the tag is not a known type."""
    try:
        kind = QuestionType(question_type)
    except ValueError:
        return None
    match kind:
        case QuestionType.SINGLE_LINE_TEXT | QuestionType.MULTI_LINE_TEXT:
            return _TEXT
        case QuestionType.SINGLE_CHOICE | QuestionType.DROPDOWN_CHOICE:
            return _SINGLE_CHOICE
        case QuestionType.MULTI_CHOICE:
            return _MULTI_CHOICE
        case QuestionType.NUMERIC_SLIDER:
            return _SLIDER
        case QuestionType.STAR_RATING:
            return _STAR_RATING
        case _:
            return None
