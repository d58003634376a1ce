from __future__ import annotations

from typing import Any, Optional, Sequence

from .fields import UNSUPPORTED, WidgetHandler, resolve
from .schema import QuestionSpec


class FieldController:
    """Owns the authoritative value and error state of one question."""

    def __init__(self, question: QuestionSpec) -> None:
        self.question = question
        handler = resolve(question.type)
        self.supported = handler is not None
        self.handler: WidgetHandler = handler or UNSUPPORTED
        self.value: Any = self.handler.default(question)
        self.error: Optional[str] = None

    @property
    def id(self) -> str:
        return self.question.id

    def set_value(self, value: Any) -> Optional[str]:
        """Update the value and clear the error; star ratings re-validate immediately."""
        self.value = self.handler.coerce(self.question, value, self.value)
        self.error = None
        if self.handler.validate_on_set:
            self.error = self.handler.validate(self.question, self.value)
        return self.error

    def set_from_form(self, values: Sequence[str]) -> Optional[str]:
        return self.set_value(self.handler.from_form(self.question, values))

    def validate(self) -> Optional[str]:
        self.error = self.handler.validate(self.question, self.value)
        return self.error

    def reset(self) -> None:
        self.value = self.handler.default(self.question)
        self.error = None

    def __repr__(self) -> str:
        return f"FieldController(id={self.id!r}, type={self.question.type!r}, value={self.value!r})"
