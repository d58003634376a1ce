from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .controller import FieldController
from .schema import AnswerMap, FieldErrorMap, SurveySpec


@dataclass(frozen=True)
class SubmissionResult:
    accepted: bool
    answers: AnswerMap = field(default_factory=dict)
    errors: FieldErrorMap = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.answers, ensure_ascii=False, indent=2)


class FormAggregator:
    """One FieldController per question of a survey, flattened across pages and keyed by id."""

    def __init__(self, survey: SurveySpec) -> None:
        self.survey = survey
        self._controllers: Dict[str, FieldController] = {
            q.id: FieldController(q) for q in survey.questions()
        }

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)

    @property
    def controllers(self) -> List[FieldController]:
        return list(self._controllers.values())

    def controller(self, question_id: str) -> FieldController:
        return self._controllers[question_id]

    def set_value(self, question_id: str, value: Any) -> Optional[str]:
        return self.controller(question_id).set_value(value)

    def update_from_form(self, form: Mapping[str, Sequence[str]]) -> None:
        """Apply a posted form; inputs missing from it (unchecked boxes) read as empty."""
        for question_id, ctrl in self._controllers.items():
            ctrl.set_from_form(list(form.get(question_id, ())))

    def values(self) -> AnswerMap:
        return {qid: copy.copy(ctrl.value) for qid, ctrl in self._controllers.items()}

    def errors(self) -> FieldErrorMap:
        return {qid: ctrl.error for qid, ctrl in self._controllers.items() if ctrl.error}

    def submit(self) -> SubmissionResult:
        # Validate every field so each one surfaces its own message
        errors: FieldErrorMap = {}
        for qid, ctrl in self._controllers.items():
            message = ctrl.validate()
            if message:
                errors[qid] = message
        if errors:
            return SubmissionResult(accepted=False, errors=errors)
        return SubmissionResult(accepted=True, answers=self.values())

    def reset(self) -> None:
        for ctrl in self._controllers.values():
            ctrl.reset()
