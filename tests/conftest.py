"""Shared builders for surveys and a scripted generation collaborator."""

import asyncio
import threading
from typing import Any, Dict, List, Optional, Union

import pytest

from surveyloom.surveys.schema import SurveySpec, parse_survey


def make_survey(*questions: Dict[str, Any], title: str = "Survey", pages: Optional[List[Dict[str, Any]]] = None, **extra: Any) -> SurveySpec:
    """Build a one-page survey from question dicts (or use explicit pages)."""
    payload: Dict[str, Any] = {
        "title": title,
        "description": f"{title} description",
        "config": {
            "theme": {"primaryColor": "#6200ee", "backgroundColor": "#ffffff"},
            "pages": pages if pages is not None else [{"id": "p1", "title": "Page 1", "questions": list(questions)}],
        },
    }
    payload.update(extra)
    return parse_survey(payload)


class FakeGenerator:
    """Returns scripted outcomes; calls past the script yield numbered surveys.

    ``gates`` maps a call index to an event the call waits on first, so tests
    decide when a given request completes. A threading.Event can be set from
    outside the loop, e.g. by a test driving a TestClient.
    """

    def __init__(self, outcomes: Optional[List[Any]] = None) -> None:
        self.outcomes = list(outcomes or [])
        self.calls = 0
        self.gates: Dict[int, Union[asyncio.Event, threading.Event]] = {}

    async def generate(self) -> SurveySpec:
        index = self.calls
        self.calls += 1
        gate = self.gates.get(index)
        if isinstance(gate, threading.Event):
            await asyncio.to_thread(gate.wait, 5)
        elif gate is not None:
            await gate.wait()
        outcome = self.outcomes[index] if index < len(self.outcomes) else None
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            outcome = make_survey(
                {"id": "q1", "type": "text", "label": "Name", "required": True},
                title=f"Survey {index + 1}",
            )
        return outcome


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()
