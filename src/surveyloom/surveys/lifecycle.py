"""Questionnaire lifecycle: initial load, display, background prefetch and transitions.

Everything runs on one asyncio event loop. Generation requests are the only
long-latency operations; while one is awaited the displayed form stays
interactive. A fetched survey is always written to the slot it was
requested for (``current`` for user-triggered loads, ``next`` for the
background prefetch), whatever the display has moved on to since.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Coroutine, Dict, List, Mapping, Optional, Protocol, Sequence

from ..errors import InvalidLifecycleAction
from .form import FormAggregator, SubmissionResult
from .schema import AnswerMap, SurveySpec


logger = logging.getLogger(__name__)

INITIAL_FAILURE_MESSAGE = "Failed to generate the initial survey. Please try again!"
NEXT_FAILURE_MESSAGE = "Failed to generate a new survey. Please try again!"
BUSY_LABEL = "Generating..."
READY_LABEL = "Next Survey ✨"

DARK_BACKGROUNDS = ("#121212", "#000000")
DARK_PAGE_BACKGROUND = "#212121"
LIGHT_PAGE_BACKGROUND = "#f0f2f5"


class SurveyGenerator(Protocol):
    async def generate(self) -> SurveySpec: ...


class LifecycleState(str, Enum):
    IDLE = "idle"
    LOADING_INITIAL = "loading_initial"
    DISPLAYED = "displayed"
    TRANSITIONING_OUT = "transitioning_out"
    LOADING_FALLBACK = "loading_fallback"
    ERROR = "error"


def _log_submission(answers: AnswerMap) -> None:
    logger.info("Survey answers submitted: %s", answers)


class QuestionnaireLifecycle:
    def __init__(
        self,
        generator: SurveyGenerator,
        *,
        transition_delay: float = 0.5,
        reveal_delay: float = 0.1,
        on_submit: Optional[Callable[[AnswerMap], Any]] = None,
    ) -> None:
        self._generator = generator
        self._transition_delay = transition_delay
        self._reveal_delay = reveal_delay
        self._on_submit = on_submit or _log_submission

        self.state = LifecycleState.IDLE
        self.current: Optional[SurveySpec] = None
        self.next: Optional[SurveySpec] = None
        self.visible = False
        self.form: Optional[FormAggregator] = None
        self.submission: Optional[SubmissionResult] = None
        self.error_message: Optional[str] = None

        # Single background slot: set before the task starts, cleared when it ends
        self._prefetching = False
        self._prefetch_task: Optional[asyncio.Task[None]] = None
        self._reveal_task: Optional[asyncio.Task[None]] = None
        self._action_task: Optional[asyncio.Task[None]] = None

    # --- view -------------------------------------------------------------

    @property
    def busy(self) -> bool:
        """True while a user-triggered fetch is outstanding; the next action is disabled."""
        return self.state in (LifecycleState.LOADING_INITIAL, LifecycleState.LOADING_FALLBACK)

    @property
    def prefetching(self) -> bool:
        return self._prefetching

    @property
    def action_label(self) -> str:
        return BUSY_LABEL if self.busy else READY_LABEL

    def page_background(self) -> str:
        """Background the enclosing page should use around the current survey card."""
        if self.current is None:
            return LIGHT_PAGE_BACKGROUND
        if self.current.theme.background_color.lower() in DARK_BACKGROUNDS:
            return DARK_PAGE_BACKGROUND
        return LIGHT_PAGE_BACKGROUND

    def snapshot(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "state": self.state.value,
            "visible": self.visible,
            "busy": self.busy,
            "prefetching": self._prefetching,
            "has_next": self.next is not None,
            "action_label": self.action_label,
            "page_background": self.page_background(),
            "error": self.error_message,
            "survey": None,
            "values": None,
            "field_errors": None,
            "submission": None,
        }
        if self.state is LifecycleState.DISPLAYED and self.current is not None and self.form is not None:
            data["survey"] = self.current.model_dump(by_alias=True)
            data["values"] = self.form.values()
            data["field_errors"] = self.form.errors()
            if self.submission is not None:
                data["submission"] = {
                    "accepted": self.submission.accepted,
                    "answers": self.submission.answers,
                    "errors": self.submission.errors,
                }
        return data

    # --- transitions ------------------------------------------------------

    async def start(self) -> None:
        self._begin_initial()
        await self._load_initial()

    async def request_next(self) -> None:
        """Primary action: swap in the prefetched survey, or fetch one if none is ready."""
        pending = self._begin_next()
        if pending is not None:
            await pending

    def schedule_start(self) -> None:
        """Like ``start`` but the load runs as a task; the state is LoadingInitial on return."""
        self._begin_initial()
        self._action_task = asyncio.create_task(self._load_initial())

    def schedule_next(self) -> bool:
        """Like ``request_next`` but returns once the state has moved; False when ignored."""
        pending = self._begin_next()
        if pending is None:
            return False
        self._action_task = asyncio.create_task(pending)
        return True

    def _begin_initial(self) -> None:
        if self.state is not LifecycleState.IDLE:
            raise InvalidLifecycleAction(f"cannot start from state {self.state.value}")
        self.state = LifecycleState.LOADING_INITIAL
        self.error_message = None

    def _begin_next(self) -> Optional[Coroutine[Any, Any, None]]:
        if self.state is LifecycleState.IDLE:
            self._begin_initial()
            return self._load_initial()
        if self.state not in (LifecycleState.DISPLAYED, LifecycleState.ERROR):
            logger.info("Ignoring next-survey request while %s", self.state.value)
            return None

        if self.next is not None:
            self.state = LifecycleState.TRANSITIONING_OUT
            self.visible = False
            return self._transition()

        self.state = LifecycleState.LOADING_FALLBACK
        self.visible = False
        self.error_message = None
        self.submission = None
        if self.form is not None:
            self.form.reset()
        return self._load_fallback()

    async def _load_initial(self) -> None:
        try:
            survey = await self._generator.generate()
            self._display(survey)
        except Exception:  # noqa: BLE001
            logger.exception("Initial survey generation failed")
            self._fail(INITIAL_FAILURE_MESSAGE)

    async def _load_fallback(self) -> None:
        try:
            survey = await self._generator.generate()
            self._display(survey)
        except Exception:  # noqa: BLE001
            logger.exception("Survey generation failed")
            self._fail(NEXT_FAILURE_MESSAGE)

    async def _transition(self) -> None:
        await asyncio.sleep(self._transition_delay)
        survey, self.next = self.next, None
        try:
            self._install(survey)
        except Exception:  # noqa: BLE001
            logger.exception("Could not display the prefetched survey")
            self._fail(NEXT_FAILURE_MESSAGE)
            return
        self.visible = True
        logger.info("Switched to prefetched survey %r", survey.title)
        self.prefetch()

    def _fail(self, message: str) -> None:
        # Failed loads drop the form so nothing stale can be submitted
        self.state = LifecycleState.ERROR
        self.error_message = message
        self.visible = False
        self.form = None
        self.submission = None

    def prefetch(self) -> bool:
        """Start a background fetch into the ``next`` slot.

        No-op while one is in flight or while ``next`` already holds a survey.
        """
        if self._prefetching:
            logger.debug("Prefetch already in flight")
            return False
        if self.next is not None:
            return False
        self._prefetching = True
        self._prefetch_task = asyncio.create_task(self._prefetch_next())
        return True

    async def _prefetch_next(self) -> None:
        try:
            self.next = await self._generator.generate()
            logger.info("Prefetched next survey %r", self.next.title)
        except Exception:  # noqa: BLE001
            # Never surfaced; next stays empty
            logger.warning("Failed to fetch next survey in background", exc_info=True)
        finally:
            self._prefetching = False

    def _install(self, survey: SurveySpec) -> None:
        form = FormAggregator(survey)
        self.current = survey
        self.form = form
        self.submission = None
        self.error_message = None
        self.state = LifecycleState.DISPLAYED

    def _display(self, survey: SurveySpec) -> None:
        self._install(survey)
        self.visible = False
        if self._reveal_task is not None and not self._reveal_task.done():
            self._reveal_task.cancel()
        self._reveal_task = asyncio.create_task(self._reveal())
        self.prefetch()

    async def _reveal(self) -> None:
        await asyncio.sleep(self._reveal_delay)
        if self.state is LifecycleState.DISPLAYED:
            self.visible = True

    # --- answers ----------------------------------------------------------

    def _require_form(self, action: str) -> FormAggregator:
        if self.state is not LifecycleState.DISPLAYED or self.form is None:
            raise InvalidLifecycleAction(f"cannot {action} while {self.state.value}")
        return self.form

    def set_value(self, question_id: str, value: Any) -> Optional[str]:
        return self._require_form("set a value").set_value(question_id, value)

    def update_answers(self, form: Mapping[str, Sequence[str]]) -> None:
        self._require_form("update answers").update_from_form(form)

    def submit(self) -> SubmissionResult:
        """Validate the displayed form; the lifecycle state is left unchanged."""
        result = self._require_form("submit").submit()
        self.submission = result
        if result.accepted:
            self._on_submit(result.answers)
        else:
            logger.info("Submission rejected: %s", result.errors)
        return result

    # --- shutdown ---------------------------------------------------------

    def _background_tasks(self) -> List[asyncio.Task[None]]:
        return [t for t in (self._action_task, self._prefetch_task, self._reveal_task) if t is not None and not t.done()]

    async def wait_background(self) -> None:
        """Wait until no scheduled action, reveal or prefetch task is outstanding."""
        tasks: List[Awaitable[None]] = list(self._background_tasks())
        # A finished action may have started a reveal and a prefetch of its own
        while tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            tasks = list(self._background_tasks())

    async def aclose(self) -> None:
        tasks = self._background_tasks()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
