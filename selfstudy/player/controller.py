"""
Player controller: the state machine behind the course player.

Phases:
    ONBOARDING      no learner captured yet
    BROWSING        page-by-page traversal; ``can_proceed`` gates Next
    QUIZ_ACTIVE     a QuizSession is running
    MODULE_BOUNDARY a quiz just finished and its score was recorded
    COMPLETED       the last page of the last module was passed

The controller owns the AttemptStore, wires it to persistence, hands
RendererHooks to the renderer for the current page, and on completion builds
the payload and passes it to the submitter. All work happens on the caller's
thread; deferred work (snapshot writes, delivery) goes through the scheduler.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from selfstudy.config import Settings, get_settings
from selfstudy.content.models import CourseManifest, ModuleBundle, PageType
from selfstudy.exceptions import NavigationError
from selfstudy.pages import enter_page
from selfstudy.pages import respond as respond_to_page
from selfstudy.pages.base import PageRenderer, RendererHooks, RightPanel

from .attempt_store import AttemptState, AttemptStore, Learner, Scores
from .gate import GateStatus, evaluate_gate
from .payload import ModuleMeta, Payload, build_payload
from .persistence import AttemptPersistence
from .sampler import sample
from .scheduler import CooperativeScheduler, Scheduler
from .scoring import mean_percent, round_percent, score_multi, score_single
from .storage import KeyValueStorage, create_storage
from .submitter import PayloadSubmitter, RetryPolicy, SubmissionStatus


class Phase(str, Enum):
    ONBOARDING = "onboarding"
    BROWSING = "browsing"
    QUIZ_ACTIVE = "quiz_active"
    MODULE_BOUNDARY = "module_boundary"
    COMPLETED = "completed"


@dataclass
class QuizSession:
    """A running quiz. Discarded when it finishes or is abandoned."""

    module_id: str
    pool_id: str
    questions: list[Any]
    current_index: int = 0
    correct_count: int = 0
    # question index -> answered correctly at least once
    answered: dict[int, bool] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Any:
        return self.questions[self.current_index]

    @property
    def is_last(self) -> bool:
        return self.current_index >= self.total - 1

    def record(self, score: int) -> None:
        """Tally a scored answer. A question only ever counts once."""
        if score == 1 and not self.answered.get(self.current_index):
            self.correct_count += 1
        if score == 1:
            self.answered[self.current_index] = True

    def percent(self) -> int:
        if not self.total:
            return 0
        return round_percent(100 * self.correct_count / self.total)


@dataclass(frozen=True)
class Notice:
    """User-visible message (toast)."""
    level: str  # 'info', 'success', 'warning', 'error'
    message: str


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None


class AccessPolicy(Protocol):
    """Decides whether a learner may start a module's quiz."""

    def can_start(self, module_id: str) -> AccessDecision:
        ...


@dataclass(frozen=True)
class ModuleProgress:
    id: str
    title: str
    is_active: bool
    is_complete: bool


@dataclass(frozen=True)
class CourseProgress:
    modules: list[ModuleProgress]
    percentage: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlayerController:
    """Drive a learner through a course."""

    def __init__(
        self,
        course: CourseManifest,
        modules: list[ModuleBundle],
        store: AttemptStore | None = None,
        storage: KeyValueStorage | None = None,
        scheduler: Scheduler | None = None,
        submitter: PayloadSubmitter | None = None,
        renderer: PageRenderer | None = None,
        access_policy: AccessPolicy | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        if not modules:
            raise NavigationError(f"Course {course.course_id} has no modules")

        self.course = course
        self.modules = modules
        self.settings = settings or get_settings()
        self.store = store or AttemptStore()
        self.storage = storage or create_storage(self.settings)
        self.scheduler = scheduler or CooperativeScheduler()
        self.renderer = renderer
        self.access_policy = access_policy
        self.rng = rng
        self.now = now

        self.persistence = AttemptPersistence(
            self.store,
            self.storage,
            self.scheduler,
            key=self.settings.attempt_storage_key,
            debounce_seconds=self.settings.persist_debounce_seconds,
        )
        self.submitter = submitter or PayloadSubmitter(
            endpoint=self.settings.ingest_endpoint,
            scheduler=self.scheduler,
            storage=self.storage,
            last_payload_key=self.settings.last_payload_storage_key,
            policy=RetryPolicy(
                max_attempts=self.settings.max_submission_attempts,
                delay_seconds=self.settings.retry_delay_seconds,
            ),
            timeout_seconds=self.settings.ingest_timeout_seconds,
        )
        if self.submitter.on_status is None:
            self.submitter.on_status = self._on_submission_status

        self.can_proceed = False
        self.title: str | None = None
        self.right_panel: RightPanel | None = None
        self.quiz: QuizSession | None = None
        self.completed = False
        self.last_payload: Payload | None = None
        self.notices: list[Notice] = []
        self.attempt_started_at = self.now()

        self._boundary = False
        self._started = False
        self._closed = False
        self._unsubscribe: Callable[[], None] | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, restore: bool = True) -> None:
        """Restore a saved attempt (optional), start persisting, enter the page."""
        if self._started:
            return
        if restore and self.persistence.restore():
            self._clamp_position()
        self.persistence.start()
        self._unsubscribe = self.store.subscribe(self._on_state_change)
        self._started = True
        self._bind_page()

    def close(self) -> None:
        """Cancel pending snapshot and delivery timers. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.persistence.stop()
        self.submitter.close()
        logger.debug("Player for {} closed", self.course.course_id)

    def __enter__(self) -> "PlayerController":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def state(self) -> AttemptState:
        return self.store.state

    @property
    def learner(self) -> Learner | None:
        return self.store.learner

    @property
    def scores(self) -> Scores:
        return self.store.scores

    @property
    def module_index(self) -> int:
        return self.store.state.module_index

    @property
    def page_index(self) -> int:
        return self.store.state.page_index

    @property
    def current_module(self) -> ModuleBundle | None:
        if 0 <= self.module_index < len(self.modules):
            return self.modules[self.module_index]
        return None

    @property
    def current_page(self) -> Any:
        module = self.current_module
        if module is None or not 0 <= self.page_index < len(module.pages):
            return None
        return module.pages[self.page_index]

    @property
    def phase(self) -> Phase:
        if self.completed:
            return Phase.COMPLETED
        if self.learner is None:
            return Phase.ONBOARDING
        if self.quiz is not None:
            return Phase.QUIZ_ACTIVE
        if self._boundary:
            return Phase.MODULE_BOUNDARY
        return Phase.BROWSING

    def hooks(self) -> RendererHooks:
        """Callbacks for the renderer of the current page."""
        return RendererHooks(
            set_can_proceed=self._set_can_proceed,
            set_title=self._set_title,
            set_right_panel=self._set_right_panel,
            on_continue=self.continue_page,
        )

    def completion_status(self) -> GateStatus | None:
        """Gate status of the current completion page, from the latest scores."""
        page = self.current_page
        if page is None or page.type != PageType.COMPLETION.value:
            return None
        return evaluate_gate(page.requires, self.scores)

    def progress(self) -> CourseProgress:
        """Module rail plus overall page completion percentage."""
        total_pages = sum(len(m.pages) for m in self.modules) or 1
        module = self.current_module
        completed_pages = sum(len(m.pages) for m in self.modules[: self.module_index]) + min(
            self.page_index, len(module.pages) if module else 0
        )
        if self.completed:
            completed_pages = total_pages
        return CourseProgress(
            modules=[
                ModuleProgress(
                    id=m.manifest.id,
                    title=m.manifest.title,
                    is_active=i == self.module_index and not self.completed,
                    is_complete=i < self.module_index or self.completed,
                )
                for i, m in enumerate(self.modules)
            ],
            percentage=min(100, round_percent(completed_pages / total_pages * 100)),
        )

    def next_label(self) -> str:
        if self.quiz is not None:
            return "Finish quiz" if self.quiz.is_last else "Next question"
        return "Next"

    def next_disabled(self) -> bool:
        return self.completed or not self.can_proceed

    def drain_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # =========================================================================
    # Onboarding
    # =========================================================================

    def submit_onboarding(self, learner: Learner) -> None:
        """Capture the learner and (re)start the attempt clock."""
        self.attempt_started_at = self.now()
        self.store.set_learner(learner)
        logger.info("Learner {} started {}", learner.full_name, self.course.course_id)
        self._bind_page()

    # =========================================================================
    # Renderer signals
    # =========================================================================

    def continue_page(self) -> None:
        """Renderer's on_continue: start the referenced quiz or unlock Next."""
        page = self.current_page
        module = self.current_module
        if page is None or module is None or self.quiz is not None:
            return
        if page.type == PageType.QUIZ_REF.value:
            self.start_quiz(module.manifest.id, page.pool, page.count)
            return
        self.can_proceed = True

    def respond(self, response: Any) -> bool:
        """Feed a widget response for the current page (or quiz question)."""
        self._require_learner()
        if self.quiz is not None:
            return self.answer(response)
        page = self.current_page
        if page is None:
            return False
        return respond_to_page(page, response, self.hooks())

    # =========================================================================
    # Quiz
    # =========================================================================

    def start_quiz(self, module_id: str, pool_id: str, count: int) -> bool:
        """
        Sample questions and enter QUIZ_ACTIVE.

        Returns False when no quiz started: access denied, unknown module, or
        an empty pool. A denial or unknown module keeps Next locked; an empty
        pool unlocks it so the learner is never stranded on missing content.
        """
        self._require_learner()
        if self.access_policy is not None:
            decision = self.access_policy.can_start(module_id)
            if not decision.allowed:
                self._notify("error", decision.reason or "Access denied")
                logger.warning("Quiz for {} blocked: {}", module_id, decision.reason)
                self.can_proceed = False
                return False

        bundle = next((m for m in self.modules if m.manifest.id == module_id), None)
        if bundle is None:
            logger.warning("Cannot start quiz for unknown module {}", module_id)
            self.can_proceed = False
            return False

        questions = sample(bundle.pools.get(pool_id), count, self.rng)
        if not questions:
            self._notify("warning", f"No questions configured for pool {pool_id}")
            logger.warning("Pool {} in module {} is empty, skipping quiz", pool_id, module_id)
            self.can_proceed = True
            return False

        self._boundary = False
        self.quiz = QuizSession(module_id=module_id, pool_id=pool_id, questions=questions)
        logger.info("Quiz started: {} questions from {}/{}", len(questions), module_id, pool_id)
        self._bind_question()
        return True

    def answer_question(self, score: int) -> None:
        """Record a 0/1 score for the current question."""
        if self.quiz is None:
            raise NavigationError("No quiz in progress")
        self.quiz.record(score)
        self.can_proceed = score == 1

    def answer_single(self, picked: int) -> int:
        """Score a single-choice pick against the current question."""
        question = self._current_question(PageType.SINGLE_CHOICE)
        score = score_single(picked, question.answer)
        self.answer_question(score)
        return score

    def answer_multi(self, picked: list[int]) -> int:
        """Score a multi-choice selection against the current question."""
        question = self._current_question(PageType.MULTI_CHOICE)
        score = score_multi(picked, question.answers)
        self.answer_question(score)
        return score

    def answer(self, response: Any) -> bool:
        """Score a widget response for the current quiz question."""
        if self.quiz is None:
            raise NavigationError("No quiz in progress")
        return respond_to_page(self.quiz.current_question, response, self._quiz_hooks())

    # =========================================================================
    # Navigation
    # =========================================================================

    def go_next(self) -> bool:
        """Advance one step. Returns False if Next is currently blocked."""
        if self.completed:
            return False
        self._require_learner()
        if not self.can_proceed:
            return False

        if self.quiz is not None:
            if self.quiz.is_last:
                self._finish_quiz()
            else:
                self.quiz.current_index += 1
                self._bind_question()
            return True

        self._boundary = False
        self._advance()
        return True

    def go_back(self) -> bool:
        """Step back one question or page. No scores are recomputed."""
        if self.completed:
            return False
        self._require_learner()

        if self.quiz is not None:
            if self.quiz.current_index == 0:
                return False
            self.quiz.current_index -= 1
            self._bind_question()
            return True

        self._boundary = False
        if self.page_index > 0:
            self.store.to_page(self.module_index, self.page_index - 1)
        elif self.module_index > 0:
            previous = self.modules[self.module_index - 1]
            self.store.to_page(self.module_index - 1, max(0, len(previous.pages) - 1))
        else:
            return False
        self._bind_page()
        return True

    def generate_certificate(self) -> bool:
        """Completion page action; enabled only while the gate is ready."""
        status = self.completion_status()
        if status is None:
            return False
        if not status.ready:
            self._notify("warning", "Completion requirements not met yet")
            return False
        return True

    def save(self) -> bool:
        """Write the attempt snapshot now."""
        if self.persistence.save_now():
            self._notify("success", "Progress saved")
            return True
        self._notify("error", "Could not save progress")
        return False

    # =========================================================================
    # Internals
    # =========================================================================

    def _advance(self) -> None:
        module = self.current_module
        if module is not None and self.page_index < len(module.pages) - 1:
            self.store.to_page(self.module_index, self.page_index + 1)
        elif self.module_index < len(self.modules) - 1:
            self.store.to_page(self.module_index + 1, 0)
        else:
            self._complete_course()
            return
        self._bind_page()

    def _finish_quiz(self) -> None:
        quiz = self.quiz
        percent = quiz.percent()
        self.store.set_module_score(quiz.module_id, percent)
        self.quiz = None
        self._notify("success", f"Module score: {percent}%")
        logger.info("Quiz for {} finished: {}/{} ({}%)", quiz.module_id, quiz.correct_count, quiz.total, percent)
        self._advance()
        if not self.completed:
            self._boundary = True

    def _complete_course(self) -> None:
        percent = mean_percent(self.scores.modules.values())
        self.store.set_final_score(percent, self.course.pass_mark_percent)
        self.completed = True
        self.can_proceed = False
        self._notify("success", "Course complete!")

        learner = self.learner
        if learner is None:
            return

        payload = build_payload(
            course_id=self.course.course_id,
            learner=learner,
            attempt_start=self.attempt_started_at,
            scores=self.scores,
            user_agent=self.settings.user_agent,
            module_meta=[ModuleMeta.from_bundle(m) for m in self.modules],
            pass_mark_percent=self.course.pass_mark_percent,
            completed_at=self.now(),
        )
        self.last_payload = payload
        logger.info(
            "Course {} completed by {}: {}% ({})",
            self.course.course_id,
            learner.full_name,
            payload.scores.final.percent,
            "passed" if payload.scores.final.passed else "not passed",
        )
        self.submitter.submit_later(payload)

    def _bind_page(self) -> None:
        if not self._started or self.learner is None or self.quiz is not None or self.completed:
            return
        page = self.current_page
        if page is None:
            return
        hooks = self.hooks()
        enter_page(page, hooks, self.scores)
        if self.renderer is not None:
            self.renderer.render(page, hooks)

    def _bind_question(self) -> None:
        quiz = self.quiz
        self.can_proceed = False
        self.title = f"Quiz question {quiz.current_index + 1} of {quiz.total}"
        self.right_panel = None
        if self.renderer is not None:
            self.renderer.render(quiz.current_question, self._quiz_hooks())

    def _current_question(self, page_type: PageType) -> Any:
        if self.quiz is None:
            raise NavigationError("No quiz in progress")
        question = self.quiz.current_question
        if question.type != page_type.value:
            raise NavigationError(
                f"Current question is {question.type}, not {page_type.value}"
            )
        return question

    def _quiz_hooks(self) -> RendererHooks:
        """Hooks for the current question; stale once the learner moves off it."""
        session = self.quiz
        index = session.current_index

        def set_can_proceed(ok: bool) -> None:
            if self.quiz is not session or session.current_index != index:
                logger.debug("Ignoring answer for question {} of a finished or moved-on quiz", index + 1)
                return
            self.answer_question(1 if ok else 0)

        return RendererHooks(
            set_can_proceed=set_can_proceed,
            set_title=lambda title: None,
            set_right_panel=lambda panel: None,
            on_continue=lambda: None,
        )

    def _on_state_change(self, state: AttemptState) -> None:
        if self.quiz is not None or self.completed:
            return
        page = self.current_page
        if page is not None and page.type == PageType.COMPLETION.value:
            enter_page(page, self.hooks(), state.scores)

    def _on_submission_status(self, status: SubmissionStatus, attempts: int) -> None:
        if status == SubmissionStatus.DELIVERED:
            self._notify("success", "Training matrix updated")
        elif status == SubmissionStatus.RETRY_SCHEDULED:
            self._notify(
                "error",
                f"Could not save results. Retrying in {self.submitter.policy.delay_seconds:g}s...",
            )

    def _clamp_position(self) -> None:
        state = self.store.state
        module_index = state.module_index
        page_index = state.page_index
        if module_index >= len(self.modules):
            module_index, page_index = 0, 0
        pages = len(self.modules[module_index].pages)
        if page_index >= pages:
            page_index = max(0, pages - 1)
        if (module_index, page_index) != (state.module_index, state.page_index):
            logger.warning(
                "Saved position ({}, {}) is outside the course, using ({}, {})",
                state.module_index,
                state.page_index,
                module_index,
                page_index,
            )
            self.store.hydrate(replace(state, module_index=module_index, page_index=page_index))

    def _require_learner(self) -> None:
        if self.learner is None:
            raise NavigationError("Onboarding required before navigating")

    def _notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level=level, message=message))

    def _set_can_proceed(self, value: bool) -> None:
        self.can_proceed = bool(value)

    def _set_title(self, title: str | None) -> None:
        self.title = title

    def _set_right_panel(self, panel: RightPanel | None) -> None:
        self.right_panel = panel
