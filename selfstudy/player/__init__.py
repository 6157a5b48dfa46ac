"""
Player: the course player engine.

Core modules:
- scoring / sampler: answer scoring and quiz sampling
- attempt_store: learner attempt state and change subscriptions
- storage / persistence: durable snapshots and restore-on-start
- scheduler: cancellable deferred callbacks
- gate: completion gate evaluation
- payload / submitter: completion record and its delivery
- controller: the navigation and quiz state machine
"""

from .attempt_store import AttemptState, AttemptStore, FinalScore, Learner, Scores
from .gate import GateStatus, evaluate_gate
from .payload import ModuleMeta, Payload, build_payload, read_last_payload
from .persistence import AttemptPersistence
from .sampler import sample
from .scheduler import AsyncioScheduler, CooperativeScheduler, ManualClock, Scheduler
from .scoring import score_multi, score_single
from .storage import JsonFileStorage, KeyValueStorage, MemoryStorage, SqliteStorage, create_storage
from .submitter import PayloadSubmitter, RetryPolicy, SubmissionStatus
from .controller import (
    AccessDecision,
    AccessPolicy,
    CourseProgress,
    Notice,
    Phase,
    PlayerController,
    QuizSession,
)

__all__ = [
    # Scoring & sampling
    "score_single",
    "score_multi",
    "sample",
    # State
    "AttemptState",
    "AttemptStore",
    "FinalScore",
    "Learner",
    "Scores",
    # Persistence
    "AttemptPersistence",
    "KeyValueStorage",
    "JsonFileStorage",
    "SqliteStorage",
    "MemoryStorage",
    "create_storage",
    # Scheduling
    "Scheduler",
    "CooperativeScheduler",
    "AsyncioScheduler",
    "ManualClock",
    # Gate
    "GateStatus",
    "evaluate_gate",
    # Payload
    "ModuleMeta",
    "Payload",
    "build_payload",
    "read_last_payload",
    "PayloadSubmitter",
    "RetryPolicy",
    "SubmissionStatus",
    # Controller
    "PlayerController",
    "Phase",
    "QuizSession",
    "Notice",
    "AccessDecision",
    "AccessPolicy",
    "CourseProgress",
]
