"""
Completion payload delivery with a bounded retry.

Delivery policy: one attempt, and if it fails (non-2xx or network error) one
more after a fixed delay. After that the payload is left alone; the local
last-payload snapshot is the learner's receipt either way. Failures are
logged and reported through ``status``; nothing is raised to the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import httpx
from loguru import logger

from .payload import Payload, store_last_payload
from .scheduler import Scheduler, TimerHandle
from .storage import KeyValueStorage


@dataclass(frozen=True)
class RetryPolicy:
    """Total attempts (first send included) and the fixed gap between them."""

    max_attempts: int = 2
    delay_seconds: float = 10.0


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RETRY_SCHEDULED = "retry_scheduled"
    DELIVERED = "delivered"
    ABANDONED = "abandoned"
    CANCELLED = "cancelled"


StatusListener = Callable[[SubmissionStatus, int], None]


class PayloadSubmitter:
    """POST completion payloads to the ingestion endpoint."""

    def __init__(
        self,
        endpoint: str,
        scheduler: Scheduler,
        storage: KeyValueStorage,
        last_payload_key: str,
        policy: RetryPolicy | None = None,
        client: httpx.Client | None = None,
        timeout_seconds: float = 15.0,
        on_status: StatusListener | None = None,
    ):
        """
        Initialize submitter.

        Args:
            endpoint: Ingestion URL
            scheduler: Scheduler used for the deferred send and the retry
            storage: Storage receiving the last-payload snapshot
            last_payload_key: Key of that snapshot
            policy: Retry policy (defaults to 2 attempts, 10s apart)
            client: Optional preconfigured HTTP client (not closed by us)
            timeout_seconds: Request timeout when we create the client
            on_status: Called with (status, attempts) on every transition
        """
        self.endpoint = endpoint
        self.scheduler = scheduler
        self.storage = storage
        self.last_payload_key = last_payload_key
        self.policy = policy or RetryPolicy()
        self.on_status = on_status
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=httpx.Timeout(timeout_seconds))

        self.status = SubmissionStatus.IDLE
        self.attempts = 0
        self._handle: TimerHandle | None = None

    # =========================================================================
    # Public API
    # =========================================================================

    def submit(self, payload: Payload) -> SubmissionStatus:
        """Store the snapshot, then send immediately."""
        self._begin(payload)
        self._attempt(payload)
        return self.status

    def submit_later(self, payload: Payload) -> SubmissionStatus:
        """Store the snapshot now; send on the scheduler's next turn."""
        self._begin(payload)
        self._handle = self.scheduler.call_later(0, self._fire, payload)
        return self.status

    def cancel(self) -> None:
        """Cancel any scheduled send or retry."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            if self.status in (SubmissionStatus.PENDING, SubmissionStatus.RETRY_SCHEDULED):
                logger.info("Payload submission cancelled after {} attempt(s)", self.attempts)
                self._set_status(SubmissionStatus.CANCELLED)

    def close(self) -> None:
        self.cancel()
        if self._owns_client:
            self.client.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _begin(self, payload: Payload) -> None:
        self.cancel()
        self.attempts = 0
        store_last_payload(self.storage, self.last_payload_key, payload)
        self._set_status(SubmissionStatus.PENDING)

    def _fire(self, payload: Payload) -> None:
        self._handle = None
        self._attempt(payload)

    def _attempt(self, payload: Payload) -> None:
        self.attempts += 1
        if self._send(payload):
            logger.info("Training record delivered for {}", payload.course_id)
            self._set_status(SubmissionStatus.DELIVERED)
            return

        if self.attempts < self.policy.max_attempts:
            logger.warning(
                "Could not save results (attempt {}/{}). Retrying in {}s...",
                self.attempts,
                self.policy.max_attempts,
                self.policy.delay_seconds,
            )
            self._handle = self.scheduler.call_later(self.policy.delay_seconds, self._fire, payload)
            self._set_status(SubmissionStatus.RETRY_SCHEDULED)
            return

        logger.error(
            "Training record for {} not delivered after {} attempts",
            payload.course_id,
            self.attempts,
        )
        self._set_status(SubmissionStatus.ABANDONED)

    def _send(self, payload: Payload) -> bool:
        try:
            response = self.client.post(self.endpoint, json=payload.to_dict())
        except httpx.HTTPError as e:
            logger.warning("Ingestion request error: {}", e)
            return False

        if not response.is_success:
            logger.warning("Ingestion endpoint returned {}", response.status_code)
            return False
        return True

    def _set_status(self, status: SubmissionStatus) -> None:
        self.status = status
        if self.on_status is not None:
            self.on_status(status, self.attempts)
