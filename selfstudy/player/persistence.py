"""
Attempt persistence: debounced snapshots and restore-on-start.

Every store change (re)arms a single timer; when it fires, the latest state
is written under the attempt key. Rapid changes inside the debounce window
collapse into one write. Durability is best effort: storage failures are
logged and the session carries on in memory.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from loguru import logger

from selfstudy.exceptions import StorageError

from .attempt_store import AttemptState, AttemptStore
from .scheduler import Scheduler, TimerHandle
from .storage import KeyValueStorage

DEFAULT_DEBOUNCE_SECONDS = 0.3


class AttemptPersistence:
    """Mirror an AttemptStore into durable storage."""

    def __init__(
        self,
        store: AttemptStore,
        storage: KeyValueStorage,
        scheduler: Scheduler,
        key: str,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.store = store
        self.storage = storage
        self.scheduler = scheduler
        self.key = key
        self.debounce_seconds = debounce_seconds
        self._pending: TimerHandle | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def start(self) -> None:
        """Begin listening for store changes."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_change)

    def stop(self) -> None:
        """Stop listening and drop any unflushed snapshot."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel_pending()

    @property
    def has_pending(self) -> bool:
        return self._pending is not None and not self._pending.cancelled()

    def cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _on_change(self, state: AttemptState) -> None:
        self.cancel_pending()
        self._pending = self.scheduler.call_later(self.debounce_seconds, self._flush_scheduled)

    def _flush_scheduled(self) -> None:
        self._pending = None
        self.flush()

    def flush(self) -> bool:
        """Write the current state now. Returns False if the write failed."""
        state = self.store.state
        try:
            self.storage.set(self.key, json.dumps(state.to_dict()))
        except (StorageError, TypeError, ValueError) as e:
            logger.error("Failed to persist attempt: {}", e)
            return False
        logger.debug(
            "Persisted attempt at module {} page {}",
            state.module_index,
            state.page_index,
        )
        return True

    def save_now(self) -> bool:
        """Cancel the debounce and write immediately (manual save)."""
        self.cancel_pending()
        return self.flush()

    def load(self) -> AttemptState | None:
        """Read the stored snapshot. Returns None if absent or unreadable."""
        try:
            raw = self.storage.get(self.key)
        except StorageError as e:
            logger.error("Failed to read saved attempt: {}", e)
            return None
        if raw is None:
            return None
        try:
            data: Any = json.loads(raw)
            return AttemptState.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Unable to restore saved attempt: {}", e)
            return None

    def restore(self) -> bool:
        """Load the stored snapshot into the store. Returns True on success."""
        state = self.load()
        if state is None:
            return False
        self.store.hydrate(state)
        logger.info(
            "Restored attempt at module {} page {}",
            state.module_index,
            state.page_index,
        )
        return True

    def clear(self) -> None:
        try:
            self.storage.remove(self.key)
        except StorageError as e:
            logger.error("Failed to clear saved attempt: {}", e)
