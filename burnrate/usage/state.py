"""Thread-safe container for the published snapshot and poll bookkeeping.

The poller is the only writer. Readers (API handlers, CLI) get frozen
snapshot instances, so nothing they do can reach back into shared state.
The lock is only held to swap/copy values, never across I/O.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from burnrate.usage.models import AppConfig, PollHealth, UsageSnapshot
from burnrate.usage.status import DisplayStatus

logger = logging.getLogger(__name__)

USAGE_UPDATED_EVENT = "usage-updated"


class PollerPhase(str, Enum):
    IDLE = "idle"
    POLLING = "polling"


@dataclass(frozen=True)
class UsageUpdate:
    """Notification emitted once per poll cycle."""

    snapshot: UsageSnapshot
    status: DisplayStatus
    title: str
    consecutive_failures: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot": self.snapshot.model_dump(mode="json"),
            "status": self.status.value,
            "title": self.title,
            "consecutive_failures": self.consecutive_failures,
        }


class UsageState:
    """Owns the current snapshot, poll health, phase and runtime config."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = UsageSnapshot()
        self._health = PollHealth()
        self._phase = PollerPhase.IDLE
        self._config = config or AppConfig()
        self._last_update: UsageUpdate | None = None
        self._subscribers: list[Callable[[UsageUpdate], Any]] = []

    # -- snapshot --------------------------------------------------------------

    def snapshot(self) -> UsageSnapshot:
        with self._lock:
            return self._snapshot

    def replace_snapshot(self, snapshot: UsageSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    def update_snapshot(self, fn: Callable[[UsageSnapshot], UsageSnapshot]) -> UsageSnapshot:
        """Apply a pure, non-blocking transform under the lock."""
        with self._lock:
            self._snapshot = fn(self._snapshot)
            return self._snapshot

    # -- health ----------------------------------------------------------------

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._health.consecutive_failures

    def record_cycle(self, updated: bool) -> int:
        """Count a stale cycle or reset after a fresh one. Returns the new count."""
        with self._lock:
            if updated:
                self._health.consecutive_failures = 0
            else:
                self._health.consecutive_failures += 1
            return self._health.consecutive_failures

    # -- phase -----------------------------------------------------------------

    @property
    def phase(self) -> PollerPhase:
        with self._lock:
            return self._phase

    def set_phase(self, phase: PollerPhase) -> None:
        with self._lock:
            self._phase = phase

    # -- config ----------------------------------------------------------------

    @property
    def config(self) -> AppConfig:
        with self._lock:
            return self._config

    def set_config(self, config: AppConfig) -> None:
        with self._lock:
            self._config = config

    # -- notifications ---------------------------------------------------------

    @property
    def last_update(self) -> UsageUpdate | None:
        with self._lock:
            return self._last_update

    def subscribe(self, callback: Callable[[UsageUpdate], Any]) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, update: UsageUpdate) -> None:
        with self._lock:
            self._last_update = update
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(update)
            except Exception:
                logger.exception("Usage subscriber error")
