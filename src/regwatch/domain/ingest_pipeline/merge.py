"""Merge coordinator: idempotent upserts into the canonical store under bounded retry."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from regwatch.domain.errors import MergeConflictExhausted, MergeUnsupported, TransientWriteConflict
from regwatch.domain.model import MergeStrategy

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from regwatch.domain.model import EnrichmentOverlay, Event
    from regwatch.domain.ports import CanonicalEventStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergeRetryPolicy:
    """Bounded exponential backoff: ``base * 2**(attempt - 1)`` capped, plus jitter."""

    max_attempts: int = 5
    base_delay: float = 0.05
    max_delay: float = 2.0
    jitter: float = 0.05

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("delays must be non-negative")

    def backoff(self, attempt: int) -> float:
        """Deterministic part of the wait after failed attempt number ``attempt``."""

        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))

    def delay(self, attempt: int, rng: random.Random) -> float:
        return self.backoff(attempt) + rng.uniform(0.0, self.jitter)


@dataclass(frozen=True, slots=True)
class Ack:
    event_id: str
    created: bool
    attempts: int
    strategy: MergeStrategy


class MergeCoordinator:
    """Write events to a :class:`CanonicalEventStore` exactly once per identity.

    The store's atomic upsert is tried first. A ``MergeUnsupported`` answer
    switches this coordinator to delete-then-reinsert for the colliding ids
    (and stays switched). ``TransientWriteConflict`` is retried under the
    policy; running out of attempts raises ``MergeConflictExhausted``. Any
    other store error propagates untouched.
    """

    def __init__(
        self,
        store: CanonicalEventStore,
        *,
        policy: MergeRetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self.policy = policy or MergeRetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()  # noqa: S311
        self._rng_lock = threading.Lock()
        self._atomic_supported = True

    @property
    def strategy(self) -> MergeStrategy:
        return MergeStrategy.ATOMIC if self._atomic_supported else MergeStrategy.REPLACE

    def upsert(self, event: Event) -> Ack:
        delays: list[float] = []
        last_conflict: TransientWriteConflict | None = None
        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                created, strategy = self._write(event)
            except TransientWriteConflict as exc:
                last_conflict = exc
                if attempt == self.policy.max_attempts:
                    break
                with self._rng_lock:
                    wait = self.policy.delay(attempt, self._rng)
                delays.append(wait)
                log.warning(
                    "Write conflict merging %s (attempt %d/%d); retrying in %.3fs",
                    event.event_id,
                    attempt,
                    self.policy.max_attempts,
                    wait,
                )
                self._sleep(wait)
                continue
            return Ack(event.event_id, created, attempt, strategy)

        log.error(
            "Giving up on event %s after %d conflicting attempts",
            event.event_id,
            self.policy.max_attempts,
        )
        raise MergeConflictExhausted(
            event.event_id, attempts=self.policy.max_attempts, delays=delays
        ) from last_conflict

    def upsert_many(self, events: Sequence[Event]) -> list[Ack]:
        """Upsert sequentially; the first exhausted event stops the run."""

        return [self.upsert(event) for event in events]

    def apply_enrichment(self, event_id: str, overlay: EnrichmentOverlay) -> bool:
        """Write path for the enrichment collaborator; returns False for unknown ids."""

        updated = self._store.set_enrichment(event_id, overlay)
        if not updated:
            log.warning("Enrichment for unknown event %s ignored", event_id)
        return updated

    def _write(self, event: Event) -> tuple[bool, MergeStrategy]:
        if self._atomic_supported:
            try:
                return self._store.upsert(event), MergeStrategy.ATOMIC
            except MergeUnsupported:
                log.warning(
                    "Canonical store rejected atomic merge; falling back to delete-then-reinsert"
                )
                self._atomic_supported = False
        created = self._store.replace([event])
        return created.get(event.event_id, False), MergeStrategy.REPLACE
