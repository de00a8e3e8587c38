"""Aggregate maintainer: incremental per-entity rollups at ingestion time."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from regwatch.domain.errors import RollupConflict
from regwatch.domain.model import ALL_TIME_BUCKET, RollupKey, RollupRecord, year_bucket

if TYPE_CHECKING:
    from regwatch.domain.model import EntityRef, Event, EventSummary
    from regwatch.domain.ports import RollupStore

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RollupOutcome:
    updated: list[RollupKey] = field(default_factory=list[RollupKey])
    unchanged: list[RollupKey] = field(default_factory=list[RollupKey])
    failed: list[RollupKey] = field(default_factory=list[RollupKey])

    @property
    def ok(self) -> bool:
        return not self.failed


class AggregateMaintainer:
    """Fold merged events into company/city/state/nation rollups.

    Each ``(entity, bucket)`` record is updated with an optimistic
    read-modify-write; version conflicts are retried a bounded number of times.
    A failing record is logged and skipped; the canonical event write it
    follows is never undone.
    """

    def __init__(
        self,
        store: RollupStore,
        *,
        recent_limit: int = 5,
        max_attempts: int = 3,
        yearly_buckets: bool = True,
    ) -> None:
        if recent_limit < 1:
            raise ValueError("recent_limit must be positive")
        self._store = store
        self.recent_limit = recent_limit
        self._max_attempts = max_attempts
        self._yearly_buckets = yearly_buckets

    def buckets_for(self, summary: EventSummary) -> tuple[str, ...]:
        if self._yearly_buckets:
            return (ALL_TIME_BUCKET, year_bucket(summary))
        return (ALL_TIME_BUCKET,)

    def apply(self, event: Event, *, count: bool = True) -> RollupOutcome:
        """Record ``event`` everywhere it belongs.

        ``count`` should be the merge ack's ``created`` flag so redelivered
        events refresh the recent window without inflating counters.
        """

        summary = event.summary()
        outcome = RollupOutcome()
        for ref in event.entity_refs():
            for bucket in self.buckets_for(summary):
                key = RollupKey(ref.entity_type, ref.slug, bucket)
                try:
                    changed = self._update(key, ref, summary, count=count)
                except Exception:
                    log.exception("Rollup update failed for %s (event %s)", key, event.event_id)
                    outcome.failed.append(key)
                    continue
                (outcome.updated if changed else outcome.unchanged).append(key)
        return outcome

    def _update(
        self, key: RollupKey, ref: EntityRef, summary: EventSummary, *, count: bool
    ) -> bool:
        for attempt in range(1, self._max_attempts + 1):
            record = self._store.get(key) or RollupRecord(key=key, name=ref.name or ref.slug)
            changed = record.record(summary, limit=self.recent_limit, count=count)
            if not changed:
                return False
            try:
                self._store.save(record)
            except RollupConflict:
                if attempt == self._max_attempts:
                    raise
                log.debug("Rollup %s changed underneath us, re-reading (attempt %d)", key, attempt)
                continue
            return True
        return False
