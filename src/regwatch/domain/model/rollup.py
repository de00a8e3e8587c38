"""Per-entity rollups: running counters plus a bounded recent-event window."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .enums import EntityType
    from .event import EventSummary

ALL_TIME_BUCKET: Final[str] = "all"


def year_bucket(summary: EventSummary) -> str:
    return f"{summary.occurred_at.year:04d}"


def _recency_key(summary: EventSummary) -> tuple[object, str]:
    return (summary.occurred_at, summary.event_id)


@dataclass(frozen=True, slots=True)
class RollupKey:
    entity_type: EntityType
    slug: str
    bucket: str = ALL_TIME_BUCKET

    def __str__(self) -> str:
        return f"{self.entity_type}:{self.slug}:{self.bucket}"


@dataclass(slots=True)
class RollupRecord:
    """Aggregate state for one ``(entity, bucket)`` pair.

    ``recent`` is kept sorted by occurrence date descending (event id breaks
    ties so the order is total) and never holds more than the window size the
    maintainer passes in. ``version`` is zero until the record is first stored.
    """

    key: RollupKey
    name: str
    event_count: int = 0
    monetary_total: Decimal = field(default_factory=lambda: Decimal(0))
    recent: list[EventSummary] = field(default_factory=list["EventSummary"])
    version: int = 0
    updated_at: datetime | None = None

    def contains(self, event_id: str) -> bool:
        return any(item.event_id == event_id for item in self.recent)

    def record(self, summary: EventSummary, *, limit: int, count: bool = True) -> bool:
        """Fold ``summary`` into the record; return whether anything changed.

        Counters move only when ``count`` is set; the caller passes it once per
        event (the creating merge ack). The window dedupes on event id on its
        own, so an uncounted replay that got here first leaves the counting
        call with only the counters to update.
        """

        if limit < 1:
            raise ValueError("Recent window size must be positive")

        if count:
            self.event_count += 1
            if summary.monetary_amount is not None:
                self.monetary_total += summary.monetary_amount

        window = list(self.recent)
        if not self.contains(summary.event_id):
            window.append(summary)
            window.sort(key=_recency_key, reverse=True)
            del window[limit:]
        changed = count or window != self.recent
        self.recent = window
        if changed:
            self.updated_at = datetime.now(UTC)
        return changed
