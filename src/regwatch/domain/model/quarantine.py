"""Rows held back from the canonical store pending manual review."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .dataset import canonical_json, digest

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .dataset import DatasetKey
    from .enums import QuarantineReason


def quarantine_row_id(dataset: DatasetKey, raw: Mapping[str, Any]) -> str:
    """Stable id so redelivered rows land on the same quarantine entry."""

    return digest("quarantine", dataset.source, dataset.variant, canonical_json(raw))


@dataclass(frozen=True, slots=True)
class QuarantinedRow:
    row_id: str
    dataset: DatasetKey
    source_url: str
    reason: QuarantineReason
    detail: str
    raw: Mapping[str, Any]
    company_name: str | None = None
    city: str | None = None
    state: str | None = None
    quarantined_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class QuarantineGroup:
    """Review-queue bucket of quarantined rows sharing a reason and location."""

    reason: QuarantineReason
    company_name: str | None
    city: str | None
    state: str | None
    count: int


def group_quarantined(rows: Iterable[QuarantinedRow]) -> list[QuarantineGroup]:
    """Collapse rows by (reason, company, city, state), largest groups first."""

    counts = Counter((row.reason, row.company_name, row.city, row.state) for row in rows)
    groups = [
        QuarantineGroup(reason, company, city, state, count)
        for (reason, company, city, state), count in counts.items()
    ]
    groups.sort(key=lambda group: (-group.count, group.reason, group.company_name or ""))
    return groups
