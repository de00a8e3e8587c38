"""Public domain model surface."""

from __future__ import annotations

from regwatch.domain.model.dataset import (
    MAX_BATCH_ROWS,
    DatasetKey,
    RawRow,
    RowBatch,
    canonical_json,
    digest,
)
from regwatch.domain.model.entities import (
    NATION_NAME,
    NATION_SLUG,
    AliasRecord,
    EntityRecord,
    nation_entity,
)
from regwatch.domain.model.enums import (
    EntityType,
    MergeStrategy,
    QuarantineReason,
    ResolutionPath,
)
from regwatch.domain.model.event import EnrichmentOverlay, EntityRef, Event, EventSummary
from regwatch.domain.model.fields import CanonicalFields
from regwatch.domain.model.quarantine import (
    QuarantineGroup,
    QuarantinedRow,
    group_quarantined,
    quarantine_row_id,
)
from regwatch.domain.model.rollup import ALL_TIME_BUCKET, RollupKey, RollupRecord, year_bucket

__all__ = [  # noqa: RUF022
    # rows
    "MAX_BATCH_ROWS",
    "DatasetKey",
    "RawRow",
    "RowBatch",
    "canonical_json",
    "digest",
    # entities
    "NATION_NAME",
    "NATION_SLUG",
    "AliasRecord",
    "EntityRecord",
    "nation_entity",
    # enums
    "EntityType",
    "MergeStrategy",
    "QuarantineReason",
    "ResolutionPath",
    # events
    "CanonicalFields",
    "EnrichmentOverlay",
    "EntityRef",
    "Event",
    "EventSummary",
    # quarantine
    "QuarantineGroup",
    "QuarantinedRow",
    "group_quarantined",
    "quarantine_row_id",
    # rollups
    "ALL_TIME_BUCKET",
    "RollupKey",
    "RollupRecord",
    "year_bucket",
]
