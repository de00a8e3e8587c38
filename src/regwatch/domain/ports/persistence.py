"""Ports for the stores the ingestion pipeline reads and writes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from typing import Any

    from regwatch.domain.model import (
        AliasRecord,
        DatasetKey,
        EnrichmentOverlay,
        EntityRecord,
        EntityType,
        Event,
        QuarantinedRow,
        QuarantineGroup,
        RollupKey,
        RollupRecord,
    )
    from regwatch.domain.schema_registry import SchemaMap


@runtime_checkable
class SchemaMapRepository(Protocol):
    """Seeded header maps keyed by dataset."""

    def get(self, dataset: DatasetKey) -> SchemaMap | None: ...

    def save(self, schema_map: SchemaMap) -> None: ...

    def list_maps(self) -> list[SchemaMap]: ...


@runtime_checkable
class EntityRepository(Protocol):
    """Reviewed canonical entities. Records are never deleted."""

    def get(self, entity_type: EntityType, slug: str) -> EntityRecord | None: ...

    def add(self, entity: EntityRecord) -> bool:
        """Insert if absent; return False when the slug already exists."""
        ...

    def add_metadata(
        self, entity_type: EntityType, slug: str, metadata: Mapping[str, Any]
    ) -> EntityRecord: ...


@runtime_checkable
class AliasRepository(Protocol):
    """Alias index consulted by the entity resolver."""

    def lookup(self, entity_type: EntityType, alias: str) -> str | None: ...

    def get(self, entity_type: EntityType, alias: str) -> AliasRecord | None: ...

    def add_if_absent(self, record: AliasRecord) -> bool:
        """Atomically bind a new alias; return False if it was already bound."""
        ...

    def supersede(self, entity_type: EntityType, alias: str, slug: str) -> AliasRecord:
        """Rebind an existing alias, remembering the slug it used to point at."""
        ...


@runtime_checkable
class CanonicalEventStore(Protocol):
    """Transactional table holding one row per deduplicated event.

    Writers raise ``TransientWriteConflict`` for retryable conflicts,
    ``PermanentWriteError`` otherwise, and ``MergeUnsupported`` when the atomic
    upsert path is not available.
    """

    def upsert(self, event: Event) -> bool:
        """Insert if absent, otherwise leave the stored row alone; return created."""
        ...

    def replace(self, events: Sequence[Event]) -> dict[str, bool]:
        """Delete-then-reinsert the given identities, keeping stored overlays."""
        ...

    def get(self, event_id: str) -> Event | None: ...

    def set_enrichment(self, event_id: str, overlay: EnrichmentOverlay) -> bool: ...

    def count(self) -> int: ...


@runtime_checkable
class RollupStore(Protocol):
    """Low-latency key-value store for per-entity rollups."""

    def get(self, key: RollupKey) -> RollupRecord | None: ...

    def save(self, record: RollupRecord) -> RollupRecord:
        """Persist ``record`` if its ``version`` still matches the stored one.

        Raises ``RollupConflict`` on a version mismatch; returns the record with
        its new version.
        """
        ...


@runtime_checkable
class QuarantineSink(Protocol):
    """Write-once holding area for rows that failed normalization."""

    def put(self, row: QuarantinedRow) -> bool:
        """Insert if the row id is new; return whether a row was written."""
        ...

    def get(self, row_id: str) -> QuarantinedRow | None: ...

    def list_rows(self, *, limit: int | None = None) -> list[QuarantinedRow]: ...

    def count(self) -> int: ...

    def summarize(self, *, limit: int | None = None) -> list[QuarantineGroup]: ...
