"""In-memory adapters implementing the ingestion ports (tests and dry runs)."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from regwatch.domain.errors import MergeUnsupported, RollupConflict, UnknownEntityError
from regwatch.domain.model import AliasRecord, group_quarantined
from regwatch.domain.ports import IngestRepositories

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from regwatch.domain.model import (
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


class InMemorySchemaMapRepository:
    def __init__(self) -> None:
        self._maps: dict[DatasetKey, SchemaMap] = {}

    def get(self, dataset: DatasetKey) -> SchemaMap | None:
        return self._maps.get(dataset)

    def save(self, schema_map: SchemaMap) -> None:
        self._maps[schema_map.dataset] = schema_map

    def list_maps(self) -> list[SchemaMap]:
        return sorted(self._maps.values(), key=lambda item: str(item.dataset))


class InMemoryEntityRepository:
    def __init__(self) -> None:
        self._entities: dict[tuple[EntityType, str], EntityRecord] = {}
        self._lock = threading.Lock()

    def get(self, entity_type: EntityType, slug: str) -> EntityRecord | None:
        return self._entities.get((entity_type, slug))

    def add(self, entity: EntityRecord) -> bool:
        with self._lock:
            key = (entity.entity_type, entity.slug)
            if key in self._entities:
                return False
            self._entities[key] = entity
            return True

    def add_metadata(
        self, entity_type: EntityType, slug: str, metadata: Mapping[str, Any]
    ) -> EntityRecord:
        with self._lock:
            current = self._entities.get((entity_type, slug))
            if current is None:
                raise UnknownEntityError(f"No {entity_type} entity {slug!r}")
            updated = current.with_metadata(metadata)
            self._entities[(entity_type, slug)] = updated
            return updated


class InMemoryAliasRepository:
    def __init__(self) -> None:
        self._aliases: dict[tuple[EntityType, str], AliasRecord] = {}
        self._lock = threading.Lock()

    def lookup(self, entity_type: EntityType, alias: str) -> str | None:
        record = self._aliases.get((entity_type, alias))
        return record.slug if record is not None else None

    def get(self, entity_type: EntityType, alias: str) -> AliasRecord | None:
        return self._aliases.get((entity_type, alias))

    def add_if_absent(self, record: AliasRecord) -> bool:
        with self._lock:
            key = (record.entity_type, record.alias)
            if key in self._aliases:
                return False
            self._aliases[key] = record
            return True

    def supersede(self, entity_type: EntityType, alias: str, slug: str) -> AliasRecord:
        with self._lock:
            current = self._aliases.get((entity_type, alias))
            previous = current.slug if current is not None else None
            record = AliasRecord(entity_type, alias, slug, superseded_slug=previous)
            self._aliases[(entity_type, alias)] = record
            return record

    def __len__(self) -> int:
        return len(self._aliases)


class InMemoryCanonicalEventStore:
    """Dict-backed canonical store.

    ``atomic_merge=False`` makes ``upsert`` raise ``MergeUnsupported`` so the
    delete-then-reinsert path can be exercised without a database.
    """

    def __init__(self, *, atomic_merge: bool = True) -> None:
        self._events: dict[str, Event] = {}
        self._lock = threading.Lock()
        self._atomic_merge = atomic_merge

    def upsert(self, event: Event) -> bool:
        if not self._atomic_merge:
            raise MergeUnsupported("in-memory store configured without atomic merge")
        with self._lock:
            current = self._events.get(event.event_id)
            if current is None:
                self._events[event.event_id] = event
                return True
            if current.enrichment is None and event.enrichment is not None:
                self._events[event.event_id] = current.with_enrichment(event.enrichment)
            return False

    def replace(self, events: Sequence[Event]) -> dict[str, bool]:
        created: dict[str, bool] = {}
        with self._lock:
            for event in events:
                current = self._events.pop(event.event_id, None)
                if current is None:
                    self._events[event.event_id] = event
                    created[event.event_id] = True
                    continue
                overlay = current.enrichment or event.enrichment
                self._events[event.event_id] = current.with_enrichment(overlay)
                created.setdefault(event.event_id, False)
        return created

    def get(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    def set_enrichment(self, event_id: str, overlay: EnrichmentOverlay) -> bool:
        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                return False
            if overlay.generated_at is None:
                overlay = replace(overlay, generated_at=datetime.now(UTC))
            self._events[event_id] = current.with_enrichment(overlay)
            return True

    def count(self) -> int:
        return len(self._events)

    def all(self) -> list[Event]:
        return list(self._events.values())


class InMemoryRollupStore:
    def __init__(self) -> None:
        self._records: dict[RollupKey, RollupRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: RollupKey) -> RollupRecord | None:
        stored = self._records.get(key)
        if stored is None:
            return None
        # hand out a copy so callers mutate nothing until save()
        return replace(stored, recent=list(stored.recent))

    def save(self, record: RollupRecord) -> RollupRecord:
        with self._lock:
            stored = self._records.get(record.key)
            stored_version = stored.version if stored is not None else 0
            if stored_version != record.version:
                raise RollupConflict(
                    f"{record.key}: expected version {record.version}, found {stored_version}"
                )
            record.version += 1
            self._records[record.key] = replace(record, recent=list(record.recent))
            return record

    def all(self) -> list[RollupRecord]:
        return list(self._records.values())


class InMemoryQuarantineSink:
    def __init__(self) -> None:
        self._rows: dict[str, QuarantinedRow] = {}
        self._lock = threading.Lock()

    def put(self, row: QuarantinedRow) -> bool:
        with self._lock:
            if row.row_id in self._rows:
                return False
            self._rows[row.row_id] = row
            return True

    def get(self, row_id: str) -> QuarantinedRow | None:
        return self._rows.get(row_id)

    def list_rows(self, *, limit: int | None = None) -> list[QuarantinedRow]:
        rows = sorted(self._rows.values(), key=lambda row: row.quarantined_at, reverse=True)
        return rows if limit is None else rows[:limit]

    def count(self) -> int:
        return len(self._rows)

    def summarize(self, *, limit: int | None = None) -> list[QuarantineGroup]:
        groups = group_quarantined(self._rows.values())
        return groups if limit is None else groups[:limit]


def build_memory_repositories(*, atomic_merge: bool = True) -> IngestRepositories:
    return IngestRepositories(
        schema_maps=InMemorySchemaMapRepository(),
        entities=InMemoryEntityRepository(),
        aliases=InMemoryAliasRepository(),
        events=InMemoryCanonicalEventStore(atomic_merge=atomic_merge),
        rollups=InMemoryRollupStore(),
        quarantine=InMemoryQuarantineSink(),
    )
