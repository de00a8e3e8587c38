"""SQLAlchemy implementations of the ingestion ports.

Each repository owns a session factory and runs every call in its own short
transaction; the canonical store additionally maps driver lock and
serialization errors onto the domain's transient/permanent write errors.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from regwatch.adapters.sqlalchemy.mappings import (
    alias_table,
    entity_table,
    event_table,
    quarantine_table,
    rollup_table,
    schema_map_table,
)
from regwatch.domain.errors import (
    MergeUnsupported,
    PermanentWriteError,
    RollupConflict,
    TransientWriteConflict,
    UnknownEntityError,
)
from regwatch.domain.model import (
    AliasRecord,
    DatasetKey,
    EnrichmentOverlay,
    EntityRecord,
    EntityType,
    Event,
    EventSummary,
    QuarantinedRow,
    QuarantineGroup,
    QuarantineReason,
    RollupKey,
    RollupRecord,
)
from regwatch.domain.schema_registry import SchemaMap

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from sqlalchemy import Row
    from sqlalchemy.orm import Session, sessionmaker

log = logging.getLogger(__name__)

ATOMIC_MERGE_DIALECTS: Final[frozenset[str]] = frozenset({"sqlite", "postgresql"})
_TRANSIENT_MARKERS: Final[tuple[str, ...]] = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not serialize",
    "serialization failure",
)
_TRANSIENT_PGCODES: Final[frozenset[str]] = frozenset({"40001", "40P01", "55P03"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def is_transient(exc: DBAPIError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _TRANSIENT_PGCODES:
        return True
    message = str(exc.orig).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


class _SqlAlchemyStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class SqlAlchemySchemaMapRepository(_SqlAlchemyStore):
    def get(self, dataset: DatasetKey) -> SchemaMap | None:
        with self._session_scope() as session:
            row = session.execute(
                select(schema_map_table.c.header_map).where(
                    schema_map_table.c.source == dataset.source,
                    schema_map_table.c.variant == dataset.variant,
                )
            ).first()
        if row is None:
            return None
        return SchemaMap(dataset, row.header_map)

    def save(self, schema_map: SchemaMap) -> None:
        payload = {key: list(aliases) for key, aliases in schema_map.header_map.items()}
        dataset = schema_map.dataset
        with self._session_scope() as session:
            updated = session.execute(
                update(schema_map_table)
                .where(
                    schema_map_table.c.source == dataset.source,
                    schema_map_table.c.variant == dataset.variant,
                )
                .values(header_map=payload)
            )
            if updated.rowcount == 0:
                session.execute(
                    insert(schema_map_table).values(
                        source=dataset.source,
                        variant=dataset.variant,
                        header_map=payload,
                        created_at=_utcnow(),
                    )
                )

    def list_maps(self) -> list[SchemaMap]:
        with self._session_scope() as session:
            rows = session.execute(
                select(schema_map_table).order_by(
                    schema_map_table.c.source, schema_map_table.c.variant
                )
            ).all()
        return [SchemaMap(DatasetKey(row.source, row.variant), row.header_map) for row in rows]


class SqlAlchemyEntityRepository(_SqlAlchemyStore):
    def get(self, entity_type: EntityType, slug: str) -> EntityRecord | None:
        with self._session_scope() as session:
            row = session.execute(
                select(entity_table).where(
                    entity_table.c.entity_type == entity_type.value,
                    entity_table.c.slug == slug,
                )
            ).first()
        return _entity_from_row(row) if row is not None else None

    def add(self, entity: EntityRecord) -> bool:
        try:
            with self._session_scope() as session:
                session.execute(
                    insert(entity_table).values(
                        entity_type=entity.entity_type.value,
                        slug=entity.slug,
                        name=entity.name,
                        entity_metadata=dict(entity.metadata),
                        created_at=entity.created_at,
                    )
                )
        except IntegrityError:
            return False
        return True

    def add_metadata(
        self, entity_type: EntityType, slug: str, metadata: Mapping[str, Any]
    ) -> EntityRecord:
        with self._session_scope() as session:
            row = session.execute(
                select(entity_table).where(
                    entity_table.c.entity_type == entity_type.value,
                    entity_table.c.slug == slug,
                )
            ).first()
            if row is None:
                raise UnknownEntityError(f"No {entity_type} entity {slug!r}")
            updated = _entity_from_row(row).with_metadata(metadata)
            session.execute(
                update(entity_table)
                .where(
                    entity_table.c.entity_type == entity_type.value,
                    entity_table.c.slug == slug,
                )
                .values(entity_metadata=dict(updated.metadata))
            )
        return updated


class SqlAlchemyAliasRepository(_SqlAlchemyStore):
    def lookup(self, entity_type: EntityType, alias: str) -> str | None:
        with self._session_scope() as session:
            return session.execute(
                select(alias_table.c.slug).where(
                    alias_table.c.entity_type == entity_type.value,
                    alias_table.c.alias == alias,
                )
            ).scalar_one_or_none()

    def get(self, entity_type: EntityType, alias: str) -> AliasRecord | None:
        with self._session_scope() as session:
            row = session.execute(
                select(alias_table).where(
                    alias_table.c.entity_type == entity_type.value,
                    alias_table.c.alias == alias,
                )
            ).first()
        if row is None:
            return None
        return AliasRecord(
            entity_type=EntityType(row.entity_type),
            alias=row.alias,
            slug=row.slug,
            superseded_slug=row.superseded_slug,
            created_at=row.created_at,
        )

    def add_if_absent(self, record: AliasRecord) -> bool:
        try:
            with self._session_scope() as session:
                session.execute(
                    insert(alias_table).values(
                        entity_type=record.entity_type.value,
                        alias=record.alias,
                        slug=record.slug,
                        superseded_slug=record.superseded_slug,
                        created_at=record.created_at,
                    )
                )
        except IntegrityError:
            return False
        return True

    def supersede(self, entity_type: EntityType, alias: str, slug: str) -> AliasRecord:
        with self._session_scope() as session:
            previous = session.execute(
                select(alias_table.c.slug).where(
                    alias_table.c.entity_type == entity_type.value,
                    alias_table.c.alias == alias,
                )
            ).scalar_one_or_none()
            record = AliasRecord(entity_type, alias, slug, superseded_slug=previous)
            if previous is None:
                session.execute(
                    insert(alias_table).values(
                        entity_type=entity_type.value,
                        alias=alias,
                        slug=slug,
                        superseded_slug=None,
                        created_at=record.created_at,
                    )
                )
            else:
                session.execute(
                    update(alias_table)
                    .where(
                        alias_table.c.entity_type == entity_type.value,
                        alias_table.c.alias == alias,
                    )
                    .values(slug=slug, superseded_slug=previous)
                )
        return record


class SqlAlchemyCanonicalEventStore(_SqlAlchemyStore):
    """Canonical event table with insert-if-absent semantics.

    Existing rows are never rewritten: a repeated upsert only fills in an
    enrichment overlay when the stored row has none. Dialects outside
    ``ATOMIC_MERGE_DIALECTS`` (or ``atomic_merge=False``) raise
    ``MergeUnsupported`` so callers use :meth:`replace`.
    """

    def __init__(
        self, session_factory: sessionmaker[Session], *, atomic_merge: bool = True
    ) -> None:
        super().__init__(session_factory)
        self._atomic_merge = atomic_merge

    @contextmanager
    def _write_scope(self, *, lost_race_is_transient: bool = False) -> Iterator[Session]:
        try:
            with self._session_scope() as session:
                yield session
        except IntegrityError as exc:
            # replace() loses this race when another writer inserts between delete and insert.
            if lost_race_is_transient:
                raise TransientWriteConflict(str(exc.orig)) from exc
            raise PermanentWriteError(str(exc.orig)) from exc
        except OperationalError as exc:
            if is_transient(exc):
                raise TransientWriteConflict(str(exc.orig)) from exc
            raise PermanentWriteError(str(exc.orig)) from exc
        except DBAPIError as exc:
            raise PermanentWriteError(str(exc.orig)) from exc

    def _dialect_insert(self, session: Session) -> Any:
        dialect = session.get_bind().dialect.name
        if not self._atomic_merge or dialect not in ATOMIC_MERGE_DIALECTS:
            raise MergeUnsupported(f"No atomic upsert for dialect {dialect!r}")
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert  # noqa: PLC0415

            return pg_insert
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert  # noqa: PLC0415

        return sqlite_insert

    def upsert(self, event: Event) -> bool:
        with self._write_scope() as session:
            dialect_insert = self._dialect_insert(session)
            statement = (
                dialect_insert(event_table)
                .values(**_event_values(event))
                .on_conflict_do_nothing(index_elements=[event_table.c.event_id])
            )
            created = session.execute(statement).rowcount == 1
            if not created and event.enrichment is not None:
                session.execute(
                    update(event_table)
                    .where(
                        event_table.c.event_id == event.event_id,
                        event_table.c.enrichment_generated_at.is_(None),
                        event_table.c.enrichment_title.is_(None),
                    )
                    .values(**_overlay_values(event.enrichment))
                )
        return created

    def replace(self, events: Sequence[Event]) -> dict[str, bool]:
        unique = {event.event_id: event for event in events}
        if not unique:
            return {}
        ids = list(unique)
        with self._write_scope(lost_race_is_transient=True) as session:
            existing = {
                row.event_id: row
                for row in session.execute(
                    select(
                        event_table.c.event_id,
                        event_table.c.ingested_at,
                        event_table.c.enrichment_title,
                        event_table.c.enrichment_description,
                        event_table.c.enrichment_verified,
                        event_table.c.enrichment_generated_at,
                    ).where(event_table.c.event_id.in_(ids))
                )
            }
            session.execute(delete(event_table).where(event_table.c.event_id.in_(ids)))
            for event_id, event in unique.items():
                values = _event_values(event)
                stored = existing.get(event_id)
                if stored is not None:
                    values["ingested_at"] = stored.ingested_at
                    stored_overlay = _overlay_from_row(stored)
                    if stored_overlay is not None:
                        values.update(_overlay_values(stored_overlay))
                session.execute(insert(event_table).values(**values))
        return {event_id: event_id not in existing for event_id in ids}

    def get(self, event_id: str) -> Event | None:
        with self._session_scope() as session:
            row = session.execute(
                select(event_table).where(event_table.c.event_id == event_id)
            ).first()
        return _event_from_row(row) if row is not None else None

    def set_enrichment(self, event_id: str, overlay: EnrichmentOverlay) -> bool:
        if overlay.generated_at is None:
            overlay = EnrichmentOverlay(
                overlay.title, overlay.description, overlay.verified, _utcnow()
            )
        with self._write_scope() as session:
            result = session.execute(
                update(event_table)
                .where(event_table.c.event_id == event_id)
                .values(**_overlay_values(overlay))
            )
        return result.rowcount == 1

    def count(self) -> int:
        with self._session_scope() as session:
            return session.execute(select(func.count()).select_from(event_table)).scalar_one()


class SqlAlchemyRollupStore(_SqlAlchemyStore):
    """Rollups with optimistic versioning; a stale ``version`` raises ``RollupConflict``."""

    def get(self, key: RollupKey) -> RollupRecord | None:
        with self._session_scope() as session:
            row = session.execute(
                select(rollup_table).where(
                    rollup_table.c.entity_type == key.entity_type.value,
                    rollup_table.c.slug == key.slug,
                    rollup_table.c.bucket == key.bucket,
                )
            ).first()
        if row is None:
            return None
        return RollupRecord(
            key=key,
            name=row.name,
            event_count=row.event_count,
            monetary_total=row.monetary_total,
            recent=[EventSummary.from_payload(item) for item in row.recent],
            version=row.version,
            updated_at=row.updated_at,
        )

    def save(self, record: RollupRecord) -> RollupRecord:
        key = record.key
        values = {
            "name": record.name,
            "event_count": record.event_count,
            "monetary_total": record.monetary_total,
            "recent": [item.to_payload() for item in record.recent],
            "version": record.version + 1,
            "updated_at": record.updated_at or _utcnow(),
        }
        try:
            with self._session_scope() as session:
                if record.version == 0:
                    session.execute(
                        insert(rollup_table).values(
                            entity_type=key.entity_type.value,
                            slug=key.slug,
                            bucket=key.bucket,
                            **values,
                        )
                    )
                else:
                    result = session.execute(
                        update(rollup_table)
                        .where(
                            rollup_table.c.entity_type == key.entity_type.value,
                            rollup_table.c.slug == key.slug,
                            rollup_table.c.bucket == key.bucket,
                            rollup_table.c.version == record.version,
                        )
                        .values(**values)
                    )
                    if result.rowcount != 1:
                        raise RollupConflict(f"{key}: version {record.version} is stale")
        except IntegrityError as exc:
            raise RollupConflict(f"{key}: created concurrently") from exc
        except OperationalError as exc:
            if is_transient(exc):
                raise RollupConflict(f"{key}: {exc.orig}") from exc
            raise
        record.version += 1
        return record


class SqlAlchemyQuarantineSink(_SqlAlchemyStore):
    def put(self, row: QuarantinedRow) -> bool:
        try:
            with self._session_scope() as session:
                session.execute(
                    insert(quarantine_table).values(
                        row_id=row.row_id,
                        source=row.dataset.source,
                        variant=row.dataset.variant,
                        source_url=row.source_url,
                        reason=row.reason.value,
                        detail=row.detail,
                        company_name=row.company_name,
                        city=row.city,
                        state=row.state,
                        raw=dict(row.raw),
                        quarantined_at=row.quarantined_at,
                    )
                )
        except IntegrityError:
            return False
        return True

    def get(self, row_id: str) -> QuarantinedRow | None:
        with self._session_scope() as session:
            row = session.execute(
                select(quarantine_table).where(quarantine_table.c.row_id == row_id)
            ).first()
        return _quarantined_from_row(row) if row is not None else None

    def list_rows(self, *, limit: int | None = None) -> list[QuarantinedRow]:
        statement = select(quarantine_table).order_by(
            quarantine_table.c.quarantined_at.desc(), quarantine_table.c.row_id
        )
        if limit is not None:
            statement = statement.limit(limit)
        with self._session_scope() as session:
            rows = session.execute(statement).all()
        return [_quarantined_from_row(row) for row in rows]

    def count(self) -> int:
        with self._session_scope() as session:
            return session.execute(
                select(func.count()).select_from(quarantine_table)
            ).scalar_one()

    def summarize(self, *, limit: int | None = None) -> list[QuarantineGroup]:
        total = func.count().label("total")
        statement = (
            select(
                quarantine_table.c.reason,
                quarantine_table.c.company_name,
                quarantine_table.c.city,
                quarantine_table.c.state,
                total,
            )
            .group_by(
                quarantine_table.c.reason,
                quarantine_table.c.company_name,
                quarantine_table.c.city,
                quarantine_table.c.state,
            )
            .order_by(total.desc(), quarantine_table.c.reason, quarantine_table.c.company_name)
        )
        if limit is not None:
            statement = statement.limit(limit)
        with self._session_scope() as session:
            rows = session.execute(statement).all()
        return [
            QuarantineGroup(
                reason=QuarantineReason(row.reason),
                company_name=row.company_name,
                city=row.city,
                state=row.state,
                count=row.total,
            )
            for row in rows
        ]


# Row conversion helpers --------------------------------------------------------


def _entity_from_row(row: Row[Any]) -> EntityRecord:
    return EntityRecord(
        entity_type=EntityType(row.entity_type),
        slug=row.slug,
        name=row.name,
        metadata=dict(row.entity_metadata or {}),
        created_at=row.created_at,
    )


def _event_values(event: Event) -> dict[str, Any]:
    values: dict[str, Any] = {
        "event_id": event.event_id,
        "source": event.dataset.source,
        "dataset": event.dataset.variant,
        "source_url": event.source_url,
        "ingested_at": event.ingested_at,
        "occurred_at": event.occurred_at,
        "state": event.state,
        "city": event.city,
        "city_slug": event.city_slug,
        "company_name": event.company_name,
        "company_slug": event.company_slug,
        "site_id": event.site_id,
        "title": event.title,
        "description": event.description,
        "details": dict(event.details),
        "monetary_amount": event.monetary_amount,
        "raw": dict(event.raw),
    }
    if event.enrichment is not None:
        values.update(_overlay_values(event.enrichment))
    return values


def _overlay_values(overlay: EnrichmentOverlay) -> dict[str, Any]:
    return {
        "enrichment_title": overlay.title,
        "enrichment_description": overlay.description,
        "enrichment_verified": overlay.verified,
        "enrichment_generated_at": overlay.generated_at or _utcnow(),
    }


def _overlay_from_row(row: Row[Any]) -> EnrichmentOverlay | None:
    if row.enrichment_generated_at is None and row.enrichment_title is None:
        return None
    return EnrichmentOverlay(
        title=row.enrichment_title,
        description=row.enrichment_description,
        verified=bool(row.enrichment_verified),
        generated_at=row.enrichment_generated_at,
    )


def _event_from_row(row: Row[Any]) -> Event:
    amount = row.monetary_amount
    return Event(
        event_id=row.event_id,
        dataset=DatasetKey(row.source, row.dataset),
        source_url=row.source_url,
        ingested_at=row.ingested_at,
        occurred_at=row.occurred_at,
        state=row.state,
        city=row.city,
        city_slug=row.city_slug,
        title=row.title,
        company_name=row.company_name,
        company_slug=row.company_slug,
        site_id=row.site_id,
        description=row.description,
        details=dict(row.details or {}),
        monetary_amount=Decimal(amount) if amount is not None else None,
        raw=dict(row.raw or {}),
        enrichment=_overlay_from_row(row),
    )


def _quarantined_from_row(row: Row[Any]) -> QuarantinedRow:
    return QuarantinedRow(
        row_id=row.row_id,
        dataset=DatasetKey(row.source, row.variant),
        source_url=row.source_url,
        reason=QuarantineReason(row.reason),
        detail=row.detail,
        raw=dict(row.raw or {}),
        company_name=row.company_name,
        city=row.city,
        state=row.state,
        quarantined_at=row.quarantined_at,
    )
