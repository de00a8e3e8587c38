"""SQLAlchemy Core tables for the canonical store, rollups, aliases and quarantine."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class DecimalText(TypeDecorator[Decimal]):
    """Exact decimals stored as text so SQLite does not round through floats."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> Decimal | None:
        _ = dialect
        if value is None:
            return None
        return Decimal(value)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

schema_map_table = Table(
    "schema_map",
    metadata,
    Column("source", String(64), primary_key=True),
    Column("variant", String(128), primary_key=True),
    Column("header_map", JSON, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

entity_table = Table(
    "entity",
    metadata,
    Column("entity_type", String(16), primary_key=True),
    Column("slug", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("entity_metadata", JSON, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

alias_table = Table(
    "alias",
    metadata,
    Column("entity_type", String(16), primary_key=True),
    Column("alias", String(255), primary_key=True),
    Column("slug", String(255), nullable=False),
    Column("superseded_slug", String(255), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Index(None, "entity_type", "slug"),
)

event_table = Table(
    "event",
    metadata,
    Column("event_id", String(64), primary_key=True),
    Column("source", String(64), nullable=False),
    Column("dataset", String(128), nullable=False),
    Column("source_url", Text, nullable=False),
    Column("ingested_at", UTCDateTime(), nullable=False),
    Column("occurred_at", Date, nullable=False),
    Column("state", String(2), nullable=False),
    Column("city", String(255), nullable=False),
    Column("city_slug", String(255), nullable=False),
    Column("company_name", String(255), nullable=True),
    Column("company_slug", String(255), nullable=True),
    Column("site_id", String(64), nullable=True),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=True),
    Column("details", JSON, nullable=False),
    Column("monetary_amount", DecimalText(), nullable=True),
    Column("raw", JSON, nullable=False),
    Column("enrichment_title", Text, nullable=True),
    Column("enrichment_description", Text, nullable=True),
    Column("enrichment_verified", Boolean, nullable=True),
    Column("enrichment_generated_at", UTCDateTime(), nullable=True),
    Index(None, "company_slug"),
    Index(None, "city_slug"),
    Index(None, "state"),
)

rollup_table = Table(
    "rollup",
    metadata,
    Column("entity_type", String(16), primary_key=True),
    Column("slug", String(255), primary_key=True),
    Column("bucket", String(8), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("event_count", Integer, nullable=False),
    Column("monetary_total", DecimalText(), nullable=False),
    Column("recent", JSON, nullable=False),
    Column("version", Integer, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
)

quarantine_table = Table(
    "quarantine",
    metadata,
    Column("row_id", String(64), primary_key=True),
    Column("source", String(64), nullable=False),
    Column("variant", String(128), nullable=False),
    Column("source_url", Text, nullable=False),
    Column("reason", String(32), nullable=False),
    Column("detail", Text, nullable=False),
    Column("company_name", String(255), nullable=True),
    Column("city", String(255), nullable=True),
    Column("state", String(64), nullable=True),
    Column("raw", JSON, nullable=False),
    Column("quarantined_at", UTCDateTime(), nullable=False),
    Index(None, "reason"),
)
