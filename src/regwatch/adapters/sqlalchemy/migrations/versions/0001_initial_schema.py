"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-09-28 10:12:41.208113
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

import regwatch.adapters.sqlalchemy.mappings

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "schema_map",
        sa.Column("source", sa.String(length=64), nullable=False),
        sa.Column("variant", sa.String(length=128), nullable=False),
        sa.Column("header_map", sa.JSON(), nullable=False),
        sa.Column(
            "created_at", regwatch.adapters.sqlalchemy.mappings.UTCDateTime(), nullable=False
        ),
        sa.PrimaryKeyConstraint("source", "variant", name=op.f("pk_schema_map")),
    )
    op.create_table(
        "entity",
        sa.Column("entity_type", sa.String(length=16), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("entity_metadata", sa.JSON(), nullable=False),
        sa.Column(
            "created_at", regwatch.adapters.sqlalchemy.mappings.UTCDateTime(), nullable=False
        ),
        sa.PrimaryKeyConstraint("entity_type", "slug", name=op.f("pk_entity")),
    )
    op.create_table(
        "alias",
        sa.Column("entity_type", sa.String(length=16), nullable=False),
        sa.Column("alias", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("superseded_slug", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at", regwatch.adapters.sqlalchemy.mappings.UTCDateTime(), nullable=False
        ),
        sa.PrimaryKeyConstraint("entity_type", "alias", name=op.f("pk_alias")),
    )
    with op.batch_alter_table("alias", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_alias_entity_type"), ["entity_type", "slug"], unique=False
        )

    op.create_table(
        "event",
        sa.Column("event_id", sa.String(length=64), nullable=False),
        sa.Column("source", sa.String(length=64), nullable=False),
        sa.Column("dataset", sa.String(length=128), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column(
            "ingested_at", regwatch.adapters.sqlalchemy.mappings.UTCDateTime(), nullable=False
        ),
        sa.Column("occurred_at", sa.Date(), nullable=False),
        sa.Column("state", sa.String(length=2), nullable=False),
        sa.Column("city", sa.String(length=255), nullable=False),
        sa.Column("city_slug", sa.String(length=255), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("company_slug", sa.String(length=255), nullable=True),
        sa.Column("site_id", sa.String(length=64), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column(
            "monetary_amount", regwatch.adapters.sqlalchemy.mappings.DecimalText(), nullable=True
        ),
        sa.Column("raw", sa.JSON(), nullable=False),
        sa.Column("enrichment_title", sa.Text(), nullable=True),
        sa.Column("enrichment_description", sa.Text(), nullable=True),
        sa.Column("enrichment_verified", sa.Boolean(), nullable=True),
        sa.Column(
            "enrichment_generated_at",
            regwatch.adapters.sqlalchemy.mappings.UTCDateTime(),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("event_id", name=op.f("pk_event")),
    )
    with op.batch_alter_table("event", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_event_company_slug"), ["company_slug"], unique=False)
        batch_op.create_index(batch_op.f("ix_event_city_slug"), ["city_slug"], unique=False)
        batch_op.create_index(batch_op.f("ix_event_state"), ["state"], unique=False)

    op.create_table(
        "rollup",
        sa.Column("entity_type", sa.String(length=16), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("bucket", sa.String(length=8), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("event_count", sa.Integer(), nullable=False),
        sa.Column(
            "monetary_total", regwatch.adapters.sqlalchemy.mappings.DecimalText(), nullable=False
        ),
        sa.Column("recent", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at", regwatch.adapters.sqlalchemy.mappings.UTCDateTime(), nullable=True
        ),
        sa.PrimaryKeyConstraint("entity_type", "slug", "bucket", name=op.f("pk_rollup")),
    )
    op.create_table(
        "quarantine",
        sa.Column("row_id", sa.String(length=64), nullable=False),
        sa.Column("source", sa.String(length=64), nullable=False),
        sa.Column("variant", sa.String(length=128), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
        sa.Column("detail", sa.Text(), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=255), nullable=True),
        sa.Column("state", sa.String(length=64), nullable=True),
        sa.Column("raw", sa.JSON(), nullable=False),
        sa.Column(
            "quarantined_at", regwatch.adapters.sqlalchemy.mappings.UTCDateTime(), nullable=False
        ),
        sa.PrimaryKeyConstraint("row_id", name=op.f("pk_quarantine")),
    )
    with op.batch_alter_table("quarantine", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_quarantine_reason"), ["reason"], unique=False)


def downgrade() -> None:
    with op.batch_alter_table("quarantine", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_quarantine_reason"))
    op.drop_table("quarantine")
    op.drop_table("rollup")
    with op.batch_alter_table("event", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_event_state"))
        batch_op.drop_index(batch_op.f("ix_event_city_slug"))
        batch_op.drop_index(batch_op.f("ix_event_company_slug"))
    op.drop_table("event")
    with op.batch_alter_table("alias", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_alias_entity_type"))
    op.drop_table("alias")
    op.drop_table("entity")
    op.drop_table("schema_map")
