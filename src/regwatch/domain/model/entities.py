"""Canonical entities and the aliases that point at them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

from .enums import EntityType

if TYPE_CHECKING:
    from collections.abc import Mapping

NATION_SLUG: Final[str] = "usa"
NATION_NAME: Final[str] = "United States"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class EntityRecord:
    """A reviewed canonical entity. Never deleted; metadata only grows."""

    entity_type: EntityType
    slug: str
    name: str
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)

    def with_metadata(self, extra: Mapping[str, Any]) -> EntityRecord:
        """Return a copy carrying ``extra`` keys that are not already set."""

        merged = dict(self.metadata)
        for key, value in extra.items():
            merged.setdefault(key, value)
        return replace(self, metadata=merged)


@dataclass(frozen=True, slots=True)
class AliasRecord:
    """Normalized free-text form bound to exactly one entity slug."""

    entity_type: EntityType
    alias: str
    slug: str
    superseded_slug: str | None = None
    created_at: datetime = field(default_factory=_utcnow)


def nation_entity() -> EntityRecord:
    return EntityRecord(EntityType.NATION, NATION_SLUG, NATION_NAME)
