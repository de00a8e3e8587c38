"""Repository groupings handed to application services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from regwatch.domain.ports.persistence import (
        AliasRepository,
        CanonicalEventStore,
        EntityRepository,
        QuarantineSink,
        RollupStore,
        SchemaMapRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@dataclass(slots=True, frozen=True)
class IngestRepositories(RepositoryCollection):
    """Every store the ingestion pipeline and its admin commands touch."""

    schema_maps: SchemaMapRepository
    entities: EntityRepository
    aliases: AliasRepository
    events: CanonicalEventStore
    rollups: RollupStore
    quarantine: QuarantineSink
