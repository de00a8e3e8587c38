"""Domain port definitions for adapters."""

from __future__ import annotations

from .repositories import IngestRepositories, RepositoryCollection
from .enrichment import EnrichmentTrigger
from .persistence import (
    AliasRepository,
    CanonicalEventStore,
    EntityRepository,
    QuarantineSink,
    RollupStore,
    SchemaMapRepository,
)

__all__ = [
    "AliasRepository",
    "CanonicalEventStore",
    "EnrichmentTrigger",
    "EntityRepository",
    "IngestRepositories",
    "QuarantineSink",
    "RepositoryCollection",
    "RollupStore",
    "SchemaMapRepository",
]
