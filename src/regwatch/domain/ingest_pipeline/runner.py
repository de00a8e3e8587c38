"""Wire the pipeline components over a repository collection."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from regwatch.domain.entity_resolution import EntityResolver, ReadThroughAliasIndex
from regwatch.domain.schema_registry import SchemaRegistry

from .identity import IdentityPolicy
from .merge import MergeCoordinator, MergeRetryPolicy
from .normalizer import RowNormalizer
from .rollups import AggregateMaintainer
from .worker import BatchIngestionWorker, IngestionPool

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from regwatch.domain.model import RowBatch
    from regwatch.domain.ports import EnrichmentTrigger, IngestRepositories

    from .context import IngestReport


@dataclass(frozen=True, slots=True)
class IngestionPipeline:
    registry: SchemaRegistry
    resolver: EntityResolver
    normalizer: RowNormalizer
    merge: MergeCoordinator
    rollups: AggregateMaintainer
    worker: BatchIngestionWorker

    def run(self, batches: Iterable[RowBatch], *, workers: int = 1) -> IngestReport:
        return IngestionPool(self.worker, max_workers=workers).run(batches)


def build_pipeline(
    repositories: IngestRepositories,
    *,
    recent_limit: int = 5,
    identity: IdentityPolicy | None = None,
    learn_aliases: bool = True,
    retry_policy: MergeRetryPolicy | None = None,
    enrichment: EnrichmentTrigger | None = None,
    row_workers: int = 1,
    sleep: Callable[[float], None] | None = None,
) -> IngestionPipeline:
    registry = SchemaRegistry(repositories.schema_maps)
    resolver = EntityResolver(
        ReadThroughAliasIndex(repositories.aliases), learn_aliases=learn_aliases
    )
    normalizer = RowNormalizer(registry, resolver, identity=identity)
    merge = MergeCoordinator(repositories.events, policy=retry_policy, sleep=sleep or time.sleep)
    rollups = AggregateMaintainer(repositories.rollups, recent_limit=recent_limit)
    worker = BatchIngestionWorker(
        normalizer=normalizer,
        merge=merge,
        rollups=rollups,
        quarantine=repositories.quarantine,
        enrichment=enrichment,
        row_workers=row_workers,
    )
    return IngestionPipeline(registry, resolver, normalizer, merge, rollups, worker)
