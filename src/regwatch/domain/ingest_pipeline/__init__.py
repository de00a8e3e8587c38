"""Ingestion pipeline: normalize rows, merge events, maintain rollups."""

from __future__ import annotations

from .context import BatchFailure, BatchResult, IngestReport, RowFailure
from .identity import IdentityInputs, IdentityPolicy, event_id_for
from .merge import Ack, MergeCoordinator, MergeRetryPolicy
from .normalizer import RowNormalizer, parse_event_date, parse_money
from .rollups import AggregateMaintainer, RollupOutcome
from .runner import IngestionPipeline, build_pipeline
from .splitter import split_rows
from .worker import BatchIngestionWorker, IngestionPool

__all__ = [
    "Ack",
    "AggregateMaintainer",
    "BatchFailure",
    "BatchIngestionWorker",
    "BatchResult",
    "IdentityInputs",
    "IdentityPolicy",
    "IngestReport",
    "IngestionPipeline",
    "IngestionPool",
    "MergeCoordinator",
    "MergeRetryPolicy",
    "RollupOutcome",
    "RowFailure",
    "RowNormalizer",
    "build_pipeline",
    "event_id_for",
    "parse_event_date",
    "parse_money",
    "split_rows",
]
