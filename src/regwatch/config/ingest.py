"""Ingestion defaults and their environment overrides."""

from __future__ import annotations

from dataclasses import dataclass, field

from regwatch.domain.model.dataset import MAX_BATCH_ROWS

from .env import env_bool, env_float, env_int
from .errors import ConfigurationError

MAX_BATCH_SIZE = MAX_BATCH_ROWS
DEFAULT_RECENT_LIMIT = 5
DEFAULT_WORKERS = 4
DEFAULT_MERGE_MAX_ATTEMPTS = 5


@dataclass(frozen=True, slots=True)
class MergeRetryConfig:
    max_attempts: int = DEFAULT_MERGE_MAX_ATTEMPTS
    base_delay_seconds: float = 0.05
    max_delay_seconds: float = 2.0
    jitter_seconds: float = 0.05


@dataclass(frozen=True, slots=True)
class IngestConfig:
    batch_size: int = MAX_BATCH_SIZE
    recent_limit: int = DEFAULT_RECENT_LIMIT
    workers: int = DEFAULT_WORKERS
    row_workers: int = 1
    strict_identity: bool = False
    learn_aliases: bool = True
    merge_retry: MergeRetryConfig = field(default_factory=MergeRetryConfig)

    def __post_init__(self) -> None:
        if not 1 <= self.batch_size <= MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {self.batch_size}"
            )
        if self.recent_limit < 1:
            raise ConfigurationError(f"recent_limit must be positive, got {self.recent_limit}")
        if self.workers < 1 or self.row_workers < 1:
            raise ConfigurationError("worker counts must be positive")


def get_merge_retry_config() -> MergeRetryConfig:
    return MergeRetryConfig(
        max_attempts=env_int(
            "REGWATCH_MERGE_MAX_ATTEMPTS", DEFAULT_MERGE_MAX_ATTEMPTS, minimum=1
        ),
        base_delay_seconds=env_float("REGWATCH_MERGE_BASE_DELAY", 0.05, minimum=0.0),
        max_delay_seconds=env_float("REGWATCH_MERGE_MAX_DELAY", 2.0, minimum=0.0),
        jitter_seconds=env_float("REGWATCH_MERGE_JITTER", 0.05, minimum=0.0),
    )


def get_ingest_config() -> IngestConfig:
    return IngestConfig(
        batch_size=env_int("REGWATCH_BATCH_SIZE", MAX_BATCH_SIZE),
        recent_limit=env_int("REGWATCH_RECENT_LIMIT", DEFAULT_RECENT_LIMIT),
        workers=env_int("REGWATCH_WORKERS", DEFAULT_WORKERS),
        row_workers=env_int("REGWATCH_ROW_WORKERS", 1),
        strict_identity=env_bool("REGWATCH_STRICT_IDENTITY", False),
        learn_aliases=env_bool("REGWATCH_LEARN_ALIASES", True),
        merge_retry=get_merge_retry_config(),
    )
