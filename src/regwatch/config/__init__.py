"""Application configuration helpers."""

from __future__ import annotations

from .enrichment import EnrichmentConfig, get_enrichment_config
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    download_resilience_config,
)
from .ingest import (
    MAX_BATCH_SIZE,
    IngestConfig,
    MergeRetryConfig,
    get_ingest_config,
    get_merge_retry_config,
)
from .logging import configure_logging, resolve_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "MAX_BATCH_SIZE",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "EnrichmentConfig",
    "IngestConfig",
    "MergeRetryConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "download_resilience_config",
    "get_database_config",
    "get_enrichment_config",
    "get_ingest_config",
    "get_merge_retry_config",
    "get_storage_config",
    "require_env_vars",
    "resolve_log_level",
]
