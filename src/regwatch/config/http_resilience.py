"""Retry, rate limit and cache settings for the outbound HTTP clients.

Two collaborators use them: the dataset host (large GET downloads, cached on
disk for a day) and the enrichment endpoint (small POSTs, never cached).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
from httpx_retries import Retry

if TYPE_CHECKING:
    from collections.abc import Mapping

DOWNLOAD_CACHE_TTL_SECONDS = 24 * 60 * 60

_RETRYABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})
_RETRYABLE_ERRORS: tuple[type[httpx.HTTPError], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Transport-level retries, distinct from the merge retry policy of the store."""

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    backoff_jitter: float = 1.0
    # The enrichment endpoint dedupes on event id, so POST is safe to repeat.
    methods: frozenset[str] = frozenset({"GET", "HEAD", "POST"})
    status_codes: frozenset[int] = _RETRYABLE_STATUS

    def build(self) -> Retry:
        return Retry(
            total=self.total,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff_wait,
            backoff_jitter=self.backoff_jitter,
            respect_retry_after_header=True,
            allowed_methods=sorted(self.methods),
            status_forcelist=sorted(self.status_codes),
            retry_on_exceptions=_RETRYABLE_ERRORS,
        )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float = 1.0


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """On-disk response cache; ``sqlite_path=None`` means the data directory default."""

    sqlite_path: str | None = None
    ttl_seconds: float | None = DOWNLOAD_CACHE_TTL_SECONDS
    refresh_ttl_on_access: bool = False


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = None
    default_headers: Mapping[str, str] | None = None


def download_resilience_config(*, cache_path: str | None = None) -> ResilienceConfig:
    """Client settings for fetching raw dataset files (cached, politely rate limited)."""

    return ResilienceConfig(
        name="dataset-download",
        timeout_seconds=120.0,
        retry=RetryPolicy(total=4),
        ratelimit=RateLimit(max_calls=2),
        cache=CacheConfig(sqlite_path=cache_path),
    )
