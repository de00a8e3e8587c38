"""Async HTTP client for the dataset host and the enrichment endpoint."""

from __future__ import annotations

from contextlib import nullcontext
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import RetryTransport

from regwatch.config import get_storage_config

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from regwatch.config import CacheConfig, ResilienceConfig

log = getLogger(__name__)


class ResilientClient:
    """Rate limiter, then response cache, then retrying transport.

    Every call raises ``httpx.HTTPStatusError`` for 4xx/5xx responses that
    survive the retries. ``transport`` replaces the network layer under the
    retries; tests pass ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        options: dict[str, Any] = {
            "timeout": config.timeout_seconds,
            "headers": dict(config.default_headers or {}),
            "transport": RetryTransport(transport=transport, retry=config.retry.build()),
        }
        if config.cache is None:
            self._client: httpx.AsyncClient = httpx.AsyncClient(**options)
        else:
            self._client = AsyncCacheClient(**options, storage=_cache_storage(config.cache))

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self._client.aclose()

    async def get(self, url: str) -> httpx.Response:
        return await self._send("GET", url, follow_redirects=True)

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> httpx.Response:
        return await self._send("POST", url, json=payload)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        async with self._limiter or nullcontext():
            response = await self._client.request(method, url, **kwargs)
        log.debug("%s: %s %s -> %d", self.config.name, method, url, response.status_code)
        response.raise_for_status()
        return response


def _cache_storage(config: CacheConfig) -> AsyncSqliteStorage:
    database_path = config.sqlite_path or str(get_storage_config().http_cache_path())
    return AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )
