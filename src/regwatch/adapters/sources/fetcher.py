"""Download raw dataset files over HTTP through the resilient client."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from regwatch.adapters.http_resilience import ResilientClient
from regwatch.config import download_resilience_config

from .readers import parse_text

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from regwatch.config import ResilienceConfig

log = getLogger(__name__)


def _default_client_factory(
    config: ResilienceConfig, transport: httpx.AsyncBaseTransport | None
) -> ResilientClient:
    return ResilientClient(config, transport=transport)


@dataclass(slots=True)
class DatasetFetcher:
    resilience: ResilienceConfig = field(default_factory=download_resilience_config)
    transport: httpx.AsyncBaseTransport | None = None
    client_factory: Callable[
        [ResilienceConfig, httpx.AsyncBaseTransport | None], ResilientClient
    ] = field(default=_default_client_factory)

    def fetch_text(self, url: str) -> str:
        return asyncio.run(self._fetch_text_async(url))

    def fetch_rows(self, url: str) -> list[dict[str, Any]]:
        """Download ``url`` and parse it by its file extension."""

        return list(parse_text(self.fetch_text(url), name=url))

    async def _fetch_text_async(self, url: str) -> str:
        async with self.client_factory(self.resilience, self.transport) as client:
            response = await client.get(url)
        log.info("Fetched %s (%d bytes)", url, len(response.content))
        return response.content.decode("utf-8-sig")
