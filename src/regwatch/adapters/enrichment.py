"""HTTP trigger for the external enrichment collaborator."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from regwatch.adapters.http_resilience import ResilientClient
from regwatch.config import EnrichmentConfig

if TYPE_CHECKING:
    from collections.abc import Sequence

log = getLogger(__name__)


class NullEnrichmentTrigger:
    """Trigger used when no enrichment endpoint is configured."""

    def request(self, event_ids: Sequence[str]) -> None:
        log.debug("Enrichment disabled; skipping %d event(s)", len(event_ids))


@dataclass(slots=True)
class HttpEnrichmentTrigger:
    """POST one ``{"event_id": ...}`` body per newly created event.

    Failures of any kind are logged and dropped: the canonical row is already
    stored and the collaborator can be re-triggered later.
    """

    config: EnrichmentConfig
    transport: httpx.AsyncBaseTransport | None = field(default=None)
    sent: int = field(default=0, init=False)
    failed: int = field(default=0, init=False)

    def request(self, event_ids: Sequence[str]) -> None:
        if not event_ids or self.config.endpoint is None:
            return
        settled = self.sent + self.failed
        try:
            asyncio.run(self._request_all(self.config.endpoint, event_ids))
        except Exception:
            log.exception("Enrichment trigger aborted for %d event(s)", len(event_ids))
            self.failed += len(event_ids) - (self.sent + self.failed - settled)

    async def _request_all(self, endpoint: str, event_ids: Sequence[str]) -> None:
        async with ResilientClient(self.config.resilience(), transport=self.transport) as client:
            for event_id in event_ids:
                try:
                    await client.post_json(endpoint, {"event_id": event_id})
                except httpx.HTTPError as exc:
                    self.failed += 1
                    log.warning("Enrichment trigger failed for %s: %s", event_id, exc)
                    continue
                except Exception:
                    self.failed += 1
                    log.exception("Enrichment trigger failed for %s", event_id)
                    continue
                self.sent += 1


def build_enrichment_trigger(
    config: EnrichmentConfig | None = None,
) -> HttpEnrichmentTrigger | NullEnrichmentTrigger:
    resolved = config or EnrichmentConfig()
    if not resolved.enabled:
        return NullEnrichmentTrigger()
    return HttpEnrichmentTrigger(resolved)
