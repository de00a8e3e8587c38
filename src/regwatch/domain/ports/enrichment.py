"""Port for triggering the external enrichment collaborator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence


@runtime_checkable
class EnrichmentTrigger(Protocol):
    """Fire-and-forget request to enrich events; must never raise into ingestion."""

    def request(self, event_ids: Sequence[str]) -> None: ...
