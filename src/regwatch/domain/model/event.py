"""Canonical events and the summaries rollups keep of them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from .entities import NATION_NAME, NATION_SLUG
from .enums import EntityType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .dataset import DatasetKey


@dataclass(frozen=True, slots=True)
class EnrichmentOverlay:
    """Human-readable text written back by the enrichment collaborator."""

    title: str | None
    description: str | None
    verified: bool = False
    generated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class EntityRef:
    entity_type: EntityType
    slug: str
    name: str


@dataclass(frozen=True, slots=True)
class EventSummary:
    event_id: str
    occurred_at: date
    title: str
    source: str
    state: str
    city: str
    company_slug: str | None = None
    monetary_amount: Decimal | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "occurred_at": self.occurred_at.isoformat(),
            "title": self.title,
            "source": self.source,
            "state": self.state,
            "city": self.city,
            "company_slug": self.company_slug,
            "monetary_amount": (
                str(self.monetary_amount) if self.monetary_amount is not None else None
            ),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> EventSummary:
        amount = payload.get("monetary_amount")
        return cls(
            event_id=str(payload["event_id"]),
            occurred_at=date.fromisoformat(str(payload["occurred_at"])),
            title=str(payload["title"]),
            source=str(payload["source"]),
            state=str(payload["state"]),
            city=str(payload["city"]),
            company_slug=payload.get("company_slug"),
            monetary_amount=Decimal(str(amount)) if amount is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Event:
    """Canonical normalized record; identity is a pure function of stable fields."""

    event_id: str
    dataset: DatasetKey
    source_url: str
    ingested_at: datetime
    occurred_at: date
    state: str
    city: str
    city_slug: str
    title: str
    company_name: str | None = None
    company_slug: str | None = None
    site_id: str | None = None
    description: str | None = None
    details: Mapping[str, str] = field(default_factory=dict)
    monetary_amount: Decimal | None = None
    raw: Mapping[str, Any] = field(default_factory=dict)
    enrichment: EnrichmentOverlay | None = None

    @property
    def source(self) -> str:
        return self.dataset.source

    @property
    def display_title(self) -> str:
        if self.enrichment is not None and self.enrichment.title:
            return self.enrichment.title
        return self.title

    def with_enrichment(self, overlay: EnrichmentOverlay | None) -> Event:
        return replace(self, enrichment=overlay)

    def summary(self) -> EventSummary:
        return EventSummary(
            event_id=self.event_id,
            occurred_at=self.occurred_at,
            title=self.display_title,
            source=self.source,
            state=self.state,
            city=self.city,
            company_slug=self.company_slug,
            monetary_amount=self.monetary_amount,
        )

    def entity_refs(self) -> tuple[EntityRef, ...]:
        """Entities whose rollups this event feeds, most specific first."""

        refs: list[EntityRef] = []
        if self.company_slug is not None:
            refs.append(
                EntityRef(EntityType.COMPANY, self.company_slug, self.company_name or "")
            )
        refs.append(EntityRef(EntityType.CITY, self.city_slug, self.city))
        refs.append(EntityRef(EntityType.STATE, self.state, self.state))
        refs.append(EntityRef(EntityType.NATION, NATION_SLUG, NATION_NAME))
        return tuple(refs)
