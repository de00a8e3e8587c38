"""Row normalizer: raw row -> canonical Event or a quarantined row."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Final

from regwatch.domain.entity_resolution import company_primary_form, split_site_id
from regwatch.domain.entity_resolution.text import collapse_whitespace
from regwatch.domain.model import (
    CanonicalFields,
    Event,
    QuarantinedRow,
    QuarantineReason,
    quarantine_row_id,
)

from .display import build_description, build_details, build_title
from .identity import IdentityPolicy, event_id_for

if TYPE_CHECKING:
    from collections.abc import Mapping

    from regwatch.domain.entity_resolution import EntityResolver
    from regwatch.domain.model import RawRow
    from regwatch.domain.schema_registry import SchemaRegistry

log = logging.getLogger(__name__)

# Header spellings recognised when a dataset has no registered schema map.
STRUCTURAL_ALIASES: Final[dict[str, str]] = {
    "id": "semantic_id",
    "company": "company_name",
    "employer": "company_name",
    "establishment": "company_name",
    "establishment_name": "company_name",
    "date": "event_date",
    "eventdate": "event_date",
    "event_date": "event_date",
    "incident_date": "event_date",
    "title": "event_title",
    "narrative": "narrative",
    "summary": "narrative",
    "zip_code": "zip",
    "zipcode": "zip",
    "postal_code": "zip",
    "fine": "monetary_amount",
    "penalty": "monetary_amount",
    "amount": "monetary_amount",
}

_US_DATE: Final[re.Pattern[str]] = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\b")
_BARE_YEAR: Final[re.Pattern[str]] = re.compile(r"^(\d{4})(?:\.0+)?$")
_MONEY_NOISE: Final[re.Pattern[str]] = re.compile(r"[$,\s]")
_MIN_YEAR: Final[int] = 1900
_MAX_YEAR: Final[int] = 2100


def parse_event_date(value: str | None) -> date | None:
    """Accept ISO dates/timestamps, ``MM/DD/YYYY`` and bare years (-> January 1st)."""

    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    year_match = _BARE_YEAR.match(text)
    if year_match is not None:
        year = int(year_match.group(1))
        return date(year, 1, 1) if _MIN_YEAR <= year <= _MAX_YEAR else None

    us_match = _US_DATE.match(text)
    if us_match is not None:
        month, day, year = (int(part) for part in us_match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(normalized).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_money(value: str | None) -> Decimal | None:
    if value is None:
        return None
    cleaned = _MONEY_NOISE.sub("", value)
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        log.debug("Ignoring non-numeric monetary amount %r", value)
        return None
    return amount if amount.is_finite() else None


def structural_fields(raw: Mapping[str, Any]) -> dict[str, str | None]:
    """Best-effort canonical fields for rows whose dataset has no schema map."""

    inferred: dict[str, str | None] = {}
    for header, value in raw.items():
        key = re.sub(r"\s+", "_", str(header).strip().lower())
        key = STRUCTURAL_ALIASES.get(key, key)
        text = None if value is None else str(value).strip()
        if text and key not in inferred:
            inferred[key] = text
    return inferred


class RowNormalizer:
    """Combine schema resolution, entity resolution and identity into one Event.

    Rows that cannot be anchored to a reviewed state, city and (when named)
    company, or that lack a usable date, come back as :class:`QuarantinedRow`
    with a typed reason instead of raising.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        resolver: EntityResolver,
        *,
        identity: IdentityPolicy | None = None,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._identity = identity or IdentityPolicy()

    def canonical_fields(self, row: RawRow) -> CanonicalFields:
        schema_map = self._registry.schema_for(row.dataset)
        if schema_map is None:
            return CanonicalFields.from_mapping(structural_fields(row.values))
        return CanonicalFields.from_mapping(schema_map.resolve_all(row.values))

    def normalize(self, row: RawRow) -> Event | QuarantinedRow:
        fields = self.canonical_fields(row)

        def quarantine(
            reason: QuarantineReason, detail: str, *, city: str | None = None
        ) -> QuarantinedRow:
            log.info("Quarantined row from %s: %s (%s)", row.dataset, reason, detail)
            return QuarantinedRow(
                row_id=quarantine_row_id(row.dataset, row.values),
                dataset=row.dataset,
                source_url=row.source_url,
                reason=reason,
                detail=detail,
                raw=dict(row.values),
                company_name=fields.company_name,
                city=city or fields.city,
                state=fields.state,
            )

        if not fields.state or not fields.city:
            return quarantine(QuarantineReason.MISSING_LOCATION, "Missing City/State")

        state = self._resolver.resolve_state(fields.state)
        if not state.matched or state.slug is None:
            return quarantine(
                QuarantineReason.UNRESOLVED_STATE, f"Unknown state {fields.state!r}"
            )

        city = self._resolver.resolve_city(fields.city, state=state.slug)
        if not city.matched or city.slug is None:
            return quarantine(
                QuarantineReason.UNRESOLVED_CITY,
                f"Unknown city {city.normalized!r} in {state.slug}",
                city=city.normalized,
            )

        company_name: str | None = None
        company_slug: str | None = None
        site_id: str | None = None
        if fields.company_name:
            name, site_id = split_site_id(fields.company_name)
            company = self._resolver.resolve_company(name)
            if not company.matched or company.slug is None:
                return quarantine(
                    QuarantineReason.UNRESOLVED_COMPANY,
                    f"Unknown company {name!r}",
                    city=city.normalized,
                )
            company_name = collapse_whitespace(name)
            company_slug = company.slug

        occurred_at = parse_event_date(fields.event_date)
        if occurred_at is None:
            return quarantine(
                QuarantineReason.MISSING_DATE,
                f"Unparseable or missing event date {fields.event_date!r}",
                city=city.normalized,
            )

        inputs = self._identity.inputs(
            source=row.dataset.source,
            occurred_at=occurred_at,
            entity_key=company_slug or company_primary_form(company_name or ""),
            city_slug=city.slug,
            fields=fields,
            raw=row.values,
        )
        if inputs is None:
            return quarantine(
                QuarantineReason.MISSING_NATURAL_KEY,
                "Strict identity requires a natural key",
                city=city.normalized,
            )

        city_name = city.normalized or fields.city
        return Event(
            event_id=event_id_for(inputs),
            dataset=row.dataset,
            source_url=row.source_url,
            ingested_at=row.ingested_at,
            occurred_at=occurred_at,
            state=state.slug,
            city=city_name,
            city_slug=city.slug,
            company_name=company_name,
            company_slug=company_slug,
            site_id=site_id,
            title=build_title(
                fields,
                company=company_name,
                city=city_name,
                state=state.slug,
                occurred_at=occurred_at,
            ),
            description=build_description(fields),
            details=build_details(fields),
            monetary_amount=parse_money(fields.monetary_amount),
            raw=dict(row.values),
        )
