"""Derived display fields with fixed fallback orders."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from datetime import date

    from regwatch.domain.model import CanonicalFields

DESCRIPTION_FIELDS: Final[tuple[str, ...]] = ("description", "narrative", "violation_part")

# Fields that already live on the event itself and are not repeated in details.
CORE_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "semantic_id",
        "event_date",
        "company_name",
        "city",
        "state",
        "event_title",
        "description",
        "monetary_amount",
    }
)

UNKNOWN_COMPANY: Final[str] = "Unknown Company"
DEFAULT_EVENT_KIND: Final[str] = "Incident"


def build_title(
    fields: CanonicalFields,
    *,
    company: str | None,
    city: str,
    state: str,
    occurred_at: date,
) -> str:
    """Explicit title, then annual-report title, then ``"<kind> at <company> in <place>"``."""

    if fields.event_title:
        return fields.event_title
    if fields.is_annual_summary:
        return f"{occurred_at.year} {company or UNKNOWN_COMPANY} Annual Safety Report"
    kind = fields.violation_type or DEFAULT_EVENT_KIND
    return f"{kind} at {company or UNKNOWN_COMPANY} in {city}, {state}"


def build_description(fields: CanonicalFields) -> str | None:
    for name in DESCRIPTION_FIELDS:
        value = fields.get(name)
        if value:
            return value
    return None


def build_details(fields: CanonicalFields) -> dict[str, str]:
    return {key: value for key, value in fields.items() if key not in CORE_FIELDS}
