from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest

from regwatch.domain.entity_resolution import EntityResolver
from regwatch.domain.ingest_pipeline import (
    IdentityPolicy,
    RowNormalizer,
    parse_event_date,
    parse_money,
)
from regwatch.domain.model import DatasetKey, Event, QuarantinedRow, QuarantineReason
from regwatch.domain.schema_registry import SchemaRegistry
from tests.helpers.ingest import ACME_ROW, make_raw_row

if TYPE_CHECKING:
    from regwatch.domain.ports import IngestRepositories

SEVERE = DatasetKey("OSHA", "severe-incident")
ITA = DatasetKey("OSHA", "ita")

SEVERE_ROW: dict[str, str] = {
    "ID": "2015-123",
    "EventDate": "1/5/2015",
    "Employer": "Walmart #1234",
    "City": "123 MAIN ST, MIAMI",
    "State": "FLORIDA",
    "NatureTitle": "Fractures",
    "Nature": "111",
    "Final Narrative": "Employee fell from a ladder.",
    "Hospitalized": "1",
}


def _normalizer(
    repositories: IngestRepositories, *, identity: IdentityPolicy | None = None
) -> RowNormalizer:
    return RowNormalizer(
        SchemaRegistry(repositories.schema_maps),
        EntityResolver(repositories.aliases),
        identity=identity,
    )


def _event(result: Event | QuarantinedRow) -> Event:
    assert isinstance(result, Event), result
    return result


def _quarantined(result: Event | QuarantinedRow) -> QuarantinedRow:
    assert isinstance(result, QuarantinedRow), result
    return result


def test_unknown_dataset_row_normalizes_via_structural_headers(
    seeded_repositories: IngestRepositories,
) -> None:
    event = _event(_normalizer(seeded_repositories).normalize(make_raw_row(ACME_ROW)))

    assert event.company_slug == "acme-corp"
    assert event.company_name == "ACME CORP"
    assert event.city == "NEW YORK"
    assert event.city_slug == "NY-new_york"
    assert event.state == "NY"
    assert event.occurred_at == date(2024, 3, 1)
    assert event.title == "Incident at ACME CORP in NEW YORK, NY"
    assert event.monetary_amount == Decimal("1250.50")
    assert event.description is None
    assert event.details == {}
    assert event.raw == ACME_ROW


def test_mapped_dataset_row_builds_title_details_and_site(
    seeded_repositories: IngestRepositories,
) -> None:
    row = make_raw_row(SEVERE_ROW, dataset=SEVERE)

    event = _event(_normalizer(seeded_repositories).normalize(row))

    assert event.city_slug == "FL-miami"
    assert event.city == "MIAMI"
    assert event.company_slug == "walmart"
    assert event.company_name == "Walmart"
    assert event.site_id == "1234"
    assert event.occurred_at == date(2015, 1, 5)
    assert event.title == "Fractures at Walmart in MIAMI, FL"
    assert event.description == "Employee fell from a ladder."
    assert event.details == {
        "injuries_hospitalized": "1",
        "violation_code": "111",
        "violation_type": "Fractures",
    }


def test_annual_report_rows_get_a_report_title(seeded_repositories: IngestRepositories) -> None:
    row = make_raw_row(
        {
            "id": "ita-9",
            "company_name": "Acme Corp",
            "city": "New York",
            "state": "NY",
            "year_filing_for": "2022",
            "annual_average_employees": "120",
        },
        dataset=ITA,
    )

    event = _event(_normalizer(seeded_repositories).normalize(row))

    assert event.title == "2022 Acme Corp Annual Safety Report"
    assert event.occurred_at == date(2022, 1, 1)
    assert event.details == {"avg_annual_employees": "120"}


def test_rows_without_a_company_are_anchored_to_the_location(
    seeded_repositories: IngestRepositories,
) -> None:
    row = make_raw_row({"city": "nyc", "state": "ny", "date": "2024-01-02"})

    event = _event(_normalizer(seeded_repositories).normalize(row))

    assert event.company_slug is None
    assert event.city_slug == "NY-new_york"
    assert event.title == "Incident at Unknown Company in NEW YORK, NY"
    assert [ref.entity_type.value for ref in event.entity_refs()] == ["city", "state", "nation"]


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"state": ""}, QuarantineReason.MISSING_LOCATION),
        ({"city": None}, QuarantineReason.MISSING_LOCATION),
        ({"state": "ON"}, QuarantineReason.UNRESOLVED_STATE),
        ({"state": "US"}, QuarantineReason.UNRESOLVED_STATE),
        ({"city": "GOTHAM"}, QuarantineReason.UNRESOLVED_CITY),
        ({"company": "Globex Corporation"}, QuarantineReason.UNRESOLVED_COMPANY),
        ({"date": "not a date"}, QuarantineReason.MISSING_DATE),
        ({"date": ""}, QuarantineReason.MISSING_DATE),
    ],
)
def test_unresolvable_rows_are_quarantined_with_a_reason(
    seeded_repositories: IngestRepositories,
    overrides: dict[str, Any],
    reason: QuarantineReason,
) -> None:
    row = make_raw_row({**ACME_ROW, **overrides})

    quarantined = _quarantined(_normalizer(seeded_repositories).normalize(row))

    assert quarantined.reason == reason
    assert quarantined.raw == row.values
    assert quarantined.source_url == row.source_url


def test_quarantined_city_is_reported_in_cleaned_form(
    seeded_repositories: IngestRepositories,
) -> None:
    row = make_raw_row({**ACME_ROW, "city": "GOTHAM 10001"})

    quarantined = _quarantined(_normalizer(seeded_repositories).normalize(row))

    assert quarantined.city == "GOTHAM"
    assert quarantined.state == "NY"
    assert quarantined.company_name == "ACME CORP"
    assert "GOTHAM" in quarantined.detail


def test_quarantine_row_id_is_stable(seeded_repositories: IngestRepositories) -> None:
    normalizer = _normalizer(seeded_repositories)
    row = make_raw_row({**ACME_ROW, "state": "ON"})

    first = _quarantined(normalizer.normalize(row))
    second = _quarantined(normalizer.normalize(make_raw_row({**ACME_ROW, "state": "ON"})))

    assert first.row_id == second.row_id


def test_normalization_is_deterministic(seeded_repositories: IngestRepositories) -> None:
    normalizer = _normalizer(seeded_repositories)

    first = _event(normalizer.normalize(make_raw_row(ACME_ROW)))
    second = _event(normalizer.normalize(make_raw_row(dict(ACME_ROW))))

    assert first == second


def test_natural_key_keeps_identity_when_other_fields_change(
    seeded_repositories: IngestRepositories,
) -> None:
    normalizer = _normalizer(seeded_repositories)
    edited = {**SEVERE_ROW, "Final Narrative": "Employee fell from a step ladder."}

    original = _event(normalizer.normalize(make_raw_row(SEVERE_ROW, dataset=SEVERE)))
    updated = _event(normalizer.normalize(make_raw_row(edited, dataset=SEVERE)))

    assert original.event_id == updated.event_id


def test_rows_without_natural_key_hash_their_raw_values(
    seeded_repositories: IngestRepositories,
) -> None:
    normalizer = _normalizer(seeded_repositories)

    original = _event(normalizer.normalize(make_raw_row(ACME_ROW)))
    edited = _event(normalizer.normalize(make_raw_row({**ACME_ROW, "penalty": "$900"})))

    assert original.event_id != edited.event_id


def test_strict_identity_quarantines_rows_without_a_natural_key(
    seeded_repositories: IngestRepositories,
) -> None:
    normalizer = _normalizer(seeded_repositories, identity=IdentityPolicy(strict=True))

    quarantined = _quarantined(normalizer.normalize(make_raw_row(ACME_ROW)))
    keyed = normalizer.normalize(make_raw_row({**ACME_ROW, "id": "ACME-1"}))

    assert quarantined.reason == QuarantineReason.MISSING_NATURAL_KEY
    assert isinstance(keyed, Event)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-03-01", date(2024, 3, 1)),
        ("2024-03-01T10:15:00Z", date(2024, 3, 1)),
        ("2023-02-01 10:00:00", date(2023, 2, 1)),
        ("03/01/2024", date(2024, 3, 1)),
        ("1/5/2015 00:00", date(2015, 1, 5)),
        ("2022", date(2022, 1, 1)),
        ("2022.0", date(2022, 1, 1)),
        ("1850", None),
        ("13/45/2020", None),
        ("yesterday", None),
        ("   ", None),
        (None, None),
    ],
)
def test_parse_event_date(raw: str | None, expected: date | None) -> None:
    assert parse_event_date(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("$1,250.50", Decimal("1250.50")),
        ("900", Decimal(900)),
        ("n/a", None),
        ("", None),
        ("NaN", None),
        (None, None),
    ],
)
def test_parse_money(raw: str | None, expected: Decimal | None) -> None:
    assert parse_money(raw) == expected
