from __future__ import annotations

import pytest

from regwatch.domain.entity_resolution import (
    city_alias,
    city_secondary_form,
    city_slug,
    clean_city_name,
    company_primary_form,
    company_secondary_form,
    slugify,
    split_place_type,
    split_site_id,
    state_code,
    strip_share_class,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("NEW YORK 10001", "NEW YORK"),
        ("new york  10001-1234", "NEW YORK"),
        ("123 MAIN ST, MIAMI", "MIAMI"),
        ("STE 200 ORLANDO", "ORLANDO"),
        ("MT. PLEASANT", "MOUNT PLEASANT"),
        ("FT WORTH", "FORT WORTH"),
        ("ST. LOUIS", "SAINT LOUIS"),
        ("MIAMI BCH", "MIAMI BEACH"),
        ("NYC", "NEW YORK"),
        ("CLINTON TWP", "CLINTON"),
        ("ORLANDO BLVD", "ORLANDO"),
        ("MAIN ST", "MAIN"),
        ("SPRINGFIELD AVE. 62701", "SPRINGFIELD"),
        ("CLINTON TWP RD", "CLINTON"),
    ],
)
def test_clean_city_name_strips_address_noise(raw: str, expected: str) -> None:
    assert clean_city_name(raw) == expected


def test_city_secondary_form_drops_qualifiers() -> None:
    assert city_secondary_form("NASHVILLE-DAVIDSON METROPOLITAN GOVERNMENT") == "NASHVILLE"
    assert city_secondary_form("HONOLULU (URBAN)") == "HONOLULU"


def test_city_alias_and_slug_are_scoped_by_state() -> None:
    assert city_alias("NY", "NEW YORK") == "ny:new york"
    assert city_slug("ny", "NEW YORK") == "NY-new_york"


def test_split_site_id() -> None:
    assert split_site_id("Walmart #1234") == ("Walmart", "1234")
    assert split_site_id("Home Depot Store 0455") == ("Home Depot", "0455")
    assert split_site_id("3M") == ("3M", None)
    assert split_site_id("#12") == ("#12", None)


def test_split_place_type() -> None:
    assert split_place_type("Springfield city") == ("Springfield", "city")
    assert split_place_type("Columbia  CDP") == ("Columbia", "CDP")
    assert split_place_type("Carson City") == ("Carson City", None)
    assert split_place_type("Anchorage municipality") == ("Anchorage municipality", None)


def test_strip_share_class() -> None:
    assert strip_share_class("Alphabet Inc. Class A Common Stock") == "Alphabet Inc."
    assert strip_share_class("Alphabet Inc. Class C Capital Stock") == "Alphabet Inc."
    assert strip_share_class("Apple Inc.") == "Apple Inc."


def test_company_forms() -> None:
    assert company_primary_form("  ACME   Corp. ") == "acme corp"
    assert company_secondary_form("ACME, Inc.") == "acme"
    assert company_secondary_form("Acme-Widgets LLC 42") == "acme widgets"


def test_slugify() -> None:
    assert slugify("Acme Corp.") == "acme-corp"
    assert slugify("  Ben & Jerry's  ") == "ben-jerrys"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("NY", "NY"),
        ("ny", "NY"),
        ("New York", "NY"),
        ("  district of columbia ", "DC"),
        ("US", None),
        ("ON", None),
        ("XX", None),
        ("ZZ", None),
        ("Ontario", None),
    ],
)
def test_state_code_is_deterministic(raw: str, expected: str | None) -> None:
    assert state_code(raw) == expected
