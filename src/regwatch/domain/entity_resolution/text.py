"""Text normalization rules for company, city and state references.

Rules are plain compiled regular expressions applied in a fixed order; the
resolver derives a primary form (used for the first alias lookup) and a
secondary, more aggressively simplified form (used for the retry).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from regwatch.domain.catalog import INVALID_STATE_CODES, STATE_CODES, STATE_NAMES


@dataclass(frozen=True, slots=True)
class NoiseRule:
    name: str
    pattern: re.Pattern[str]
    replacement: str = ""

    def apply(self, value: str) -> str:
        return self.pattern.sub(self.replacement, value)


_STREET_SUFFIXES = (
    r"STREET|ST|AVENUE|AVE|ROAD|RD|DRIVE|DR|BLVD|BOULEVARD|HIGHWAY|HWY|WAY|LANE|LN"
    r"|COURT|CT|CIRCLE|CIR|PLACE|PL|PARKWAY|PKWY"
)

# Order matters: street suffixes are stripped before ST expands to SAINT.
CITY_NOISE_RULES: Final[tuple[NoiseRule, ...]] = (
    NoiseRule(
        "address-number-prefix",
        re.compile(
            rf"^\d+[A-Z]?\s+(?:[NSEW]\.?\s+)?(?:[A-Z0-9]+\s+){{0,3}}(?:{_STREET_SUFFIXES})\.?\s+",
        ),
    ),
    NoiseRule(
        "unit-prefix",
        re.compile(
            r"^(?:STE|SUITE|UNIT|APT|BLDG|BUILDING|FLOOR|FL|RM|ROOM|P\.?\s*O\.?\s*BOX)"
            r"\b\.?\s*#?\s*\d*\s*"
        ),
    ),
    NoiseRule("trailing-zip", re.compile(r"\s*\d{5}(?:-\d{4})?\s*$")),
    NoiseRule("trailing-street-suffix", re.compile(rf"\s+(?:{_STREET_SUFFIXES})\.?$")),
    NoiseRule("trailing-place-suffix", re.compile(r"\s+(?:TOWNSHIP|TWP)\.?$")),
    NoiseRule("leading-number", re.compile(r"^\d+\s+")),
    NoiseRule("whitespace", re.compile(r"\s+"), " "),
)

CITY_ABBREVIATIONS: Final[tuple[NoiseRule, ...]] = (
    NoiseRule("mount", re.compile(r"^MT\.?\s+"), "MOUNT "),
    NoiseRule("fort", re.compile(r"^FT\.?\s+"), "FORT "),
    NoiseRule("saint", re.compile(r"\bST\b\.?"), "SAINT"),
    NoiseRule("sainte", re.compile(r"\bSTE\b\.?"), "SAINTE"),
    NoiseRule("beach", re.compile(r"\bBCH\b"), "BEACH"),
    NoiseRule("heights", re.compile(r"\bHTS\b"), "HEIGHTS"),
    NoiseRule("springs", re.compile(r"\bSPGS\b"), "SPRINGS"),
    NoiseRule("valley", re.compile(r"\bVLY\b"), "VALLEY"),
    NoiseRule("center", re.compile(r"\bCTR\b"), "CENTER"),
    NoiseRule("park", re.compile(r"\bPK\b"), "PARK"),
    NoiseRule("port", re.compile(r"\bPT\b"), "PORT"),
)

CITY_SYNONYMS: Final[dict[str, str]] = {"NYC": "NEW YORK"}

# Census place names carry their type in lower case, so "Carson City" keeps its "City".
_CENSUS_PLACE_TYPE: Final[re.Pattern[str]] = re.compile(r"\s+(city|town|village|CDP|borough)$")

_CITY_QUALIFIERS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\s*\([^)]*\)"),
    re.compile(
        r"\s+(?:CITY\s+AND\s+COUNTY|CONSOLIDATED|UNIFIED|METROPOLITAN)"
        r"(?:\s+(?:GOVERNMENT|GOVT|CITY))?(?:\s+\(?BALANCE\)?)?$"
    ),
    re.compile(r"\s+(?:METRO(?:POLITAN)?\s+)?GOVERNMENT$"),
    re.compile(r"\s+(?:CITY|TOWN|VILLAGE|CDP|BOROUGH)$"),
)

_SITE_ID: Final[re.Pattern[str]] = re.compile(r"\s*[#\-]\s*(\d+)\s*$")
_STORE_NUMBER: Final[re.Pattern[str]] = re.compile(
    r"\s+(?:STORE|STR|UNIT|SITE|NO\.?)\s*#?\s*(\d+)\s*$", re.IGNORECASE
)
_COMPANY_SUFFIXES: Final[re.Pattern[str]] = re.compile(
    r"\b(?:inc|corp|corporation|incorporated|llc|l\.l\.c|co|company|ltd|lp|llp|plc"
    r"|store|stores|supercenter|fulfillment|services|motors|coffee)\b\.?",
)
_SHARE_CLASS: Final[re.Pattern[str]] = re.compile(
    r"\s+(?:Common Stock|Class [A-C]|Ordinary Shares|American Depositary Shares"
    r"|Depositary Shares|Capital Stock|Units|Rights|Warrants|Preferred Stock|Series [A-C])\b",
    re.IGNORECASE,
)
_TRAILING_PUNCTUATION: Final[re.Pattern[str]] = re.compile(r"[\s.,;:]+$")
_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")
_NON_SLUG: Final[re.Pattern[str]] = re.compile(r"[^\w-]+")
_DASH_RUNS: Final[re.Pattern[str]] = re.compile(r"-{2,}")


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def slugify(value: str) -> str:
    """``"Acme Corp."`` -> ``"acme-corp"``."""

    lowered = collapse_whitespace(value).lower().replace("_", " ")
    dashed = _WHITESPACE.sub("-", lowered)
    cleaned = _NON_SLUG.sub("", dashed)
    return _DASH_RUNS.sub("-", cleaned).strip("-")


def split_site_id(company_name: str) -> tuple[str, str | None]:
    """Split a trailing store/site number: ``"Walmart #1234"`` -> ``("Walmart", "1234")``."""

    name = company_name.strip()
    for pattern in (_SITE_ID, _STORE_NUMBER):
        match = pattern.search(name)
        if match is None:
            continue
        head = name[: match.start()].strip()
        if re.search(r"[A-Za-z]", head):
            return head, match.group(1)
    return name, None


# Companies -------------------------------------------------------------------


def company_primary_form(raw: str) -> str:
    """Case- and whitespace-insensitive key; corporate suffixes are kept."""

    lowered = collapse_whitespace(raw).lower()
    return _TRAILING_PUNCTUATION.sub("", lowered)


def strip_share_class(listing_name: str) -> str:
    """``"Alphabet Inc. Class A Common Stock"`` -> ``"Alphabet Inc."``."""

    return collapse_whitespace(_SHARE_CLASS.sub("", listing_name))


def company_secondary_form(raw: str) -> str:
    """Aggressive simplification used for the retry lookup and as an extra alias."""

    lowered = raw.lower()
    without_digits = re.sub(r"[#0-9]", "", lowered)
    without_suffixes = _COMPANY_SUFFIXES.sub("", without_digits)
    spaced = re.sub(r"[-,.&']", " ", without_suffixes)
    return collapse_whitespace(spaced)


# Cities ----------------------------------------------------------------------


def _pick_city_part(value: str) -> str:
    """For ``"123 MAIN ST, MIAMI"`` style input keep the last meaningful part."""

    if "," not in value:
        return value
    parts = [part.strip() for part in value.split(",") if part.strip()]
    for part in reversed(parts):
        if len(re.sub(r"\d+", "", part).strip()) > 2:  # noqa: PLR2004
            return part
    return value


def _trailing_words(value: str) -> str:
    """Keep the trailing run of digit-free words when digits survived the rules."""

    if not re.search(r"\d", value):
        return value
    kept: list[str] = []
    for word in reversed(value.split()):
        if not re.search(r"\d", word) and len(word) > 1:
            kept.insert(0, word)
        elif kept:
            break
    return " ".join(kept) if kept else value


def clean_city_name(raw: str) -> str:
    """Upper-cased display form of a city reference with address noise removed.

    ``"NEW YORK 10001"`` -> ``"NEW YORK"``; ``"123 MAIN ST, MIAMI"`` -> ``"MIAMI"``;
    ``"STE 200 ORLANDO"`` -> ``"ORLANDO"``; ``"MT. PLEASANT"`` -> ``"MOUNT PLEASANT"``.
    """

    original = collapse_whitespace(raw).upper()
    city = _pick_city_part(original)
    for rule in CITY_NOISE_RULES:
        city = rule.apply(city).strip()
    city = CITY_SYNONYMS.get(city, city)
    for rule in CITY_ABBREVIATIONS:
        city = rule.apply(city)
    city = _trailing_words(collapse_whitespace(city))
    return city or original


def city_secondary_form(cleaned_city: str) -> str:
    """Drop parenthesised and government qualifiers and any hyphenated tail."""

    city = cleaned_city.upper()
    for pattern in _CITY_QUALIFIERS:
        city = pattern.sub("", city)
    if "-" in city:
        city = city.split("-", 1)[0]
    return collapse_whitespace(city)


def split_place_type(census_name: str) -> tuple[str, str | None]:
    """Split the census place type: ``"Springfield city"`` -> ``("Springfield", "city")``."""

    name = collapse_whitespace(census_name)
    match = _CENSUS_PLACE_TYPE.search(name)
    if match is None:
        return name, None
    return name[: match.start()], match.group(1)


def city_alias(state: str, city: str) -> str:
    return f"{state.lower()}:{collapse_whitespace(city).lower()}"


def city_slug(state: str, city: str) -> str:
    """``("NY", "NEW YORK")`` -> ``"NY-new_york"``."""

    return f"{state.upper()}-{collapse_whitespace(city).lower().replace(' ', '_')}"


def title_case(value: str) -> str:
    return " ".join(word.capitalize() for word in collapse_whitespace(value).split(" "))


# States ----------------------------------------------------------------------


def state_code(raw: str) -> str | None:
    """Deterministic state resolution: a known 2-letter code or a full state name."""

    value = collapse_whitespace(raw).upper().rstrip(".")
    if len(value) == 2:  # noqa: PLR2004
        if value in INVALID_STATE_CODES or value not in STATE_CODES:
            return None
        return value
    return STATE_NAMES.get(value)
