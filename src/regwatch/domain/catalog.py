"""Seed catalogs: built-in schema maps and the US state table."""

from __future__ import annotations

from typing import Final

from regwatch.domain.model import DatasetKey
from regwatch.domain.schema_registry import SchemaMap

OSHA: Final[str] = "OSHA"

# Codes that look like states but must never resolve to one.
INVALID_STATE_CODES: Final[frozenset[str]] = frozenset({"US", "ON", "XX"})

US_STATES: Final[tuple[tuple[str, str], ...]] = (
    ("AL", "Alabama"),
    ("AK", "Alaska"),
    ("AZ", "Arizona"),
    ("AR", "Arkansas"),
    ("CA", "California"),
    ("CO", "Colorado"),
    ("CT", "Connecticut"),
    ("DE", "Delaware"),
    ("FL", "Florida"),
    ("GA", "Georgia"),
    ("HI", "Hawaii"),
    ("ID", "Idaho"),
    ("IL", "Illinois"),
    ("IN", "Indiana"),
    ("IA", "Iowa"),
    ("KS", "Kansas"),
    ("KY", "Kentucky"),
    ("LA", "Louisiana"),
    ("ME", "Maine"),
    ("MD", "Maryland"),
    ("MA", "Massachusetts"),
    ("MI", "Michigan"),
    ("MN", "Minnesota"),
    ("MS", "Mississippi"),
    ("MO", "Missouri"),
    ("MT", "Montana"),
    ("NE", "Nebraska"),
    ("NV", "Nevada"),
    ("NH", "New Hampshire"),
    ("NJ", "New Jersey"),
    ("NM", "New Mexico"),
    ("NY", "New York"),
    ("NC", "North Carolina"),
    ("ND", "North Dakota"),
    ("OH", "Ohio"),
    ("OK", "Oklahoma"),
    ("OR", "Oregon"),
    ("PA", "Pennsylvania"),
    ("RI", "Rhode Island"),
    ("SC", "South Carolina"),
    ("SD", "South Dakota"),
    ("TN", "Tennessee"),
    ("TX", "Texas"),
    ("UT", "Utah"),
    ("VT", "Vermont"),
    ("VA", "Virginia"),
    ("WA", "Washington"),
    ("WV", "West Virginia"),
    ("WI", "Wisconsin"),
    ("WY", "Wyoming"),
    ("DC", "District of Columbia"),
    ("PR", "Puerto Rico"),
    ("VI", "Virgin Islands"),
    ("GU", "Guam"),
    ("AS", "American Samoa"),
    ("MP", "Northern Mariana Islands"),
    ("UM", "US Minor Outlying Islands"),
)

STATE_CODES: Final[frozenset[str]] = frozenset(code for code, _ in US_STATES)
STATE_NAMES: Final[dict[str, str]] = {name.upper(): code for code, name in US_STATES}


_SEVERE_INCIDENT: Final[dict[str, tuple[str, ...]]] = {
    "semantic_id": ("ID",),
    "event_date": ("EventDate",),
    "company_name": ("Employer",),
    "street": ("Address1", "Address2"),
    "city": ("City",),
    "state": ("State",),
    "zip": ("Zip",),
    "location_lat": ("Latitude",),
    "location_lon": ("Longitude",),
    "naics_code": ("Primary NAICS",),
    "description": ("Final Narrative",),
    "violation_type": ("NatureTitle", "EventTitle"),
    "violation_code": ("Nature", "Event", "Part of Body", "Source", "Secondary Source"),
    "violation_part": ("Part of Body Title",),
    "violation_source": ("SourceTitle", "Secondary Source Title"),
    "injuries_hospitalized": ("Hospitalized",),
    "injuries_amputation": ("Amputation",),
    "injuries_eye_loss": ("Loss of Eye",),
    "inspection_id": ("Inspection",),
}

_ODI_96_01: Final[dict[str, tuple[str, ...]]] = {
    "data_reliability": ("SURVEYSTATUS",),
    "company_name": ("ESTAB_NAME", "ESTAB_NAME2"),
    "street": ("STREET",),
    "city": ("CITY",),
    "state": ("STATE",),
    "zip": ("ZIP",),
    "event_date": ("Year",),
    "sic_code": ("SIC",),
    "phone": ("PHONE",),
    "avg_annual_employees": ("Q1",),
    "total_hours_worked": ("Q2",),
    "total_injury_deaths": ("C1",),
    "injuries_days_away_restricted": ("C2",),
    "injuries_days_away": ("C3",),
    "total_days_away": ("C4",),
    "total_days_restricted": ("C5",),
    "injuries_no_lost_days": ("C6",),
    "illness_skin": ("C7A",),
    "illness_dust_lung": ("C7B",),
    "illness_respiratory_toxic": ("C7C",),
    "illness_poisoning": ("C7D",),
    "illness_physical_agents": ("C7E",),
    "illness_repeated_trauma": ("C7F",),
    "illness_other": ("C7G",),
    "total_illness_deaths": ("C8",),
}

_ODI_02_11: Final[dict[str, tuple[str, ...]]] = {
    "data_reliability": ("SURVEYSTATUS",),
    "company_name": ("ESTAB_NAME", "ESTAB_NAME2"),
    "street": ("STREET",),
    "city": ("CITY",),
    "state": ("STATE",),
    "zip": ("ZIP",),
    "event_date": ("Year",),
    "sic_code": ("SIC",),
    "naics_code": ("NAICS",),
    "phone": ("PHONE",),
    "avg_annual_employees": ("EMP_Q1",),
    "total_hours_worked": ("HOURS_Q2",),
    "injury_illness_occurred": ("INJILL_Q4",),
    "total_deaths": ("DEATHS_G",),
    "cases_days_away": ("CAWAY_H",),
    "cases_job_transfer": ("CTRANSFER_I",),
    "cases_other": ("COTHER_J",),
    "days_away": ("DAWAY_L",),
    "days_job_transfer": ("DTRANSFER_K",),
    "injuries_total": ("INJ_M1",),
    "illness_skin": ("SKIN_M2",),
    "illness_respiratory": ("RESP_M3",),
    "illness_poisoning": ("POIS_M4",),
    "illness_hearing_loss": ("HEARING_M",),
    "illness_other": ("OTHER_M5",),
}

_ITA: Final[dict[str, tuple[str, ...]]] = {
    "semantic_id": ("id",),
    "company_name": ("company_name", "establishment_name"),
    "ein": ("ein",),
    "street": ("street_address",),
    "city": ("city",),
    "state": ("state",),
    "zip": ("zip_code",),
    "naics_code": ("naics_code",),
    "industry_desc": ("industry_description",),
    "avg_annual_employees": ("annual_average_employees",),
    "total_hours_worked": ("total_hours_worked",),
    "total_deaths": ("total_deaths",),
    "cases_days_away": ("total_dafw_cases",),
    "cases_job_transfer": ("total_djtr_cases",),
    "cases_other": ("total_other_cases",),
    "days_away": ("total_dafw_days",),
    "days_job_transfer": ("total_djtr_days",),
    "injuries_total": ("total_injuries",),
    "illness_poisoning": ("total_poisonings",),
    "illness_respiratory": ("total_respiratory_conditions",),
    "illness_skin": ("total_skin_disorders",),
    "illness_hearing_loss": ("total_hearing_loss",),
    "illness_other": ("total_other_illnesses",),
    "establishment_id": ("establishment_id",),
    "establishment_type": ("establishment_type",),
    "size": ("size",),
    "event_date": ("year_filing_for", "created_timestamp"),
    "change_reason": ("change_reason",),
}


def default_schema_maps() -> tuple[SchemaMap, ...]:
    """Schema maps for the OSHA datasets the pipeline ships with."""

    return (
        SchemaMap(DatasetKey(OSHA, "severe-incident"), _SEVERE_INCIDENT),
        SchemaMap(DatasetKey(OSHA, "odi-96-01"), _ODI_96_01),
        SchemaMap(DatasetKey(OSHA, "odi-02-11"), _ODI_02_11),
        SchemaMap(DatasetKey(OSHA, "ita"), _ITA),
    )
