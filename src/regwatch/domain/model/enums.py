"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    COMPANY = "company"
    CITY = "city"
    STATE = "state"
    NATION = "nation"


class QuarantineReason(StrEnum):
    UNRESOLVED_STATE = "UNRESOLVED_STATE"
    UNRESOLVED_CITY = "UNRESOLVED_CITY"
    UNRESOLVED_COMPANY = "UNRESOLVED_COMPANY"
    MISSING_DATE = "MISSING_DATE"
    MISSING_LOCATION = "MISSING_LOCATION"
    MISSING_NATURAL_KEY = "MISSING_NATURAL_KEY"


class MergeStrategy(StrEnum):
    """How the canonical store applied a write."""

    ATOMIC = "atomic"
    REPLACE = "replace"


class ResolutionPath(StrEnum):
    """Which resolver step produced a slug (or that none did)."""

    DETERMINISTIC = "deterministic"
    ALIAS = "alias"
    SECONDARY = "secondary"
    MISS = "miss"
