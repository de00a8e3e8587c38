"""Entity resolution: text normalization rules and alias-backed lookup."""

from __future__ import annotations

from .resolver import EntityResolver, ReadThroughAliasIndex, Resolution
from .text import (
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

__all__ = [
    "EntityResolver",
    "ReadThroughAliasIndex",
    "Resolution",
    "city_alias",
    "city_secondary_form",
    "city_slug",
    "clean_city_name",
    "company_primary_form",
    "company_secondary_form",
    "slugify",
    "split_place_type",
    "split_site_id",
    "state_code",
    "strip_share_class",
]
