from __future__ import annotations

import pytest

from regwatch.adapters.memory import InMemorySchemaMapRepository
from regwatch.domain.catalog import default_schema_maps
from regwatch.domain.model import DatasetKey
from regwatch.domain.schema_registry import SchemaMap, SchemaRegistry

ODI_96 = DatasetKey("OSHA", "odi-96-01")
ITA = DatasetKey("OSHA", "ita")


def _registry() -> SchemaRegistry:
    repository = InMemorySchemaMapRepository()
    for schema_map in default_schema_maps():
        repository.save(schema_map)
    return SchemaRegistry(repository)


def test_same_canonical_field_resolves_from_different_headers() -> None:
    registry = _registry()

    assert registry.resolve_field(ODI_96, "illness_skin", {"C7A": "3"}) == "3"
    assert registry.resolve_field(ITA, "illness_skin", {"total_skin_disorders": "2"}) == "2"


def test_first_non_empty_alias_wins_in_declaration_order() -> None:
    registry = _registry()
    row = {"year_filing_for": " ", "created_timestamp": "2023-02-01T10:00:00"}

    assert registry.resolve_field(ITA, "event_date", row) == "2023-02-01T10:00:00"

    row["year_filing_for"] = "2022"
    assert registry.resolve_field(ITA, "event_date", row) == "2022"


def test_unknown_dataset_resolves_to_none_without_raising() -> None:
    registry = _registry()
    unknown = DatasetKey("EPA", "echo")

    assert registry.resolve_field(unknown, "city", {"city": "Miami"}) is None
    assert registry.resolve_all(unknown, {"city": "Miami"}) == {}
    assert registry.has_map(unknown) is False


def test_resolve_all_skips_blank_values() -> None:
    registry = _registry()

    resolved = registry.resolve_all(ITA, {"city": "Miami", "state": "", "ein": "12-345"})

    assert resolved == {"city": "Miami", "ein": "12-345"}


def test_registry_sees_maps_seeded_after_a_miss() -> None:
    repository = InMemorySchemaMapRepository()
    registry = SchemaRegistry(repository)
    dataset = DatasetKey("EPA", "echo")

    assert registry.schema_for(dataset) is None
    repository.save(SchemaMap(dataset, {"city": ("FAC_CITY",)}))

    assert registry.resolve_field(dataset, "city", {"FAC_CITY": "Tulsa"}) == "Tulsa"


def test_schema_map_is_immutable_and_rejects_empty_aliases() -> None:
    schema_map = SchemaMap(ITA, {"city": ["city", "City"]})

    assert schema_map.header_map["city"] == ("city", "City")
    with pytest.raises(TypeError):
        schema_map.header_map["state"] = ("state",)  # type: ignore[index]
    with pytest.raises(ValueError, match="no aliases"):
        SchemaMap(ITA, {"city": ()})


def test_invalidate_picks_up_an_overwritten_map() -> None:
    repository = InMemorySchemaMapRepository()
    dataset = DatasetKey("EPA", "echo")
    repository.save(SchemaMap(dataset, {"city": ("FAC_CITY",)}))
    registry = SchemaRegistry(repository)
    row = {"FAC_CITY": "Tulsa", "CITY_NAME": "Tulsa OK"}

    assert registry.resolve_field(dataset, "city", row) == "Tulsa"
    repository.save(SchemaMap(dataset, {"city": ("CITY_NAME",)}))
    assert registry.resolve_field(dataset, "city", row) == "Tulsa"

    registry.invalidate(dataset)

    assert registry.resolve_field(dataset, "city", row) == "Tulsa OK"
