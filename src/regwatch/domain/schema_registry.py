"""Schema registry: per-dataset raw header aliases for canonical field keys."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from regwatch.domain.model import DatasetKey
    from regwatch.domain.ports import SchemaMapRepository

log = logging.getLogger(__name__)


def _present(raw: Mapping[str, Any], header: str) -> str | None:
    value = raw.get(header)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class SchemaMap:
    """Ordered canonical key -> ordered raw header aliases for one dataset.

    The first alias carrying a non-empty value wins, so older and newer header
    spellings of the same dataset can share one map.
    """

    dataset: DatasetKey
    header_map: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen: dict[str, tuple[str, ...]] = {}
        for canonical_key, aliases in self.header_map.items():
            if isinstance(aliases, str):
                aliases = (aliases,)
            cleaned = tuple(alias for alias in aliases if alias)
            if not cleaned:
                raise ValueError(f"{self.dataset}: canonical key {canonical_key!r} has no aliases")
            frozen[canonical_key] = cleaned
        object.__setattr__(self, "header_map", MappingProxyType(frozen))

    def resolve(self, canonical_key: str, raw: Mapping[str, Any]) -> str | None:
        for header in self.header_map.get(canonical_key, ()):
            value = _present(raw, header)
            if value is not None:
                return value
        return None

    def resolve_all(self, raw: Mapping[str, Any]) -> dict[str, str]:
        resolved: dict[str, str] = {}
        for canonical_key in self.header_map:
            value = self.resolve(canonical_key, raw)
            if value is not None:
                resolved[canonical_key] = value
        return resolved


class SchemaRegistry:
    """Read-through cache over a :class:`SchemaMapRepository`.

    Maps only change through an explicit overwrite, so positive lookups stay
    cached until :meth:`invalidate`. Misses are not cached: a dataset seeded while a
    worker is running becomes visible on its next row.
    """

    def __init__(self, repository: SchemaMapRepository) -> None:
        self._repository = repository
        self._cache: dict[DatasetKey, SchemaMap] = {}
        self._lock = threading.Lock()

    def schema_for(self, dataset: DatasetKey) -> SchemaMap | None:
        cached = self._cache.get(dataset)
        if cached is not None:
            return cached
        schema_map = self._repository.get(dataset)
        if schema_map is None:
            log.debug("No schema map registered for %s", dataset)
            return None
        with self._lock:
            return self._cache.setdefault(dataset, schema_map)

    def has_map(self, dataset: DatasetKey) -> bool:
        return self.schema_for(dataset) is not None

    def resolve_field(
        self, dataset: DatasetKey, canonical_key: str, raw: Mapping[str, Any]
    ) -> str | None:
        """Return the first non-empty aliased value, or None (never raises on unknown data)."""

        schema_map = self.schema_for(dataset)
        if schema_map is None:
            return None
        return schema_map.resolve(canonical_key, raw)

    def resolve_all(self, dataset: DatasetKey, raw: Mapping[str, Any]) -> dict[str, str]:
        schema_map = self.schema_for(dataset)
        if schema_map is None:
            return {}
        return schema_map.resolve_all(raw)

    def invalidate(self, dataset: DatasetKey | None = None) -> None:
        with self._lock:
            if dataset is None:
                self._cache.clear()
            else:
                self._cache.pop(dataset, None)
