"""Typed view over the canonical fields a schema map produced for one row."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


@dataclass(frozen=True, slots=True)
class CanonicalFields:
    """Well-known canonical keys as attributes, everything else in ``extras``.

    Every value is a trimmed non-empty string or None; typing beyond that
    (dates, money) is the normalizer's job.
    """

    semantic_id: str | None = None
    event_date: str | None = None
    company_name: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    event_title: str | None = None
    description: str | None = None
    narrative: str | None = None
    violation_type: str | None = None
    monetary_amount: str | None = None
    avg_annual_employees: str | None = None
    total_hours_worked: str | None = None
    extras: Mapping[str, str] = field(default_factory=dict)

    KNOWN_KEYS: ClassVar[frozenset[str]]

    @classmethod
    def from_mapping(cls, values: Mapping[str, str | None]) -> CanonicalFields:
        known: dict[str, str] = {}
        extras: dict[str, str] = {}
        for key, value in values.items():
            if value is None:
                continue
            text = value.strip()
            if not text:
                continue
            if key in cls.KNOWN_KEYS:
                known[key] = text
            else:
                extras[key] = text
        return cls(**known, extras=extras)

    def get(self, key: str) -> str | None:
        if key in self.KNOWN_KEYS:
            return getattr(self, key)
        return self.extras.get(key)

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield every populated canonical field, known keys first."""

        for name in sorted(self.KNOWN_KEYS):
            value = getattr(self, name)
            if value is not None:
                yield name, value
        yield from sorted(self.extras.items())

    @property
    def is_annual_summary(self) -> bool:
        return self.avg_annual_employees is not None or self.total_hours_worked is not None


CanonicalFields.KNOWN_KEYS = frozenset(
    item.name for item in fields(CanonicalFields) if item.name != "extras"
)
