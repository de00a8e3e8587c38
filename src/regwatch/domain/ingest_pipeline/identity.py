"""Deterministic event identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from regwatch.domain.model import canonical_json, digest

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date
    from typing import Any

    from regwatch.domain.model import CanonicalFields

IDENTITY_VERSION: Final[str] = "regwatch-event-v1"
DEFAULT_NATURAL_KEY_FIELDS: Final[tuple[str, ...]] = ("semantic_id",)


@dataclass(frozen=True, slots=True)
class IdentityInputs:
    """The ordered tuple an event id is hashed from."""

    source: str
    occurred_at: date
    entity_key: str
    city_slug: str
    natural_key: str | None
    row_digest: str

    def components(self) -> tuple[str, ...]:
        tail = f"nk:{self.natural_key}" if self.natural_key else f"row:{self.row_digest}"
        return (
            IDENTITY_VERSION,
            self.source,
            self.occurred_at.isoformat(),
            self.entity_key,
            self.city_slug,
            tail,
        )


@dataclass(frozen=True, slots=True)
class IdentityPolicy:
    """How event ids are derived.

    A dataset-provided natural key is preferred. Without one the id falls back
    to a digest of the verbatim raw row, which keeps re-ingestion idempotent as
    long as the row bytes do not change. ``strict`` refuses that fallback.
    """

    natural_key_fields: tuple[str, ...] = DEFAULT_NATURAL_KEY_FIELDS
    strict: bool = False

    def natural_key(self, fields: CanonicalFields) -> str | None:
        for name in self.natural_key_fields:
            value = fields.get(name)
            if value:
                return value
        return None

    def inputs(
        self,
        *,
        source: str,
        occurred_at: date,
        entity_key: str,
        city_slug: str,
        fields: CanonicalFields,
        raw: Mapping[str, Any],
    ) -> IdentityInputs | None:
        """Return hashing inputs, or None when strict mode has no natural key."""

        natural_key = self.natural_key(fields)
        if natural_key is None and self.strict:
            return None
        return IdentityInputs(
            source=source,
            occurred_at=occurred_at,
            entity_key=entity_key,
            city_slug=city_slug,
            natural_key=natural_key,
            row_digest=digest(canonical_json(raw)),
        )


def event_id_for(inputs: IdentityInputs) -> str:
    return digest(*inputs.components())
