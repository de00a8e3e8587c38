"""Dataset keys, raw rows and row batches as delivered by the queue."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import unquote_plus, urlparse

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

MAX_BATCH_ROWS: Final[int] = 10
OBJECT_KEY_ROOTS: Final[frozenset[str]] = frozenset(
    {"estuary", "confluence", "historical", "daily"}
)
UNKNOWN_SOURCE: Final[str] = "unknown"
GENERIC_VARIANT: Final[str] = "generic"


def canonical_json(payload: Mapping[str, Any]) -> str:
    """Serialise a mapping with sorted keys so equal rows hash identically."""

    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def digest(*parts: str) -> str:
    hasher = hashlib.sha256()
    for part in parts:
        hasher.update(part.encode("utf-8"))
        hasher.update(b"\x1f")
    return hasher.hexdigest()


@dataclass(frozen=True, slots=True)
class DatasetKey:
    """``(source, variant)`` pair naming one agency dataset layout."""

    source: str
    variant: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", self.source.strip().upper())
        object.__setattr__(self, "variant", self.variant.strip().lower())

    def __str__(self) -> str:
        return f"{self.source}/{self.variant}"

    @property
    def is_unknown(self) -> bool:
        return self.source == UNKNOWN_SOURCE.upper()

    @classmethod
    def unknown(cls) -> DatasetKey:
        return cls(UNKNOWN_SOURCE, GENERIC_VARIANT)

    @classmethod
    def parse(cls, value: str) -> DatasetKey:
        """Parse ``"OSHA/severe-incident"`` (or ``"OSHA:severe-incident"``)."""

        for separator in ("/", ":"):
            if separator in value:
                source, _, variant = value.partition(separator)
                if source.strip() and variant.strip():
                    return cls(source, variant)
        raise ValueError(f"Dataset key must look like SOURCE/variant, got {value!r}")

    @classmethod
    def from_object_key(cls, object_key: str) -> DatasetKey:
        """Derive the key from a storage path such as ``daily/OSHA/severe-incident/x.csv``.

        URLs are accepted too; only their path is inspected. Layouts that do not
        contain a known root segment followed by source and variant directories
        map to the unknown/generic key.
        """

        path = urlparse(object_key).path if "://" in object_key else object_key
        parts = [unquote_plus(part) for part in path.split("/") if part]
        for index, part in enumerate(parts):
            if part.lower() not in OBJECT_KEY_ROOTS:
                continue
            remainder = parts[index + 1 :]
            # source, variant and at least the file name itself
            if len(remainder) >= 3:  # noqa: PLR2004
                return cls(remainder[0], remainder[1])
            break
        return cls.unknown()


@dataclass(frozen=True, slots=True)
class RawRow:
    """One untouched row plus the provenance the splitter attached to it."""

    values: Mapping[str, Any]
    dataset: DatasetKey
    source_url: str
    ingested_at: datetime

    def text(self, header: str) -> str | None:
        """Return the trimmed value under ``header`` or None when absent/blank."""

        value = self.values.get(header)
        if value is None:
            return None
        text = str(value).strip()
        return text or None


@dataclass(frozen=True, slots=True)
class RowBatch:
    batch_id: str
    rows: tuple[RawRow, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if len(self.rows) > MAX_BATCH_ROWS:
            raise ValueError(
                f"Batch {self.batch_id} has {len(self.rows)} rows; at most {MAX_BATCH_ROWS} allowed"
            )

    def __len__(self) -> int:
        return len(self.rows)
