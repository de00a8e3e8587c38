"""Typed failures raised by the ingestion domain and its store adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class RegwatchError(Exception):
    """Base class for domain-level failures."""


class TransientWriteConflict(RegwatchError):
    """A store rejected a write because of a concurrent change; retrying may succeed."""


class PermanentWriteError(RegwatchError):
    """A store rejected a write for a reason retrying cannot fix."""


class MergeUnsupported(RegwatchError):
    """The store cannot perform an atomic insert-or-update for this configuration."""


class MergeConflictExhausted(RegwatchError):
    """Every allowed merge attempt hit a transient conflict."""

    def __init__(self, event_id: str, *, attempts: int, delays: Sequence[float] = ()) -> None:
        super().__init__(f"Merge of event {event_id} still conflicting after {attempts} attempts")
        self.event_id = event_id
        self.attempts = attempts
        self.delays = tuple(delays)


class RollupConflict(RegwatchError):
    """A rollup record changed between read and write (optimistic version mismatch)."""


class AliasConflict(RegwatchError):
    """An alias is already bound to a different entity."""

    def __init__(self, entity_type: str, alias: str, *, existing: str, requested: str) -> None:
        super().__init__(
            f"{entity_type} alias {alias!r} already points at {existing!r}, not {requested!r}"
        )
        self.entity_type = entity_type
        self.alias = alias
        self.existing = existing
        self.requested = requested


class UnknownEntityError(RegwatchError):
    """An administrative operation referenced an entity that does not exist."""


class UnknownDatasetError(RegwatchError):
    """A dataset key has no registered schema map (only raised by strict callers)."""
