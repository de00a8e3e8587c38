"""Entity resolver: free-text company/city/state references to canonical slugs."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from regwatch.domain.model import AliasRecord, EntityType, ResolutionPath

from .text import (
    city_alias,
    city_secondary_form,
    clean_city_name,
    collapse_whitespace,
    company_primary_form,
    company_secondary_form,
    state_code,
)

if TYPE_CHECKING:
    from regwatch.domain.ports import AliasRepository

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of one resolve call.

    ``normalized`` is the cleaned display form of the input (e.g. ``"NEW YORK"``
    for ``"NEW YORK 10001"``) and is set even when nothing matched.
    """

    slug: str | None
    matched: bool
    normalized: str | None
    path: ResolutionPath = ResolutionPath.MISS

    @classmethod
    def miss(cls, normalized: str | None) -> Resolution:
        return cls(slug=None, matched=False, normalized=normalized)


class ReadThroughAliasIndex:
    """Caches positive alias lookups in front of an :class:`AliasRepository`.

    Only hits are cached. During ingestion aliases are only ever added, never
    rebound, so a cached hit cannot go stale; ``forget`` exists for the explicit
    supersede path.
    """

    def __init__(self, repository: AliasRepository, *, max_entries: int = 50_000) -> None:
        self.repository = repository
        self._max_entries = max_entries
        self._hits: dict[tuple[EntityType, str], str] = {}
        self._lock = threading.Lock()

    def lookup(self, entity_type: EntityType, alias: str) -> str | None:
        key = (entity_type, alias)
        cached = self._hits.get(key)
        if cached is not None:
            return cached
        slug = self.repository.lookup(entity_type, alias)
        if slug is not None:
            with self._lock:
                if len(self._hits) >= self._max_entries:
                    self._hits.clear()
                self._hits[key] = slug
        return slug

    def add_if_absent(self, record: AliasRecord) -> bool:
        return self.repository.add_if_absent(record)

    def forget(self, entity_type: EntityType, alias: str) -> None:
        with self._lock:
            self._hits.pop((entity_type, alias), None)


class EntityResolver:
    """Resolve noisy references via deterministic rules and the alias index.

    States never hit the alias index: a well-formed code or full name
    synthesizes the slug directly. Companies and cities are looked up by their
    primary normalized form first, then by a simplified secondary form. Misses
    are reported, never turned into new entities.
    """

    def __init__(
        self,
        aliases: AliasRepository | ReadThroughAliasIndex,
        *,
        learn_aliases: bool = True,
    ) -> None:
        self._index = (
            aliases
            if isinstance(aliases, ReadThroughAliasIndex)
            else ReadThroughAliasIndex(aliases)
        )
        self._learn_aliases = learn_aliases

    def resolve(
        self, entity_type: EntityType, raw: str | None, *, state: str | None = None
    ) -> Resolution:
        if raw is None or not raw.strip():
            return Resolution.miss(None)
        match entity_type:
            case EntityType.STATE:
                return self.resolve_state(raw)
            case EntityType.CITY:
                if state is None:
                    raise ValueError("City resolution requires a state")
                return self.resolve_city(raw, state=state)
            case EntityType.COMPANY:
                return self.resolve_company(raw)
            case _:
                raise ValueError(f"Entity type {entity_type} is not resolvable from text")

    def resolve_state(self, raw: str) -> Resolution:
        code = state_code(raw)
        normalized = collapse_whitespace(raw).upper()
        if code is None:
            return Resolution.miss(normalized)
        return Resolution(code, True, code, ResolutionPath.DETERMINISTIC)

    def resolve_company(self, raw: str) -> Resolution:
        primary = company_primary_form(raw)
        normalized = collapse_whitespace(raw)
        if not primary:
            return Resolution.miss(normalized or None)
        return self._lookup(
            EntityType.COMPANY,
            primary=primary,
            secondary=company_secondary_form(raw),
            normalized=normalized,
        )

    def resolve_city(self, raw: str, *, state: str) -> Resolution:
        cleaned = clean_city_name(raw)
        if not cleaned:
            return Resolution.miss(None)
        return self._lookup(
            EntityType.CITY,
            primary=city_alias(state, cleaned),
            secondary=city_alias(state, city_secondary_form(cleaned)),
            normalized=cleaned,
        )

    def _lookup(
        self,
        entity_type: EntityType,
        *,
        primary: str,
        secondary: str,
        normalized: str,
    ) -> Resolution:
        slug = self._index.lookup(entity_type, primary)
        if slug is not None:
            return Resolution(slug, True, normalized, ResolutionPath.ALIAS)

        if secondary and secondary != primary:
            slug = self._index.lookup(entity_type, secondary)
            if slug is not None:
                self._learn(entity_type, primary, slug)
                return Resolution(slug, True, normalized, ResolutionPath.SECONDARY)

        log.debug("No %s alias for %r (secondary %r)", entity_type, primary, secondary)
        return Resolution.miss(normalized)

    def _learn(self, entity_type: EntityType, alias: str, slug: str) -> None:
        if not self._learn_aliases:
            return
        learned = self._index.add_if_absent(AliasRecord(entity_type, alias, slug))
        if learned:
            log.info("Learned %s alias %r -> %s", entity_type, alias, slug)
