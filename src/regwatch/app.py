"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from regwatch.adapters.enrichment import build_enrichment_trigger
from regwatch.adapters.sources import DatasetFetcher, SchemaMapSeedFile, read_rows
from regwatch.adapters.sqlalchemy.session import build_repositories, is_started, startup
from regwatch.config import get_enrichment_config, get_ingest_config
from regwatch.domain.catalog import US_STATES, default_schema_maps
from regwatch.domain.entity_resolution import (
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
from regwatch.domain.entity_resolution.text import title_case
from regwatch.domain.errors import AliasConflict, UnknownDatasetError, UnknownEntityError
from regwatch.domain.ingest_pipeline import (
    IdentityPolicy,
    MergeRetryPolicy,
    build_pipeline,
    split_rows,
)
from regwatch.domain.model import (
    ALL_TIME_BUCKET,
    AliasRecord,
    DatasetKey,
    EntityRecord,
    EntityType,
    RollupKey,
    nation_entity,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from regwatch.adapters.sources import ObjectCreatedNotification, RowBatchMessage
    from regwatch.config import IngestConfig
    from regwatch.domain.ingest_pipeline import IngestReport
    from regwatch.domain.model import QuarantineGroup, RollupRecord
    from regwatch.domain.ports import EnrichmentTrigger, IngestRepositories
    from regwatch.domain.schema_registry import SchemaMap

log = getLogger(__name__)


def default_repositories() -> IngestRepositories:
    """SQLAlchemy repositories on the configured database, starting the adapter once."""

    if not is_started():
        startup()
    return build_repositories()


@dataclass(slots=True)
class EntityRegistration:
    entity: EntityRecord
    created: bool
    aliases_added: list[str] = field(default_factory=list[str])


# Ingestion ---------------------------------------------------------------------


def ingest_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    dataset: DatasetKey,
    source_url: str,
    repositories: IngestRepositories | None = None,
    config: IngestConfig | None = None,
    enrichment: EnrichmentTrigger | None = None,
) -> IngestReport:
    """Split ``rows`` into bounded batches and run them through the pipeline."""

    effective_config = config or get_ingest_config()
    batches = split_rows(
        rows,
        dataset=dataset,
        source_url=source_url,
        batch_size=effective_config.batch_size,
    )
    return _run(
        batches,
        repositories=repositories,
        config=effective_config,
        enrichment=enrichment,
        label=source_url,
    )


def ingest_messages(
    messages: Iterable[RowBatchMessage],
    *,
    repositories: IngestRepositories | None = None,
    config: IngestConfig | None = None,
    enrichment: EnrichmentTrigger | None = None,
) -> IngestReport:
    """Process queue messages as delivered; each message is one batch."""

    return _run(
        (message.to_batch() for message in messages),
        repositories=repositories,
        config=config or get_ingest_config(),
        enrichment=enrichment,
        label="queue",
    )


def ingest_file(
    location: str | Path,
    *,
    dataset: DatasetKey | None = None,
    repositories: IngestRepositories | None = None,
    config: IngestConfig | None = None,
    enrichment: EnrichmentTrigger | None = None,
    fetcher: DatasetFetcher | None = None,
    require_schema: bool = False,
) -> IngestReport:
    """Ingest a local file or an ``http(s)`` URL.

    Without an explicit ``dataset`` the key is derived from the object path,
    falling back to the unknown/generic layout.

    With ``require_schema`` a dataset that has no registered schema map is
    rejected before anything is read.
    """

    source_url = str(location)
    effective_dataset = dataset or DatasetKey.from_object_key(source_url)
    repos = repositories or default_repositories()
    if require_schema and repos.schema_maps.get(effective_dataset) is None:
        raise UnknownDatasetError(f"No schema map registered for {effective_dataset}")
    if source_url.startswith(("http://", "https://")):
        rows: Iterable[Mapping[str, Any]] = (fetcher or DatasetFetcher()).fetch_rows(source_url)
    else:
        path = Path(location)
        rows = read_rows(path)
        source_url = path.as_posix()
    log.info("Ingesting %s as %s", source_url, effective_dataset)
    return ingest_rows(
        rows,
        dataset=effective_dataset,
        source_url=source_url,
        repositories=repos,
        config=config,
        enrichment=enrichment,
    )


def ingest_notification(
    notification: ObjectCreatedNotification,
    *,
    object_base_url: str,
    repositories: IngestRepositories | None = None,
    config: IngestConfig | None = None,
    enrichment: EnrichmentTrigger | None = None,
    fetcher: DatasetFetcher | None = None,
    require_schema: bool = False,
) -> list[IngestReport]:
    """Fetch and ingest every object named in a storage notification."""

    effective_fetcher = fetcher or DatasetFetcher()
    reports: list[IngestReport] = []
    for record in notification.records:
        url = f"{object_base_url.rstrip('/')}/{record.s3.object.key.lstrip('/')}"
        reports.append(
            ingest_file(
                url,
                dataset=record.dataset,
                repositories=repositories,
                config=config,
                enrichment=enrichment,
                fetcher=effective_fetcher,
                require_schema=require_schema,
            )
        )
    return reports


def _run(
    batches: Iterable[Any],
    *,
    repositories: IngestRepositories | None,
    config: IngestConfig,
    enrichment: EnrichmentTrigger | None,
    label: str,
) -> IngestReport:
    retry = config.merge_retry
    pipeline = build_pipeline(
        repositories or default_repositories(),
        recent_limit=config.recent_limit,
        identity=IdentityPolicy(strict=config.strict_identity),
        learn_aliases=config.learn_aliases,
        retry_policy=MergeRetryPolicy(
            max_attempts=retry.max_attempts,
            base_delay=retry.base_delay_seconds,
            max_delay=retry.max_delay_seconds,
            jitter=retry.jitter_seconds,
        ),
        enrichment=enrichment or build_enrichment_trigger(get_enrichment_config()),
        row_workers=config.row_workers,
    )
    report = pipeline.run(batches, workers=config.workers)
    log.info(
        "Finished %s: batches=%d rows=%d merged=%d created=%d quarantined=%d "
        "rollup_failures=%d failures=%d failed_batches=%d",
        label,
        report.batches,
        report.rows,
        report.merged,
        report.created,
        report.quarantined,
        report.rollup_failures,
        len(report.failures),
        len(report.failed_batches),
    )
    return report


# Seeding -----------------------------------------------------------------------


def load_schema_map_file(path: Path) -> list[SchemaMap]:
    document = SchemaMapSeedFile.model_validate_json(path.read_text(encoding="utf-8"))
    return document.to_schema_maps()


def seed_schema_maps(
    maps: Sequence[SchemaMap] | None = None,
    *,
    repositories: IngestRepositories | None = None,
    overwrite: bool = False,
) -> int:
    """Store schema maps that are not registered yet; return how many were written.

    Maps are immutable once seeded; ``overwrite`` is the explicit escape hatch.
    """

    repos = repositories or default_repositories()
    written = 0
    for schema_map in maps if maps is not None else default_schema_maps():
        if not overwrite and repos.schema_maps.get(schema_map.dataset) is not None:
            log.debug("Schema map %s already seeded", schema_map.dataset)
            continue
        repos.schema_maps.save(schema_map)
        written += 1
    log.info("Seeded %d schema map(s)", written)
    return written


def seed_states(*, repositories: IngestRepositories | None = None) -> int:
    """Create the state entities and the nation entity; return how many were new."""

    repos = repositories or default_repositories()
    created = sum(
        repos.entities.add(EntityRecord(EntityType.STATE, code, name)) for code, name in US_STATES
    )
    created += repos.entities.add(nation_entity())
    log.info("Seeded %d state/nation entities", created)
    return created


# Entity administration -----------------------------------------------------------


def add_company(
    name: str,
    *,
    aliases: Sequence[str] = (),
    metadata: Mapping[str, Any] | None = None,
    repositories: IngestRepositories | None = None,
) -> EntityRegistration:
    """Register a reviewed company and the alias forms that should resolve to it."""

    display_name, _site = split_site_id(name)
    slug = slugify(company_primary_form(display_name))
    if not slug:
        raise ValueError(f"Company name {name!r} yields an empty slug")
    alias_forms = [company_primary_form(display_name), company_secondary_form(display_name)]
    alias_forms.extend(company_primary_form(alias) for alias in aliases)
    return _register(
        EntityRecord(EntityType.COMPANY, slug, display_name.strip(), dict(metadata or {})),
        alias_forms,
        repositories=repositories,
    )


def add_city(
    name: str,
    *,
    state: str,
    aliases: Sequence[str] = (),
    metadata: Mapping[str, Any] | None = None,
    repositories: IngestRepositories | None = None,
) -> EntityRegistration:
    """Register a city within ``state``; extra aliases are cleaned like ingested text."""

    code = state_code(state)
    if code is None:
        raise ValueError(f"Unknown state {state!r}")
    cleaned = clean_city_name(name)
    if not cleaned:
        raise ValueError(f"City name {name!r} is empty after cleaning")
    alias_forms = [city_alias(code, cleaned), city_alias(code, city_secondary_form(cleaned))]
    alias_forms.extend(city_alias(code, clean_city_name(alias)) for alias in aliases)
    entity = EntityRecord(
        EntityType.CITY,
        city_slug(code, cleaned),
        title_case(cleaned),
        {"state": code, **(metadata or {})},
    )
    return _register(
        entity,
        alias_forms,
        repositories=repositories,
    )


def _register(
    entity: EntityRecord,
    alias_forms: Iterable[str],
    *,
    repositories: IngestRepositories | None,
) -> EntityRegistration:
    repos = repositories or default_repositories()
    unique_forms = list(dict.fromkeys(form for form in alias_forms if form))
    for form in unique_forms:
        existing = repos.aliases.lookup(entity.entity_type, form)
        if existing is not None and existing != entity.slug:
            raise AliasConflict(entity.entity_type, form, existing=existing, requested=entity.slug)

    created = repos.entities.add(entity)
    stored = entity
    if not created and entity.metadata:
        stored = repos.entities.add_metadata(entity.entity_type, entity.slug, entity.metadata)
    elif not created:
        stored = repos.entities.get(entity.entity_type, entity.slug) or entity

    registration = EntityRegistration(entity=stored, created=created)
    for form in unique_forms:
        if repos.aliases.add_if_absent(AliasRecord(entity.entity_type, form, entity.slug)):
            registration.aliases_added.append(form)
    log.info(
        "%s %s %s with %d new alias(es)",
        "Created" if created else "Updated",
        entity.entity_type,
        entity.slug,
        len(registration.aliases_added),
    )
    return registration


def supersede_alias(
    entity_type: EntityType,
    alias: str,
    slug: str,
    *,
    repositories: IngestRepositories | None = None,
) -> AliasRecord:
    """Rebind a stored alias to ``slug``, keeping the previous target on the record."""

    repos = repositories or default_repositories()
    if repos.entities.get(entity_type, slug) is None:
        raise UnknownEntityError(f"No {entity_type} entity {slug!r}")
    record = repos.aliases.supersede(entity_type, alias, slug)
    log.warning(
        "Alias %s %r now points at %s (was %s)",
        entity_type,
        alias,
        slug,
        record.superseded_slug,
    )
    return record


# Reference imports -----------------------------------------------------------------

_CENSUS_METADATA: Final[dict[str, str]] = {
    "geoid": "census_geoid",
    "ansicode": "census_ansi",
    "intptlat": "lat",
    "intptlong": "lon",
    "aland_sqmi": "land_sqmi",
    "awater_sqmi": "water_sqmi",
}
_LISTING_METADATA: Final[tuple[str, ...]] = (
    "sector",
    "industry",
    "country",
    "ipoyear",
    "marketcap",
)


@dataclass(slots=True)
class ImportSummary:
    rows: int = 0
    created: int = 0
    updated: int = 0
    aliases_added: int = 0
    skipped: int = 0
    conflicts: list[str] = field(default_factory=list[str])

    def add(self, registration: EntityRegistration) -> None:
        if registration.created:
            self.created += 1
        else:
            self.updated += 1
        self.aliases_added += len(registration.aliases_added)


def _columns(row: Mapping[str, Any]) -> dict[str, str]:
    """Header-insensitive view: ``"IPO Year"`` and ``"ipoyear"`` read the same."""

    return {
        key.strip().lower().replace(" ", ""): str(value).strip()
        for key, value in row.items()
        if key and value is not None
    }


def import_cities(path: Path, *, repositories: IngestRepositories | None = None) -> ImportSummary:
    """Register every place of a census gazetteer file (``USPS`` and ``NAME`` columns).

    The census place type (``city``, ``town``, ``CDP`` ...) is cut from the
    name and kept as metadata. A state and name already seen earlier in the
    file is skipped.
    """

    repos = repositories or default_repositories()
    summary = ImportSummary()
    seen: set[tuple[str, str]] = set()
    for row in read_rows(path):
        summary.rows += 1
        columns = _columns(row)
        state = columns.get("usps") or columns.get("state") or ""
        name, place_type = split_place_type(columns.get("name") or columns.get("city") or "")
        key = (state.upper(), name.upper())
        if not state or not name or key in seen:
            summary.skipped += 1
            continue
        seen.add(key)
        metadata: dict[str, Any] = {
            target: columns[source]
            for source, target in _CENSUS_METADATA.items()
            if columns.get(source)
        }
        metadata["place_type"] = place_type or "place"
        try:
            registration = add_city(name, state=state, metadata=metadata, repositories=repos)
        except AliasConflict as exc:
            log.warning("Skipping city %s, %s: %s", name, state, exc)
            summary.conflicts.append(str(exc))
            continue
        except ValueError as exc:
            log.warning("Skipping city %s, %s: %s", name, state, exc)
            summary.skipped += 1
            continue
        summary.add(registration)
    _log_import("cities", path, summary)
    return summary


def import_companies(
    path: Path, *, repositories: IngestRepositories | None = None
) -> ImportSummary:
    """Register the companies of an exchange listing file (``Symbol`` and ``Name`` columns).

    Listings are grouped by company after share-class wording is dropped from
    the name, so the Class A and Class C listings of one issuer register one
    company. Each ticker becomes an alias.
    """

    repos = repositories or default_repositories()
    summary = ImportSummary()
    companies: dict[str, tuple[str, list[str], dict[str, Any]]] = {}
    for row in read_rows(path):
        summary.rows += 1
        columns = _columns(row)
        symbol = columns.get("symbol", "")
        name = strip_share_class(columns.get("name", ""))
        slug = slugify(company_primary_form(split_site_id(name)[0]))
        if not symbol or not slug:
            summary.skipped += 1
            continue
        _name, tickers, metadata = companies.setdefault(slug, (name, [], {}))
        if symbol not in tickers:
            tickers.append(symbol)
        for column in _LISTING_METADATA:
            if columns.get(column):
                metadata.setdefault(column, columns[column])

    for name, tickers, metadata in companies.values():
        try:
            registration = add_company(
                name,
                aliases=tickers,
                metadata={**metadata, "tickers": tickers},
                repositories=repos,
            )
        except AliasConflict as exc:
            log.warning("Skipping company %s: %s", name, exc)
            summary.conflicts.append(str(exc))
            continue
        summary.add(registration)
    _log_import("companies", path, summary)
    return summary


def _log_import(kind: str, path: Path, summary: ImportSummary) -> None:
    log.info(
        "Imported %s from %s: rows=%d created=%d updated=%d aliases=%d skipped=%d conflicts=%d",
        kind,
        path,
        summary.rows,
        summary.created,
        summary.updated,
        summary.aliases_added,
        summary.skipped,
        len(summary.conflicts),
    )


# Read side -----------------------------------------------------------------------


def quarantine_summary(
    *, limit: int | None = None, repositories: IngestRepositories | None = None
) -> list[QuarantineGroup]:
    repos = repositories or default_repositories()
    return repos.quarantine.summarize(limit=limit)


def get_rollup(
    entity_type: EntityType,
    slug: str,
    *,
    bucket: str = ALL_TIME_BUCKET,
    repositories: IngestRepositories | None = None,
) -> RollupRecord | None:
    repos = repositories or default_repositories()
    return repos.rollups.get(RollupKey(entity_type, slug, bucket))
