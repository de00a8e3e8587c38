from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from regwatch.adapters.sources import ObjectCreatedNotification, RowBatchMessage
from regwatch.app import (
    add_city,
    add_company,
    get_rollup,
    import_cities,
    import_companies,
    ingest_file,
    ingest_messages,
    ingest_notification,
    load_schema_map_file,
    quarantine_summary,
    seed_schema_maps,
    seed_states,
    supersede_alias,
)
from regwatch.config import ConfigurationError, configure_logging, get_ingest_config
from regwatch.domain.model import ALL_TIME_BUCKET, DatasetKey, EntityType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from regwatch.domain.ingest_pipeline import IngestReport

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest and maintain regulatory violation data")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level name or number (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest raw dataset files or queue messages")
    ingest.add_argument(
        "sources",
        nargs="*",
        help="Local CSV/TSV/JSON-lines files or http(s) URLs",
    )
    ingest.add_argument(
        "--dataset",
        type=str,
        help="Dataset key as SOURCE/variant (default: derived from the object path)",
    )
    ingest.add_argument(
        "--messages",
        type=Path,
        help="JSON-lines file of queue messages, one row batch per line",
    )
    ingest.add_argument(
        "--notification",
        type=Path,
        help="Object-created notification document naming the files to fetch",
    )
    ingest.add_argument(
        "--object-base-url",
        type=str,
        help="HTTP base URL the notification's object keys are fetched from",
    )
    ingest.add_argument("--workers", type=int, help="Batches processed concurrently")
    ingest.add_argument(
        "--strict-identity",
        action="store_true",
        help="Quarantine rows without a natural key instead of hashing the raw row",
    )
    ingest.add_argument(
        "--require-schema",
        action="store_true",
        help="Refuse files whose dataset has no registered schema map",
    )

    seed = subparsers.add_parser("seed-schemas", help="Register dataset schema maps")
    seed.add_argument(
        "--file",
        type=Path,
        help="JSON seed file ({\"maps\": [...]}); defaults to the built-in OSHA maps",
    )
    seed.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace maps that are already registered",
    )

    subparsers.add_parser("seed-states", help="Create the state and nation entities")

    company = subparsers.add_parser("add-company", help="Register a reviewed company")
    company.add_argument("name", help="Display name")
    company.add_argument(
        "--alias",
        action="append",
        default=[],
        help="Additional raw spelling that should resolve to this company (repeatable)",
    )
    company.add_argument(
        "--meta",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Metadata entry to attach (repeatable)",
    )

    city = subparsers.add_parser("add-city", help="Register a reviewed city")
    city.add_argument("name", help="City name as it appears in datasets")
    city.add_argument("--state", required=True, help="Two-letter code or full state name")
    city.add_argument("--alias", action="append", default=[], help="Extra spelling (repeatable)")
    city.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE")

    import_cities_parser = subparsers.add_parser(
        "import-cities", help="Bulk-register cities from a census gazetteer places file"
    )
    import_cities_parser.add_argument("file", type=Path, help="TSV/CSV with USPS and NAME columns")

    import_companies_parser = subparsers.add_parser(
        "import-companies", help="Bulk-register companies from an exchange listing file"
    )
    import_companies_parser.add_argument(
        "file", type=Path, help="CSV with Symbol and Name columns"
    )

    supersede = subparsers.add_parser(
        "supersede-alias",
        help="Rebind an existing alias to a different entity",
    )
    supersede.add_argument(
        "entity_type", choices=[EntityType.COMPANY.value, EntityType.CITY.value]
    )
    supersede.add_argument("alias", help="Stored alias form, e.g. 'acme corp' or 'ny:new york'")
    supersede.add_argument("slug", help="Slug of the entity the alias should point at")

    quarantine = subparsers.add_parser("quarantine", help="Summarise the quarantine queue")
    quarantine.add_argument("--limit", type=int, default=20, help="Groups to show")

    rollup = subparsers.add_parser("rollup", help="Show one entity rollup")
    rollup.add_argument("entity_type", choices=[member.value for member in EntityType])
    rollup.add_argument("slug")
    rollup.add_argument("--bucket", default=ALL_TIME_BUCKET, help="'all' or a year")

    return parser.parse_args(list(argv))


def _parse_metadata(entries: Sequence[str]) -> dict[str, str]:
    metadata: dict[str, str] = {}
    for entry in entries:
        key, separator, value = entry.partition("=")
        if not separator or not key.strip():
            raise ValueError(f"Metadata must look like KEY=VALUE, got {entry!r}")
        metadata[key.strip()] = value.strip()
    return metadata


def _run_ingest(args: argparse.Namespace) -> list[IngestReport]:
    config = get_ingest_config()
    if args.workers is not None:
        config = replace(config, workers=args.workers)
    if args.strict_identity:
        config = replace(config, strict_identity=True)
    dataset = DatasetKey.parse(args.dataset) if args.dataset else None

    reports: list[IngestReport] = []
    for source in args.sources:
        reports.append(
            ingest_file(
                source,
                dataset=dataset,
                config=config,
                require_schema=args.require_schema,
            )
        )
    if args.messages is not None:
        with args.messages.open(encoding="utf-8") as handle:
            messages = [
                RowBatchMessage.model_validate_json(line) for line in handle if line.strip()
            ]
        reports.append(ingest_messages(messages, config=config))
    if args.notification is not None:
        if args.object_base_url is None:
            raise ValueError("--notification requires --object-base-url")
        notification = ObjectCreatedNotification.model_validate_json(
            args.notification.read_text(encoding="utf-8")
        )
        reports.extend(
            ingest_notification(
                notification,
                object_base_url=args.object_base_url,
                config=config,
                require_schema=args.require_schema,
            )
        )
    if not reports:
        raise ValueError("Nothing to ingest: pass files, --messages or --notification")
    return reports


def _print_quarantine(limit: int) -> None:
    groups = quarantine_summary(limit=limit)
    if not groups:
        print("Quarantine is empty")  # noqa: T201
        return
    for group in groups:
        print(  # noqa: T201
            f"{group.count:6d}  {group.reason:<20}  {group.company_name or '-'}  "
            f"{group.city or '-'}, {group.state or '-'}"
        )


def _print_rollup(entity_type: EntityType, slug: str, bucket: str) -> bool:
    record = get_rollup(entity_type, slug, bucket=bucket)
    if record is None:
        log.warning("No rollup for %s %s (%s)", entity_type, slug, bucket)
        return False
    print(  # noqa: T201
        f"{record.name} [{record.key}] events={record.event_count} "
        f"total={record.monetary_total}"
    )
    for index, item in enumerate(record.recent):
        print(f"  {index}. {item.occurred_at.isoformat()}  {item.title}")  # noqa: T201
    return True


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=parsed_args.log_level)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        command = parsed_args.command
        if command == "ingest":
            reports = _run_ingest(parsed_args)
            failures = [failure for report in reports for failure in report.failures]
            for failure in failures:
                log.error(
                    "Unmerged event %s in %s: %s",
                    failure.event_id,
                    failure.batch_id,
                    failure.message,
                )
            failed_batches = [failed for report in reports for failed in report.failed_batches]
            for failed in failed_batches:
                log.error(
                    "Batch %s (%d rows) failed: %s", failed.batch_id, failed.rows, failed.message
                )
            if failures or failed_batches:
                sys.exit(1)
        elif command == "seed-schemas":
            maps = load_schema_map_file(parsed_args.file) if parsed_args.file else None
            seed_schema_maps(maps, overwrite=parsed_args.overwrite)
        elif command == "seed-states":
            seed_states()
        elif command == "add-company":
            registration = add_company(
                parsed_args.name,
                aliases=parsed_args.alias,
                metadata=_parse_metadata(parsed_args.meta),
            )
            print(registration.entity.slug)  # noqa: T201
        elif command == "add-city":
            registration = add_city(
                parsed_args.name,
                state=parsed_args.state,
                aliases=parsed_args.alias,
                metadata=_parse_metadata(parsed_args.meta),
            )
            print(registration.entity.slug)  # noqa: T201
        elif command in {"import-cities", "import-companies"}:
            importer = import_cities if command == "import-cities" else import_companies
            summary = importer(parsed_args.file)
            print(  # noqa: T201
                f"created={summary.created} updated={summary.updated} "
                f"aliases={summary.aliases_added} skipped={summary.skipped} "
                f"conflicts={len(summary.conflicts)}"
            )
        elif command == "supersede-alias":
            supersede_alias(
                EntityType(parsed_args.entity_type), parsed_args.alias, parsed_args.slug
            )
        elif command == "quarantine":
            _print_quarantine(parsed_args.limit)
        elif command == "rollup":
            if not _print_rollup(
                EntityType(parsed_args.entity_type), parsed_args.slug, parsed_args.bucket
            ):
                sys.exit(1)
        else:
            raise ValueError(f"Unsupported command: {command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
