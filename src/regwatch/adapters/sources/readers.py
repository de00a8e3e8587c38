"""Readers turning raw dataset files into row mappings."""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Final
from urllib.parse import urlparse

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

log = logging.getLogger(__name__)

JSONL_SUFFIXES: Final[frozenset[str]] = frozenset({".jsonl", ".ndjson"})
TAB_SUFFIXES: Final[frozenset[str]] = frozenset({".tsv", ".txt"})


def file_format(name: str) -> str:
    """Return ``"jsonl"``, ``"tsv"`` or ``"csv"`` for a path or URL."""

    path = urlparse(name).path if "://" in name else name
    suffix = PurePosixPath(path).suffix.lower()
    if suffix in JSONL_SUFFIXES:
        return "jsonl"
    if suffix in TAB_SUFFIXES:
        return "tsv"
    return "csv"


def iter_delimited(lines: Iterable[str], *, delimiter: str = ",") -> Iterator[dict[str, str]]:
    """Yield trimmed rows; short rows are padded with blanks and overflow cells dropped."""

    reader = csv.DictReader(lines, delimiter=delimiter, restval="")
    if reader.fieldnames is None:
        return
    fieldnames = list(reader.fieldnames)
    for line_number, record in enumerate(reader, start=2):
        overflow = record.pop(None, None)  # pyright: ignore[reportArgumentType, reportCallIssue]
        if overflow:
            log.debug("Dropping %d overflow cell(s) on line %d", len(overflow), line_number)
        yield {
            header.strip(): (record.get(header) or "").strip()
            for header in fieldnames
            if header and header.strip()
        }


def iter_jsonl(lines: Iterable[str]) -> Iterator[dict[str, Any]]:
    for line_number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text:
            continue
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError(f"line {line_number}: expected a JSON object")
        yield {
            str(key): value.strip() if isinstance(value, str) else value
            for key, value in payload.items()
        }


def parse_text(text: str, *, name: str) -> Iterator[dict[str, Any]]:
    """Parse already-downloaded file content, choosing the format from ``name``."""

    text = text.removeprefix("\ufeff")
    return _dispatch(io.StringIO(text, newline=""), file_format(name))


def read_rows(path: Path) -> Iterator[dict[str, Any]]:
    """Stream rows from a local CSV, TSV or JSON-lines file."""

    with path.open(encoding="utf-8-sig", newline="") as handle:
        yield from _dispatch(handle, file_format(str(path)))


def _dispatch(lines: Iterable[str], fmt: str) -> Iterator[dict[str, Any]]:
    if fmt == "jsonl":
        return iter_jsonl(lines)
    return iter_delimited(lines, delimiter="\t" if fmt == "tsv" else ",")
