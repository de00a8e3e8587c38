"""Inbound adapters: file readers, HTTP fetcher and queue message models."""

from __future__ import annotations

from .fetcher import DatasetFetcher
from .readers import file_format, iter_delimited, iter_jsonl, parse_text, read_rows
from .schema import (
    ObjectCreatedNotification,
    RowBatchMessage,
    SchemaMapDocument,
    SchemaMapSeedFile,
)

__all__ = [
    "DatasetFetcher",
    "ObjectCreatedNotification",
    "RowBatchMessage",
    "SchemaMapDocument",
    "SchemaMapSeedFile",
    "file_format",
    "iter_delimited",
    "iter_jsonl",
    "parse_text",
    "read_rows",
]
