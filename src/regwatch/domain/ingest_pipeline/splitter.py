"""Split a stream of raw rows into bounded, provenance-tagged batches."""

from __future__ import annotations

from datetime import UTC, datetime
from itertools import batched
from typing import TYPE_CHECKING

from regwatch.domain.model import MAX_BATCH_ROWS, RawRow, RowBatch

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from typing import Any

    from regwatch.domain.model import DatasetKey


def split_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    dataset: DatasetKey,
    source_url: str,
    batch_size: int = MAX_BATCH_ROWS,
    ingested_at: datetime | None = None,
) -> Iterator[RowBatch]:
    """Yield batches of at most ``batch_size`` rows.

    Batch ids are derived from the source and the batch position, so splitting
    the same file again produces the same ids. Every row of one run shares one
    ingestion timestamp.
    """

    if not 1 <= batch_size <= MAX_BATCH_ROWS:
        raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_ROWS}")
    stamp = ingested_at or datetime.now(UTC)
    for index, chunk in enumerate(batched(rows, batch_size)):
        yield RowBatch(
            batch_id=f"{source_url}#{index:06d}",
            rows=tuple(
                RawRow(values=row, dataset=dataset, source_url=source_url, ingested_at=stamp)
                for row in chunk
            ),
        )
