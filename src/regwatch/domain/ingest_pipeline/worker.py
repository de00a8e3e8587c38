"""Batch ingestion worker and the pool that runs workers over many batches."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from regwatch.domain.errors import MergeConflictExhausted, PermanentWriteError
from regwatch.domain.model import Event

from .context import BatchResult, IngestReport, RowFailure

if TYPE_CHECKING:
    from collections.abc import Iterable
    from concurrent.futures import Future

    from regwatch.domain.model import QuarantinedRow, RawRow, RowBatch
    from regwatch.domain.ports import EnrichmentTrigger, QuarantineSink

    from .merge import MergeCoordinator
    from .normalizer import RowNormalizer
    from .rollups import AggregateMaintainer

log = logging.getLogger(__name__)


class BatchIngestionWorker:
    """Process one bounded batch: normalize, then merge or quarantine each row.

    Normalization may fan out over ``row_workers`` threads; dispatch is
    sequential so the blocking merge retry loop never holds a row thread.
    Redelivering the same batch is safe: merges are idempotent, rollup
    counters follow the merge ack and quarantine writes are keyed by row id.
    """

    def __init__(
        self,
        *,
        normalizer: RowNormalizer,
        merge: MergeCoordinator,
        rollups: AggregateMaintainer,
        quarantine: QuarantineSink,
        enrichment: EnrichmentTrigger | None = None,
        row_workers: int = 1,
    ) -> None:
        self._normalizer = normalizer
        self._merge = merge
        self._rollups = rollups
        self._quarantine = quarantine
        self._enrichment = enrichment
        self._row_workers = max(1, row_workers)

    def process(self, batch: RowBatch) -> BatchResult:
        result = BatchResult(batch_id=batch.batch_id)
        fresh: list[str] = []
        for outcome in self._normalize_all(batch.rows):
            if isinstance(outcome, Event):
                if self._merge_one(batch.batch_id, outcome, result):
                    fresh.append(outcome.event_id)
            else:
                self._quarantine_one(outcome, result)

        if fresh and self._enrichment is not None:
            self._enrichment.request(fresh)

        log.debug(
            "Batch %s: merged=%d created=%d quarantined=%d failures=%d",
            batch.batch_id,
            len(result.acks),
            result.created,
            len(result.quarantined),
            len(result.failures),
        )
        return result

    def _normalize_all(self, rows: tuple[RawRow, ...]) -> list[Event | QuarantinedRow]:
        if self._row_workers == 1 or len(rows) <= 1:
            return [self._normalizer.normalize(row) for row in rows]
        with ThreadPoolExecutor(max_workers=min(self._row_workers, len(rows))) as pool:
            return list(pool.map(self._normalizer.normalize, rows))

    def _merge_one(self, batch_id: str, event: Event, result: BatchResult) -> bool:
        """Merge and roll up ``event``; return True when it was newly created without overlay."""

        try:
            ack = self._merge.upsert(event)
        except (MergeConflictExhausted, PermanentWriteError) as exc:
            log.error(  # noqa: TRY400
                "Batch %s: event %s not merged: %s", batch_id, event.event_id, exc
            )
            result.failures.append(RowFailure(batch_id, event.event_id, exc))
            return False

        result.acks.append(ack)
        outcome = self._rollups.apply(event, count=ack.created)
        result.rollup_failures += len(outcome.failed)
        return ack.created and event.enrichment is None

    def _quarantine_one(self, row: QuarantinedRow, result: BatchResult) -> None:
        result.quarantined.append(row)
        if self._quarantine.put(row):
            result.quarantine_written += 1


class IngestionPool:
    """Run a worker over many batches on a thread pool; batches are independent.

    The batch source is consumed lazily: at most ``max_pending`` batches
    (twice the worker count by default) are submitted and not yet collected.
    A batch that raises is recorded in the report and the run carries on.
    """

    def __init__(
        self,
        worker: BatchIngestionWorker,
        *,
        max_workers: int = 4,
        max_pending: int | None = None,
    ) -> None:
        self._worker = worker
        self._max_workers = max(1, max_workers)
        self._max_pending = max(self._max_workers, max_pending or 2 * self._max_workers)

    def run(self, batches: Iterable[RowBatch]) -> IngestReport:
        report = IngestReport()
        if self._max_workers == 1:
            for batch in batches:
                try:
                    result = self._worker.process(batch)
                except Exception as exc:
                    self._record_failure(report, batch, exc)
                    continue
                report.add(result, rows=len(batch))
            return report

        pending: dict[Future[BatchResult], RowBatch] = {}
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            for batch in batches:
                pending[pool.submit(self._worker.process, batch)] = batch
                if len(pending) >= self._max_pending:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    self._collect(report, pending, done)
            done, _ = wait(pending)
            self._collect(report, pending, done)
        return report

    def _collect(
        self,
        report: IngestReport,
        pending: dict[Future[BatchResult], RowBatch],
        done: Iterable[Future[BatchResult]],
    ) -> None:
        for future in done:
            batch = pending.pop(future)
            try:
                result = future.result()
            except Exception as exc:
                self._record_failure(report, batch, exc)
                continue
            report.add(result, rows=len(batch))

    @staticmethod
    def _record_failure(report: IngestReport, batch: RowBatch, exc: Exception) -> None:
        log.exception("Batch %s failed", batch.batch_id)
        report.add_failure(batch.batch_id, exc, rows=len(batch))
