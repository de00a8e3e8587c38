"""Result structures shared by the ingestion worker and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from regwatch.domain.errors import RegwatchError
    from regwatch.domain.model import QuarantinedRow

    from .merge import Ack


@dataclass(frozen=True, slots=True)
class RowFailure:
    """A normalized row whose canonical write failed and must be reported."""

    batch_id: str
    event_id: str
    error: RegwatchError

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass(frozen=True, slots=True)
class BatchFailure:
    """A batch whose processing raised; rows after the failing one were not written."""

    batch_id: str
    rows: int
    error: Exception

    @property
    def message(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass(slots=True)
class BatchResult:
    batch_id: str
    acks: list[Ack] = field(default_factory=list["Ack"])
    quarantined: list[QuarantinedRow] = field(default_factory=list["QuarantinedRow"])
    quarantine_written: int = 0
    failures: list[RowFailure] = field(default_factory=list[RowFailure])
    rollup_failures: int = 0

    @property
    def created(self) -> int:
        return sum(1 for ack in self.acks if ack.created)

    @property
    def ok(self) -> bool:
        return not self.failures

@dataclass(slots=True)
class IngestReport:
    """Totals across every batch of one ingestion run.

    ``batches`` and ``rows`` count finished batches only; batches that raised
    are listed in ``failed_batches`` instead.
    """

    batches: int = 0
    rows: int = 0
    merged: int = 0
    created: int = 0
    quarantined: int = 0
    rollup_failures: int = 0
    failures: list[RowFailure] = field(default_factory=list[RowFailure])
    failed_batches: list[BatchFailure] = field(default_factory=list[BatchFailure])

    def add(self, result: BatchResult, *, rows: int) -> None:
        self.batches += 1
        self.rows += rows
        self.merged += len(result.acks)
        self.created += result.created
        self.quarantined += len(result.quarantined)
        self.rollup_failures += result.rollup_failures
        self.failures.extend(result.failures)

    def add_failure(self, batch_id: str, error: Exception, *, rows: int) -> None:
        self.failed_batches.append(BatchFailure(batch_id, rows, error))

    @property
    def ok(self) -> bool:
        return not self.failures and not self.failed_batches
