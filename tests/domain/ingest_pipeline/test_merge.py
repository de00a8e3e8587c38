from __future__ import annotations

import random

import pytest

from regwatch.adapters.memory import InMemoryCanonicalEventStore
from regwatch.domain.errors import (
    MergeConflictExhausted,
    PermanentWriteError,
    TransientWriteConflict,
)
from regwatch.domain.ingest_pipeline import MergeCoordinator, MergeRetryPolicy
from regwatch.domain.model import EnrichmentOverlay, MergeStrategy
from tests.helpers.ingest import FlakyEventStore, RecordingSleep, make_event

NO_JITTER = MergeRetryPolicy(max_attempts=5, base_delay=0.1, max_delay=2.0, jitter=0.0)


def test_first_write_creates_and_redelivery_does_not() -> None:
    store = InMemoryCanonicalEventStore()
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=RecordingSleep())

    first = merge.upsert(make_event())
    second = merge.upsert(make_event())

    assert (first.created, first.attempts, first.strategy) == (True, 1, MergeStrategy.ATOMIC)
    assert second.created is False
    assert store.count() == 1


def test_transient_conflicts_are_retried_with_exponential_backoff() -> None:
    sleep = RecordingSleep()
    store = FlakyEventStore(InMemoryCanonicalEventStore(), failures=2)
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=sleep)

    ack = merge.upsert(make_event())

    assert ack.created is True
    assert ack.attempts == 3
    assert sleep.delays == pytest.approx([0.1, 0.2])


def test_retry_is_bounded_and_reports_exhaustion() -> None:
    sleep = RecordingSleep()
    store = FlakyEventStore(InMemoryCanonicalEventStore(), failures=100)
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=sleep)

    with pytest.raises(MergeConflictExhausted) as excinfo:
        merge.upsert(make_event("evt-9"))

    assert store.calls == 5
    assert excinfo.value.event_id == "evt-9"
    assert excinfo.value.attempts == 5
    assert excinfo.value.delays == pytest.approx((0.1, 0.2, 0.4, 0.8))
    assert sleep.delays == pytest.approx([0.1, 0.2, 0.4, 0.8])
    assert isinstance(excinfo.value.__cause__, TransientWriteConflict)
    assert store.count() == 0


def test_backoff_is_capped() -> None:
    policy = MergeRetryPolicy(max_attempts=10, base_delay=1.0, max_delay=3.0, jitter=0.0)

    assert [policy.backoff(attempt) for attempt in range(1, 5)] == [1.0, 2.0, 3.0, 3.0]


def test_seeded_jitter_is_reproducible_and_bounded() -> None:
    policy = MergeRetryPolicy(max_attempts=4, base_delay=0.1, max_delay=2.0, jitter=0.05)

    def delays(seed: int) -> list[float]:
        sleep = RecordingSleep()
        store = FlakyEventStore(InMemoryCanonicalEventStore(), failures=100)
        merge = MergeCoordinator(store, policy=policy, sleep=sleep, rng=random.Random(seed))
        with pytest.raises(MergeConflictExhausted):
            merge.upsert(make_event())
        return sleep.delays

    first = delays(7)

    assert first == delays(7)
    for attempt, wait in enumerate(first, start=1):
        assert policy.backoff(attempt) <= wait <= policy.backoff(attempt) + 0.05


def test_invalid_policy_is_rejected() -> None:
    with pytest.raises(ValueError, match="max_attempts"):
        MergeRetryPolicy(max_attempts=0)
    with pytest.raises(ValueError, match="non-negative"):
        MergeRetryPolicy(jitter=-1.0)


def test_unsupported_atomic_merge_falls_back_to_replace() -> None:
    store = InMemoryCanonicalEventStore(atomic_merge=False)
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=RecordingSleep())

    first = merge.upsert(make_event())
    second = merge.upsert(make_event())

    assert merge.strategy == MergeStrategy.REPLACE
    assert (first.created, first.strategy) == (True, MergeStrategy.REPLACE)
    assert second.created is False
    assert store.count() == 1


@pytest.mark.parametrize("atomic_merge", [True, False])
def test_redelivery_keeps_the_stored_enrichment_overlay(atomic_merge: bool) -> None:
    store = InMemoryCanonicalEventStore(atomic_merge=atomic_merge)
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=RecordingSleep())
    merge.upsert(make_event())
    overlay = EnrichmentOverlay(title="Worker injured at Acme", description=None, verified=True)
    assert merge.apply_enrichment("evt-1", overlay)

    merge.upsert(make_event())

    stored = store.get("evt-1")
    assert stored is not None
    assert stored.enrichment is not None
    assert stored.enrichment.title == "Worker injured at Acme"
    assert stored.display_title == "Worker injured at Acme"


def test_enrichment_for_an_unknown_event_is_ignored() -> None:
    store = InMemoryCanonicalEventStore()
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=RecordingSleep())

    assert merge.apply_enrichment("missing", EnrichmentOverlay("t", "d")) is False


def test_applied_enrichment_gets_a_timestamp() -> None:
    store = InMemoryCanonicalEventStore()
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=RecordingSleep())
    merge.upsert(make_event())

    merge.apply_enrichment("evt-1", EnrichmentOverlay("t", "d"))

    stored = store.get("evt-1")
    assert stored is not None
    assert stored.enrichment is not None
    assert stored.enrichment.generated_at is not None


def test_permanent_store_errors_propagate_without_retry() -> None:
    class BrokenStore(InMemoryCanonicalEventStore):
        calls = 0

        def upsert(self, event: object) -> bool:  # type: ignore[override]
            BrokenStore.calls += 1
            raise PermanentWriteError("constraint violated")

    sleep = RecordingSleep()
    merge = MergeCoordinator(BrokenStore(), policy=NO_JITTER, sleep=sleep)

    with pytest.raises(PermanentWriteError):
        merge.upsert(make_event())

    assert BrokenStore.calls == 1
    assert sleep.delays == []


def test_upsert_many_acks_each_event_in_order() -> None:
    store = InMemoryCanonicalEventStore()
    merge = MergeCoordinator(store, policy=NO_JITTER, sleep=RecordingSleep())
    merge.upsert(make_event("evt-2"))

    acks = merge.upsert_many([make_event("evt-1"), make_event("evt-2"), make_event("evt-3")])

    assert [(ack.event_id, ack.created) for ack in acks] == [
        ("evt-1", True),
        ("evt-2", False),
        ("evt-3", True),
    ]
    assert store.count() == 3
