from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from regwatch.adapters.memory import InMemoryRollupStore
from regwatch.domain.errors import RollupConflict
from regwatch.domain.ingest_pipeline import AggregateMaintainer
from regwatch.domain.model import EntityType, RollupKey, RollupRecord
from tests.helpers.ingest import ContendedRollupStore, make_event, make_summary

COMPANY_KEY = RollupKey(EntityType.COMPANY, "acme-corp")
NATION_KEY = RollupKey(EntityType.NATION, "usa")


def _stored(store: InMemoryRollupStore, key: RollupKey) -> RollupRecord:
    record = store.get(key)
    assert record is not None, key
    return record


def test_event_feeds_every_entity_and_bucket() -> None:
    store = InMemoryRollupStore()
    maintainer = AggregateMaintainer(store)

    outcome = maintainer.apply(make_event(amount=Decimal("10.5")))

    assert outcome.ok
    assert sorted(str(key) for key in outcome.updated) == [
        "city:NY-new_york:2024",
        "city:NY-new_york:all",
        "company:acme-corp:2024",
        "company:acme-corp:all",
        "nation:usa:2024",
        "nation:usa:all",
        "state:NY:2024",
        "state:NY:all",
    ]
    nation = _stored(store, NATION_KEY)
    assert nation.event_count == 1
    assert nation.monetary_total == Decimal("10.5")
    assert nation.name == "United States"
    assert _stored(store, COMPANY_KEY).name == "ACME CORP"


def test_recent_window_is_bounded_and_newest_first() -> None:
    store = InMemoryRollupStore()
    maintainer = AggregateMaintainer(store, recent_limit=3)
    days = [date(2024, 1, day) for day in (5, 1, 9, 3, 7)]

    for index, day in enumerate(days):
        maintainer.apply(make_event(f"evt-{index}", occurred_at=day, amount=Decimal(1)))

    record = _stored(store, COMPANY_KEY)
    assert record.event_count == 5
    assert record.monetary_total == Decimal(5)
    assert [item.occurred_at.day for item in record.recent] == [9, 7, 5]


def test_same_day_events_are_ordered_by_event_id() -> None:
    record = RollupRecord(key=COMPANY_KEY, name="Acme")
    day = date(2024, 1, 1)

    for event_id in ("b", "c", "a"):
        record.record(make_summary(event_id, day), limit=5)

    assert [item.event_id for item in record.recent] == ["c", "b", "a"]


def test_replaying_an_event_does_not_double_count() -> None:
    store = InMemoryRollupStore()
    maintainer = AggregateMaintainer(store)
    event = make_event(amount=Decimal(100))

    maintainer.apply(event)
    replay = maintainer.apply(event, count=False)

    assert replay.updated == []
    assert len(replay.unchanged) == 8
    record = _stored(store, COMPANY_KEY)
    assert record.event_count == 1
    assert record.monetary_total == Decimal(100)
    assert record.version == 1


def test_counting_after_an_uncounted_duplicate_still_counts() -> None:
    store = InMemoryRollupStore()
    maintainer = AggregateMaintainer(store)
    event = make_event(amount=Decimal(40))

    maintainer.apply(event, count=False)
    outcome = maintainer.apply(event, count=True)

    assert len(outcome.updated) == 8
    for key in (COMPANY_KEY, NATION_KEY):
        record = _stored(store, key)
        assert record.event_count == 1
        assert record.monetary_total == Decimal(40)
        assert [item.event_id for item in record.recent] == [event.event_id]


def test_uncounted_event_refreshes_window_only() -> None:
    record = RollupRecord(key=COMPANY_KEY, name="Acme")

    summary = make_summary("e1", date(2024, 1, 1), amount="5")

    changed = record.record(summary, limit=2, count=False)

    assert changed
    assert record.event_count == 0
    assert record.monetary_total == Decimal(0)
    assert [item.event_id for item in record.recent] == ["e1"]


def test_uncounted_event_older_than_the_window_changes_nothing() -> None:
    record = RollupRecord(key=COMPANY_KEY, name="Acme")
    record.record(make_summary("new", date(2024, 6, 1)), limit=1)

    changed = record.record(make_summary("old", date(2020, 1, 1)), limit=1, count=False)

    assert changed is False
    assert [item.event_id for item in record.recent] == ["new"]


def test_version_conflicts_are_retried() -> None:
    inner = InMemoryRollupStore()
    store = ContendedRollupStore(inner, key=COMPANY_KEY, conflicts=2)
    maintainer = AggregateMaintainer(store, max_attempts=3)

    outcome = maintainer.apply(make_event())

    assert outcome.ok
    assert store.saves == 3
    assert _stored(inner, COMPANY_KEY).event_count == 1


def test_failing_rollup_is_isolated_from_the_others() -> None:
    inner = InMemoryRollupStore()
    store = ContendedRollupStore(inner, key=COMPANY_KEY, conflicts=10)
    maintainer = AggregateMaintainer(store, max_attempts=3)

    outcome = maintainer.apply(make_event())

    assert outcome.failed == [COMPANY_KEY]
    assert len(outcome.updated) == 7
    assert inner.get(COMPANY_KEY) is None
    assert _stored(inner, NATION_KEY).event_count == 1


def test_yearly_buckets_can_be_disabled() -> None:
    store = InMemoryRollupStore()
    maintainer = AggregateMaintainer(store, yearly_buckets=False)

    outcome = maintainer.apply(make_event(company_slug=None))

    assert [str(key) for key in outcome.updated] == [
        "city:NY-new_york:all",
        "state:NY:all",
        "nation:usa:all",
    ]


def test_window_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="recent_limit"):
        AggregateMaintainer(InMemoryRollupStore(), recent_limit=0)


def test_stale_version_is_rejected_by_the_store() -> None:
    store = InMemoryRollupStore()
    store.save(RollupRecord(key=COMPANY_KEY, name="Acme"))
    stale = RollupRecord(key=COMPANY_KEY, name="Acme", event_count=3)

    with pytest.raises(RollupConflict, match="expected version 0"):
        store.save(stale)
