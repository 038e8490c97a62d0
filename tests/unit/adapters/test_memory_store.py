"""Tests for the in-memory health record repository."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from adapters.memory.store import InMemoryHealthStore
from vitalwatch.domain.models import AnomalyRecord, Severity
from vitalwatch.domain.profiles import DEFAULT_SUBJECTS


async def test_find_profiles_filters_inactive() -> None:
    inactive = DEFAULT_SUBJECTS[1].model_copy(update={"is_active": False})
    store = InMemoryHealthStore(profiles=[DEFAULT_SUBJECTS[0], inactive])

    assert [p.id for p in await store.find_profiles()] == ["P001"]
    assert [p.id for p in await store.find_profiles("P002")] == ["P002"]
    assert await store.find_profiles("P999") == []


async def test_samples_are_sorted_and_range_is_inclusive(make_sample) -> None:
    samples = [make_sample(i) for i in (3, 0, 2, 1)]
    store = InMemoryHealthStore(samples=samples)

    everything = await store.find_samples()
    assert [s.timestamp for s in everything] == sorted(s.timestamp for s in samples)

    start, end = make_sample(1).timestamp, make_sample(2).timestamp
    ranged = await store.find_samples("P001", start, end)
    assert [s.timestamp for s in ranged] == [start, end]


async def test_samples_before_returns_latest_in_order(make_sample) -> None:
    store = InMemoryHealthStore(samples=[make_sample(i) for i in range(10)])

    before = await store.find_samples_before("P001", make_sample(8).timestamp, limit=3)

    assert [s.timestamp for s in before] == [make_sample(i).timestamp for i in (5, 6, 7)]
    assert await store.find_samples_before("P001", make_sample(8).timestamp, limit=0) == []


async def test_recent_samples(make_sample) -> None:
    store = InMemoryHealthStore()
    for i in range(5):
        await store.save_sample(make_sample(i))
    recent = await store.find_recent_samples("P001", 2)
    assert [s.timestamp for s in recent] == [make_sample(3).timestamp, make_sample(4).timestamp]
    assert await store.find_recent_samples("P002", 2) == []


async def test_create_anomaly_assigns_id_and_filters_by_range() -> None:
    store = InMemoryHealthStore()
    t0 = datetime(2026, 3, 1, tzinfo=UTC)
    for hours in (0, 5, 10):
        await store.create_anomaly(
            AnomalyRecord(
                subject_id="P001",
                severity=Severity.WARNING,
                detected_at=t0 + timedelta(hours=hours),
                alerts=[],
                anomaly_score=10,
            )
        )

    assert all(a.id for a in store.anomalies)
    assert len({a.id for a in store.anomalies}) == 3
    found = await store.find_anomalies("P001", t0 + timedelta(hours=1), t0 + timedelta(hours=10))
    assert len(found) == 2
    assert await store.find_anomalies("P002") == []
