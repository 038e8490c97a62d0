"""Tests for the per-subject rolling window and anomaly history ring."""

from datetime import UTC, datetime

import pytest

from vitalwatch.domain.models import AnomalyHistoryEntry, Severity
from vitalwatch.services.window_store import RollingWindowStore


def _entry(minute: int) -> AnomalyHistoryEntry:
    return AnomalyHistoryEntry(
        timestamp=datetime(2026, 1, 1, 0, minute % 60, tzinfo=UTC),
        alerts=[],
        severity=Severity.WARNING,
    )


def test_snapshot_of_unknown_subject_is_empty() -> None:
    store = RollingWindowStore()
    assert store.snapshot("P001") == ()
    assert store.size("P001") == 0


def test_fifo_eviction_after_capacity(make_sample) -> None:
    store = RollingWindowStore()
    samples = [make_sample(i) for i in range(289)]
    for sample in samples:
        store.append("P001", sample)

    window = store.snapshot("P001")
    assert len(window) == 288
    assert samples[0] not in window
    assert window[0] == samples[1]
    assert window[-1] == samples[-1]


def test_snapshot_is_a_copy(make_sample) -> None:
    store = RollingWindowStore()
    store.append("P001", make_sample(0))
    snapshot = store.snapshot("P001")
    store.append("P001", make_sample(1))
    assert len(snapshot) == 1
    assert store.size("P001") == 2


def test_subjects_are_isolated(make_sample) -> None:
    store = RollingWindowStore()
    store.append("P001", make_sample(0))
    store.append("P002", make_sample(0, subject_id="P002"))
    store.reset("P001")
    assert store.snapshot("P001") == ()
    assert store.size("P002") == 1


def test_history_ring_keeps_last_entries() -> None:
    store = RollingWindowStore(history_capacity=100)
    entries = [_entry(i) for i in range(150)]
    for entry in entries:
        store.record_anomaly("P001", entry)

    history = store.history("P001")
    assert len(history) == 100
    assert history[0] is entries[50]
    assert store.history("P001", limit=5) == entries[-5:]
    assert store.history("P001", limit=0) == []


def test_reset_clears_window_and_history(make_sample) -> None:
    store = RollingWindowStore()
    store.append("P001", make_sample(0))
    store.record_anomaly("P001", _entry(0))
    store.reset("P001")
    assert store.snapshot("P001") == ()
    assert store.history("P001") == []


def test_lock_is_stable_per_subject() -> None:
    store = RollingWindowStore()
    assert store.lock("P001") is store.lock("P001")
    assert store.lock("P001") is not store.lock("P002")


def test_invalid_capacity_rejected() -> None:
    with pytest.raises(ValueError, match="capacities must be positive"):
        RollingWindowStore(window_capacity=0)
