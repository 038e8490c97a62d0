"""
Per-subject rolling windows and anomaly history.

Each subject gets a bounded FIFO of recent samples (used for statistical
baselining) and a bounded ring of anomaly history entries. Both live for the
lifetime of the owning store instance, never at module level, so independent
engines (tests, sharded workers, retrospective replay) never collide.
"""

import threading
from collections import defaultdict, deque

from vitalwatch.domain.models import AnomalyHistoryEntry, VitalSample


class RollingWindowStore:
    """Bounded per-subject history buffers with per-subject write locks."""

    def __init__(self, window_capacity: int = 288, history_capacity: int = 100) -> None:
        if window_capacity <= 0 or history_capacity <= 0:
            raise ValueError("window and history capacities must be positive")
        self.window_capacity = window_capacity
        self.history_capacity = history_capacity
        self._windows: dict[str, deque[VitalSample]] = {}
        self._histories: dict[str, deque[AnomalyHistoryEntry]] = {}
        self._locks: defaultdict[str, threading.RLock] = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    def lock(self, subject_id: str) -> threading.RLock:
        """Lock that serializes mutations of one subject's window."""
        with self._locks_guard:
            return self._locks[subject_id]

    def append(self, subject_id: str, sample: VitalSample) -> None:
        """Append a sample, evicting the oldest once capacity is exceeded."""
        window = self._windows.get(subject_id)
        if window is None:
            window = self._windows[subject_id] = deque(maxlen=self.window_capacity)
        window.append(sample)

    def snapshot(self, subject_id: str) -> tuple[VitalSample, ...]:
        """Ordered copy of the subject's window, oldest first. Empty if unknown."""
        return tuple(self._windows.get(subject_id, ()))

    def size(self, subject_id: str) -> int:
        return len(self._windows.get(subject_id, ()))

    def record_anomaly(self, subject_id: str, entry: AnomalyHistoryEntry) -> None:
        history = self._histories.get(subject_id)
        if history is None:
            history = self._histories[subject_id] = deque(maxlen=self.history_capacity)
        history.append(entry)

    def history(self, subject_id: str, limit: int | None = None) -> list[AnomalyHistoryEntry]:
        """Most recent ``limit`` history entries, oldest first."""
        entries = list(self._histories.get(subject_id, ()))
        if limit is None:
            return entries
        if limit <= 0:
            return []
        return entries[-limit:]

    def reset(self, subject_id: str) -> None:
        """Drop the subject's window and anomaly history."""
        with self.lock(subject_id):
            self._windows.pop(subject_id, None)
            self._histories.pop(subject_id, None)
