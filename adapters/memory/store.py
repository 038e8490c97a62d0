"""
In-memory implementation of the health record repository.

Holds profiles, samples, anomalies and alert logs in plain lists. Useful for
tests, local demos and replaying exported datasets without a database.
"""

import asyncio
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime

import structlog

from vitalwatch.domain.models import (
    AlertLogEntry,
    AnomalyRecord,
    SubjectProfile,
    VitalSample,
    ensure_utc,
)

logger = structlog.get_logger(__name__)


def _in_range(moment: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and moment < ensure_utc(start):
        return False
    if end is not None and moment > ensure_utc(end):
        return False
    return True


class InMemoryHealthStore:
    """Repository backed by lists, guarded by a single asyncio lock."""

    def __init__(
        self,
        profiles: Iterable[SubjectProfile] = (),
        samples: Iterable[VitalSample] = (),
    ) -> None:
        self.profiles: dict[str, SubjectProfile] = {p.id: p for p in profiles}
        self.samples: list[tuple[str, VitalSample]] = []
        self.anomalies: list[AnomalyRecord] = []
        self.alert_logs: list[AlertLogEntry] = []
        self._lock = asyncio.Lock()
        self.logger = logger.bind(component="in_memory_store")

        for sample in samples:
            self.samples.append((uuid.uuid4().hex, sample))

    def add_profile(self, profile: SubjectProfile) -> None:
        self.profiles[profile.id] = profile

    async def find_profiles(self, subject_id: str | None = None) -> list[SubjectProfile]:
        if subject_id is not None:
            profile = self.profiles.get(subject_id)
            return [profile] if profile else []
        return [p for p in self.profiles.values() if p.is_active]

    def _sorted_samples(self, subject_id: str | None) -> list[VitalSample]:
        matching = [s for _, s in self.samples if subject_id is None or s.subject_id == subject_id]
        return sorted(matching, key=lambda s: s.timestamp)

    async def find_samples(
        self,
        subject_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[VitalSample]:
        return [
            s for s in self._sorted_samples(subject_id) if _in_range(s.timestamp, start, end)
        ]

    async def find_samples_before(
        self, subject_id: str, before: datetime, limit: int
    ) -> list[VitalSample]:
        if limit <= 0:
            return []
        earlier = [s for s in self._sorted_samples(subject_id) if s.timestamp < ensure_utc(before)]
        return earlier[-limit:]

    async def find_recent_samples(self, subject_id: str, limit: int) -> list[VitalSample]:
        if limit <= 0:
            return []
        return self._sorted_samples(subject_id)[-limit:]

    async def find_anomalies(
        self,
        subject_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AnomalyRecord]:
        return [
            a
            for a in self.anomalies
            if (subject_id is None or a.subject_id == subject_id)
            and _in_range(a.detected_at, start, end)
        ]

    async def save_sample(self, sample: VitalSample) -> str:
        record_id = uuid.uuid4().hex
        async with self._lock:
            self.samples.append((record_id, sample))
        return record_id

    async def create_anomaly(self, record: AnomalyRecord) -> AnomalyRecord:
        stored = record.model_copy(update={"id": record.id or uuid.uuid4().hex})
        async with self._lock:
            self.anomalies.append(stored)
        self.logger.debug("anomaly_stored", subject_id=stored.subject_id, anomaly_id=stored.id)
        return stored

    async def create_alert_logs(self, entries: Sequence[AlertLogEntry]) -> None:
        async with self._lock:
            self.alert_logs.extend(entries)
