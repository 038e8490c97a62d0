"""
Persistence boundary used by live monitoring and retrospective replay.

Why Protocol over ABC: structural typing, easy test doubles, and the storage
backend (MongoDB in production, in-memory in tests) stays outside the core.
All date ranges are inclusive on both ends; ``None`` means unbounded.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from vitalwatch.domain.models import AlertLogEntry, AnomalyRecord, SubjectProfile, VitalSample


class HealthRecordRepository(Protocol):
    """Storage operations the engine's orchestrators depend on."""

    async def find_profiles(self, subject_id: str | None = None) -> list[SubjectProfile]:
        """Profile with that id regardless of activity, or every active profile."""
        ...

    async def find_samples(
        self,
        subject_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[VitalSample]:
        """Stored samples in ascending timestamp order."""
        ...

    async def find_samples_before(
        self, subject_id: str, before: datetime, limit: int
    ) -> list[VitalSample]:
        """Up to ``limit`` samples strictly before ``before``, ascending."""
        ...

    async def find_recent_samples(self, subject_id: str, limit: int) -> list[VitalSample]:
        """The ``limit`` most recent samples, ascending."""
        ...

    async def find_anomalies(
        self,
        subject_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AnomalyRecord]:
        """Persisted anomalies whose ``detected_at`` lies in the range."""
        ...

    async def save_sample(self, sample: VitalSample) -> str:
        """Store a sample and return its record id."""
        ...

    async def create_anomaly(self, record: AnomalyRecord) -> AnomalyRecord:
        """Store an anomaly and return it with its id assigned."""
        ...

    async def create_alert_logs(self, entries: Sequence[AlertLogEntry]) -> None:
        ...
