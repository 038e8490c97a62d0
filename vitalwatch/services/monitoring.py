"""
Real-time monitoring service around the anomaly detector.

Pipeline per incoming sample:
1. Serialize on the subject (one writer per subject window)
2. Optionally store the sample
3. Detect anomalies against the subject's rolling window
4. Store the anomaly and its alert logs
5. Dispatch alert events to handlers (broadcast, paging, console)

Samples for different subjects are processed concurrently; samples for the
same subject are processed in arrival order.
"""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from vitalwatch.config import MonitoringConfig
from vitalwatch.domain.models import (
    AlertLogEntry,
    AnomalyRecord,
    DetectionResult,
    SubjectProfile,
    VitalSample,
)
from vitalwatch.services.detector import AnomalyDetector
from vitalwatch.services.repository import HealthRecordRepository

logger = structlog.get_logger(__name__)


@dataclass
class AlertEvent:
    """Represents an anomaly that should be sent to external systems."""

    timestamp: datetime
    subject_id: str
    subject_name: str
    result: DetectionResult
    sample: VitalSample
    anomaly_id: str | None = None

    @property
    def severity(self) -> str:
        return self.result.severity.value


AlertHandler = Callable[[AlertEvent], None] | Callable[[AlertEvent], Awaitable[None]]


@dataclass
class BatchIngestReport:
    """Outcome of ingesting a batch of samples."""

    results: dict[str, list[DetectionResult]] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def anomalies(self) -> int:
        return sum(1 for rs in self.results.values() for r in rs if r.is_anomaly)


class AlertManager:
    """Keeps recent alert events and dispatches them to handlers."""

    def __init__(self, handlers: Sequence[AlertHandler] = (), history_size: int = 1000) -> None:
        self.handlers: list[AlertHandler] = list(handlers)
        self.alert_history: deque[AlertEvent] = deque(maxlen=history_size)
        self.logger = logger.bind(component="alert_manager")

    def add_handler(self, handler: AlertHandler) -> None:
        self.handlers.append(handler)

    async def dispatch(self, event: AlertEvent) -> None:
        """Send the event to every handler. A failing handler never stops the others."""
        self.alert_history.append(event)
        self.logger.info(
            "alert_generated",
            subject_id=event.subject_id,
            severity=event.severity,
            score=event.result.score,
        )

        for handler in self.handlers:
            try:
                outcome = handler(event)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as e:
                self.logger.error(
                    "alert_dispatch_failed", error=str(e), subject_id=event.subject_id
                )


class MonitoringService:
    """
    Live ingestion path: detection, persistence and alert dispatch.

    Profiles are looked up from the mapping given at construction, falling
    back to the repository for subjects it does not know yet.
    """

    def __init__(
        self,
        detector: AnomalyDetector | None = None,
        repository: HealthRecordRepository | None = None,
        profiles: Iterable[SubjectProfile] = (),
        handlers: Sequence[AlertHandler] = (),
        config: MonitoringConfig | None = None,
    ) -> None:
        self.detector = detector or AnomalyDetector()
        self.repository = repository
        self.config = config or MonitoringConfig()
        self.profiles: dict[str, SubjectProfile] = {p.id: p for p in profiles}
        self.alert_manager = AlertManager(handlers)
        self._subject_locks: dict[str, asyncio.Lock] = {}
        self.logger = logger.bind(component="monitoring_service")

    def _lock_for(self, subject_id: str) -> asyncio.Lock:
        lock = self._subject_locks.get(subject_id)
        if lock is None:
            lock = self._subject_locks[subject_id] = asyncio.Lock()
        return lock

    async def _profile_for(self, subject_id: str) -> SubjectProfile:
        profile = self.profiles.get(subject_id)
        if profile is None and self.repository is not None:
            found = await self.repository.find_profiles(subject_id)
            if found:
                profile = self.profiles[subject_id] = found[0]
        if profile is None:
            raise LookupError(f"Subject {subject_id} not found")
        return profile

    async def warm_start(self, subject_ids: Iterable[str] | None = None) -> dict[str, int]:
        """Load each subject's most recent stored samples into its window."""
        if self.repository is None:
            self.logger.warning("warm_start_skipped", reason="no repository")
            return {}

        loaded: dict[str, int] = {}
        for subject_id in subject_ids if subject_ids is not None else list(self.profiles):
            async with self._lock_for(subject_id):
                samples = await self.repository.find_recent_samples(
                    subject_id, self.config.warm_start_limit
                )
                loaded[subject_id] = self.detector.warm_start(subject_id, samples)
        return loaded

    async def ingest(self, sample: VitalSample) -> DetectionResult:
        """Process one sample end to end and return its detection result."""
        subject_id = sample.subject_id
        profile = await self._profile_for(subject_id)

        async with self._lock_for(subject_id):
            record_id = None
            if self.repository is not None and self.config.persist_samples:
                record_id = await self.repository.save_sample(sample)

            result = self.detector.detect(subject_id, sample, profile)

            anomaly_id = None
            if result.is_anomaly and self.repository is not None:
                anomaly_id = await self._store_anomaly(
                    self.repository, profile, sample, result, record_id
                )

        if result.is_anomaly:
            await self.alert_manager.dispatch(
                AlertEvent(
                    timestamp=datetime.now(UTC),
                    subject_id=subject_id,
                    subject_name=profile.name,
                    result=result,
                    sample=sample,
                    anomaly_id=anomaly_id,
                )
            )

        return result

    async def _store_anomaly(
        self,
        repository: HealthRecordRepository,
        profile: SubjectProfile,
        sample: VitalSample,
        result: DetectionResult,
        record_id: str | None,
    ) -> str | None:
        anomaly = await repository.create_anomaly(
            AnomalyRecord(
                subject_id=profile.id,
                severity=result.severity,
                detected_at=sample.timestamp,
                alerts=result.alerts,
                anomaly_score=result.score,
                record_id=record_id,
            )
        )
        await repository.create_alert_logs(
            [
                AlertLogEntry(
                    subject_id=profile.id,
                    severity=alert.severity,
                    category=alert.category,
                    message=alert.message,
                    value=alert.value,
                    thresholds=profile.alert_thresholds,
                    timestamp=sample.timestamp,
                    metadata={"anomalyId": anomaly.id},
                )
                for alert in result.alerts
            ]
        )
        return anomaly.id

    async def ingest_batch(self, samples: Iterable[VitalSample]) -> BatchIngestReport:
        """
        Ingest many samples: subjects in parallel, each subject in order.

        A failure stops only the remaining samples of that subject.
        """
        by_subject: dict[str, list[VitalSample]] = {}
        for sample in samples:
            by_subject.setdefault(sample.subject_id, []).append(sample)

        report = BatchIngestReport()

        async def _ingest_subject(subject_id: str, subject_samples: list[VitalSample]) -> None:
            results = report.results.setdefault(subject_id, [])
            try:
                for sample in subject_samples:
                    results.append(await self.ingest(sample))
            except Exception as e:
                self.logger.exception("subject_ingest_failed", subject_id=subject_id, error=str(e))
                report.errors.append(f"Error processing subject {subject_id}: {e}")

        async with asyncio.TaskGroup() as task_group:
            for subject_id, subject_samples in by_subject.items():
                task_group.create_task(_ingest_subject(subject_id, subject_samples))

        self.logger.info(
            "batch_ingested",
            subjects=len(by_subject),
            anomalies=report.anomalies,
            errors=len(report.errors),
        )
        return report

    def get_anomaly_history(self, subject_id: str, limit: int = 20):
        return self.detector.get_anomaly_history(subject_id, limit)
