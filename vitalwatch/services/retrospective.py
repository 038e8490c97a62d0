"""
Retrospective anomaly detection.

Replays stored historical samples through the live detection logic to surface
anomalies that were missed (e.g. after threshold changes or an outage), and
optionally records the new ones.

Pipeline per run:
1. Validate the request (ISO dates, start not after end) before touching data
2. Resolve subjects and fetch in-range samples in ascending time order
3. Pre-fetch already persisted anomalies for deduplication
4. Per subject: reset state, load preceding context, replay, reset again
5. Aggregate counts into a JSON-serializable summary

Deduplication key is (subject id, timestamp truncated to the minute). Once an
anomaly for a key is stored, later anomalies with the same key are skipped.
Dry runs store nothing, so they count every anomalous sample.
"""

from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from vitalwatch.config import RetrospectiveConfig
from vitalwatch.domain.errors import ConfigurationError
from vitalwatch.domain.models import (
    AlertLogEntry,
    AnomalyRecord,
    DetectionResult,
    Severity,
    SubjectProfile,
    VitalSample,
    ensure_utc,
)
from vitalwatch.services.detector import AnomalyDetector
from vitalwatch.services.repository import HealthRecordRepository
from vitalwatch.services.result import Result

logger = structlog.get_logger(__name__)

DedupKey = tuple[str, datetime]


def dedup_key(subject_id: str, timestamp: datetime) -> DedupKey:
    """Identity of a persisted anomaly: subject plus minute-truncated UTC time."""
    minute = ensure_utc(timestamp).astimezone(UTC).replace(second=0, microsecond=0)
    return (subject_id, minute)


def _parse_iso_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            # fromisoformat accepts a trailing "Z" from Python 3.11 on
            return datetime.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValueError(f"Invalid {field_name} format: {value!r}")


class RetrospectiveRequest(BaseModel):
    """Options accepted at the request boundary. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    subject_id: str | None = Field(default=None, description="Restrict to one subject")
    start_date: datetime | None = Field(default=None, description="Inclusive range start")
    end_date: datetime | None = Field(default=None, description="Inclusive range end")
    update_database: bool = Field(default=True, description="Persist newly found anomalies")

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start_date(cls, v: Any) -> datetime | None:
        return _parse_iso_datetime(v, "startDate")

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, v: Any) -> datetime | None:
        return _parse_iso_datetime(v, "endDate")

    @field_validator("start_date", "end_date")
    @classmethod
    def dates_are_aware(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def start_not_after_end(self) -> "RetrospectiveRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate cannot be after endDate")
        return self


class SubjectSummary(BaseModel):
    """Per-subject counters of one retrospective run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    records_processed: int = 0
    new_anomalies: int = 0
    critical_anomalies: int = 0
    warning_anomalies: int = 0


class RetrospectiveSummary(BaseModel):
    """Outcome of a retrospective run, partial when errors occurred."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    records_processed: int = 0
    new_anomalies_detected: int = 0
    critical_anomalies: int = 0
    warning_anomalies: int = 0
    patients_summary: dict[str, SubjectSummary] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class RetrospectiveRunner:
    """
    Batch orchestrator replaying history through an AnomalyDetector.

    Owns its own detector by default, so replay never shares window state
    with live monitoring. Runs for one runner must not overlap.
    """

    def __init__(
        self,
        repository: HealthRecordRepository | None,
        detector: AnomalyDetector | None = None,
        config: RetrospectiveConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.detector = detector or AnomalyDetector()
        self.config = config or RetrospectiveConfig()
        self.clock = clock or (lambda: datetime.now(UTC))
        self.logger = logger.bind(component="retrospective_runner")

    async def run(self, request: RetrospectiveRequest | None = None) -> RetrospectiveSummary:
        """Replay stored samples and return the run summary."""
        repository = self.repository
        if repository is None:
            raise ConfigurationError("Retrospective detection requires a health record repository")

        request = request or RetrospectiveRequest(update_database=self.config.update_database)
        summary = RetrospectiveSummary()
        self.logger.info(
            "retrospective_started",
            subject_id=request.subject_id,
            start_date=request.start_date.isoformat() if request.start_date else None,
            end_date=request.end_date.isoformat() if request.end_date else None,
            update_database=request.update_database,
        )

        try:
            profiles = await repository.find_profiles(request.subject_id)
            if not profiles:
                self.logger.info("retrospective_no_subjects", subject_id=request.subject_id)
                return summary

            samples = await repository.find_samples(
                request.subject_id, request.start_date, request.end_date
            )
            existing = await repository.find_anomalies(
                request.subject_id, request.start_date, request.end_date
            )
        except Exception as e:
            self.logger.exception("retrospective_query_failed", error=str(e))
            summary.success = False
            summary.errors.append(str(e))
            return summary

        known_keys: set[DedupKey] = {dedup_key(a.subject_id, a.detected_at) for a in existing}
        profile_map = {p.id: p for p in profiles}

        self.logger.info(
            "retrospective_processing",
            records=len(samples),
            subjects=len(profiles),
            existing_anomalies=len(existing),
        )

        by_subject: defaultdict[str, list[VitalSample]] = defaultdict(list)
        for sample in samples:
            by_subject[sample.subject_id].append(sample)

        for subject_id, subject_samples in by_subject.items():
            profile = profile_map.get(subject_id)
            if profile is None:
                summary.errors.append(f"Subject {subject_id} not found")
                self.logger.warning("retrospective_subject_not_found", subject_id=subject_id)
                continue

            try:
                await self._replay_subject(
                    repository, profile, subject_samples, request, known_keys, summary
                )
            except Exception as e:
                self.logger.exception(
                    "retrospective_subject_failed", subject_id=subject_id, error=str(e)
                )
                summary.errors.append(f"Error processing subject {subject_id}: {e}")
            finally:
                self.detector.reset(subject_id)

        self.logger.info(
            "retrospective_completed",
            records_processed=summary.records_processed,
            new_anomalies=summary.new_anomalies_detected,
            errors=len(summary.errors),
        )
        return summary

    async def _replay_subject(
        self,
        repository: HealthRecordRepository,
        profile: SubjectProfile,
        samples: list[VitalSample],
        request: RetrospectiveRequest,
        known_keys: set[DedupKey],
        summary: RetrospectiveSummary,
    ) -> None:
        subject_summary = summary.patients_summary[profile.id] = SubjectSummary(name=profile.name)

        self.detector.reset(profile.id)
        context = await repository.find_samples_before(
            profile.id, samples[0].timestamp, self.config.context_limit
        )
        for sample in context:
            self.detector.add_to_window(profile.id, sample)

        for sample in samples:
            summary.records_processed += 1
            subject_summary.records_processed += 1
            detection = self.detector.detect(profile.id, sample, profile)
            if not detection.is_anomaly:
                continue

            # Only keys of stored anomalies suppress later ones
            key = dedup_key(profile.id, sample.timestamp)
            if key in known_keys:
                continue

            summary.new_anomalies_detected += 1
            subject_summary.new_anomalies += 1
            if detection.severity is Severity.CRITICAL:
                summary.critical_anomalies += 1
                subject_summary.critical_anomalies += 1
            elif detection.severity is Severity.WARNING:
                summary.warning_anomalies += 1
                subject_summary.warning_anomalies += 1

            if request.update_database:
                saved = await self._persist(repository, profile, sample, detection)
                if saved.is_ok():
                    known_keys.add(key)
                else:
                    summary.errors.append(
                        f"Error saving anomaly for {profile.id} at "
                        f"{sample.timestamp.isoformat()}: {saved.unwrap_err()}"
                    )

        self.logger.info(
            "retrospective_subject_completed",
            subject_id=profile.id,
            context_samples=len(context),
            records=len(samples),
            new_anomalies=subject_summary.new_anomalies,
        )

    async def _persist(
        self,
        repository: HealthRecordRepository,
        profile: SubjectProfile,
        sample: VitalSample,
        detection: DetectionResult,
    ) -> Result[AnomalyRecord, Exception]:
        """Store one anomaly and its alert logs; failures are returned, not raised."""
        detection_date = self.clock()
        try:
            anomaly = await repository.create_anomaly(
                AnomalyRecord(
                    subject_id=profile.id,
                    severity=detection.severity,
                    detected_at=sample.timestamp,
                    alerts=detection.alerts,
                    anomaly_score=detection.score,
                    metadata={
                        "retrospective": True,
                        "detectionDate": detection_date.isoformat(),
                        "anomalyScore": detection.score,
                    },
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
                        metadata={
                            "retrospective": True,
                            "detectionDate": detection_date.isoformat(),
                            "anomalyId": anomaly.id,
                        },
                    )
                    for alert in detection.alerts
                ]
            )
            return Result.ok(anomaly)
        except Exception as e:
            self.logger.error(
                "retrospective_persist_failed",
                subject_id=profile.id,
                timestamp=sample.timestamp.isoformat(),
                error=str(e),
            )
            return Result.err(e)
