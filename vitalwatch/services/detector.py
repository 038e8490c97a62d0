"""
Anomaly aggregation over the four detection strategies.

The detector owns one RollingWindowStore. ``detect`` evaluates a sample
against the subject's current window, merges the findings into a single
severity and score, then appends the sample and records history. It never
persists anything; callers decide what to store or broadcast.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime

import structlog

from vitalwatch.config import DetectionConfig
from vitalwatch.domain.models import (
    Alert,
    AlertSeverity,
    AnomalyHistoryEntry,
    DetectionResult,
    Severity,
    SubjectProfile,
    VitalSample,
)
from vitalwatch.services.evaluators import DEFAULT_EVALUATORS, EvaluationContext, Evaluator
from vitalwatch.services.window_store import RollingWindowStore

logger = structlog.get_logger(__name__)


def calculate_score(
    alerts: Sequence[Alert], critical_weight: int = 30, warning_weight: int = 10
) -> int:
    """Overall anomaly score in [0, 100]; higher is more concerning."""
    critical_count = sum(1 for a in alerts if a.severity is AlertSeverity.CRITICAL)
    warning_count = sum(1 for a in alerts if a.severity is AlertSeverity.WARNING)
    return min(100, critical_count * critical_weight + warning_count * warning_weight)


def overall_severity(alerts: Sequence[Alert]) -> Severity:
    """Maximum severity across alerts, normal when there are none."""
    if any(a.severity is AlertSeverity.CRITICAL for a in alerts):
        return Severity.CRITICAL
    if alerts:
        return Severity.WARNING
    return Severity.NORMAL


class AnomalyDetector:
    """
    Stateful per-subject anomaly engine.

    Same-subject calls are serialized through the store's per-subject lock;
    different subjects share no state and may run in parallel.
    """

    def __init__(
        self,
        config: DetectionConfig | None = None,
        store: RollingWindowStore | None = None,
        clock: Callable[[], datetime] | None = None,
        evaluators: Sequence[Evaluator] = DEFAULT_EVALUATORS,
    ) -> None:
        self.config = config or DetectionConfig()
        self.store = store or RollingWindowStore(
            window_capacity=self.config.window_capacity,
            history_capacity=self.config.history_capacity,
        )
        # Local wall clock; night hours are judged in local time
        self.clock = clock or datetime.now
        self.evaluators = tuple(evaluators)
        self.logger = logger.bind(component="anomaly_detector")

    def detect(
        self, subject_id: str, sample: VitalSample, profile: SubjectProfile
    ) -> DetectionResult:
        """Classify one sample and advance the subject's window."""
        with self.store.lock(subject_id):
            window = self.store.snapshot(subject_id)
            context = EvaluationContext(now=self.clock(), config=self.config)

            alerts: list[Alert] = []
            for evaluator in self.evaluators:
                alerts.extend(evaluator(sample, window, profile, context))

            severity = overall_severity(alerts)
            score = calculate_score(
                alerts,
                critical_weight=self.config.critical_weight,
                warning_weight=self.config.warning_weight,
            )

            self.store.append(subject_id, sample)
            if alerts:
                self.store.record_anomaly(
                    subject_id,
                    AnomalyHistoryEntry(
                        timestamp=sample.timestamp, alerts=alerts, severity=severity
                    ),
                )

        result = DetectionResult(
            is_anomaly=bool(alerts), severity=severity, alerts=alerts, score=score
        )

        if result.is_anomaly:
            self.logger.info(
                "anomaly_detected",
                subject_id=subject_id,
                severity=severity.value,
                score=score,
                categories=[a.category.value for a in alerts],
            )
        else:
            self.logger.debug("sample_normal", subject_id=subject_id, window_size=len(window) + 1)

        return result

    def calculate_score(self, alerts: Sequence[Alert]) -> int:
        return calculate_score(alerts, self.config.critical_weight, self.config.warning_weight)

    def add_to_window(self, subject_id: str, sample: VitalSample) -> None:
        """Add context without evaluating it, so it can never be flagged."""
        with self.store.lock(subject_id):
            self.store.append(subject_id, sample)

    def warm_start(self, subject_id: str, samples: Iterable[VitalSample]) -> int:
        """Load stored samples (oldest first) into the subject's window."""
        loaded = 0
        with self.store.lock(subject_id):
            for sample in samples:
                self.store.append(subject_id, sample)
                loaded += 1
        self.logger.info("window_warm_started", subject_id=subject_id, samples=loaded)
        return loaded

    def window(self, subject_id: str) -> tuple[VitalSample, ...]:
        return self.store.snapshot(subject_id)

    def get_anomaly_history(self, subject_id: str, limit: int = 20) -> list[AnomalyHistoryEntry]:
        return self.store.history(subject_id, limit)

    def reset(self, subject_id: str) -> None:
        self.store.reset(subject_id)
