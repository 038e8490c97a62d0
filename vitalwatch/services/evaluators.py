"""
Detection strategies.

Every evaluator is a pure function of
``(sample, window, profile, context) -> list[Alert]``:

- ``sample``: the reading being classified
- ``window``: the subject's rolling window *before* the sample is appended
- ``profile``: the subject profile holding the critical thresholds
- ``context``: evaluation time and detection limits

Keeping them stateless lets the live aggregator and the retrospective runner
share identical logic while owning different window lifecycles.
"""

import statistics
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from vitalwatch.config import DetectionConfig
from vitalwatch.domain.models import (
    Alert,
    AlertCategory,
    AlertSeverity,
    SubjectProfile,
    VitalSample,
)


@dataclass(frozen=True)
class EvaluationContext:
    """What an evaluator may know besides the sample, window and profile."""

    now: datetime
    config: DetectionConfig

    def is_night(self, sample: VitalSample) -> bool:
        """Night per the configured clock: evaluation wall clock or sample timestamp."""
        moment = sample.timestamp if self.config.circadian_clock == "sample" else self.now
        hour = moment.hour
        return hour >= self.config.night_start_hour or hour <= self.config.night_end_hour


Evaluator = Callable[[VitalSample, Sequence[VitalSample], SubjectProfile, EvaluationContext], list[Alert]]


def _critical(category: AlertCategory, message: str, value: float) -> Alert:
    return Alert(category=category, severity=AlertSeverity.CRITICAL, message=message, value=value)


def _warning(category: AlertCategory, message: str, value: float) -> Alert:
    return Alert(category=category, severity=AlertSeverity.WARNING, message=message, value=value)


def evaluate_critical_thresholds(
    sample: VitalSample,
    window: Sequence[VitalSample],
    profile: SubjectProfile,
    context: EvaluationContext,
) -> list[Alert]:
    """Absolute limits: at most one alert each for heart rate, pressure and temperature."""
    alerts: list[Alert] = []
    thresholds = profile.alert_thresholds
    hr_low, hr_high = thresholds.heart_rate_critical
    systolic_high, systolic_low = thresholds.blood_pressure_critical

    if sample.heart_rate < hr_low:
        alerts.append(
            _critical(
                AlertCategory.BRADYCARDIA,
                f"BRADYCARDIA: HR {sample.heart_rate} bpm (< {hr_low})",
                sample.heart_rate,
            )
        )
    elif sample.heart_rate > hr_high:
        alerts.append(
            _critical(
                AlertCategory.TACHYCARDIA,
                f"TACHYCARDIA: HR {sample.heart_rate} bpm (> {hr_high})",
                sample.heart_rate,
            )
        )

    systolic = sample.blood_pressure.systolic
    if systolic > systolic_high:
        alerts.append(
            _critical(
                AlertCategory.HYPERTENSIVE_CRISIS,
                f"HYPERTENSIVE CRISIS: BP {sample.blood_pressure} (Systolic > {systolic_high})",
                systolic,
            )
        )
    elif systolic < systolic_low:
        alerts.append(
            _critical(
                AlertCategory.HYPOTENSION,
                f"HYPOTENSION: BP {sample.blood_pressure} (Systolic < {systolic_low})",
                systolic,
            )
        )

    if sample.spo2 < thresholds.spo2_critical:
        alerts.append(
            _critical(
                AlertCategory.HYPOXEMIA,
                f"HYPOXEMIA: SpO2 {sample.spo2}% (< {thresholds.spo2_critical}%)",
                sample.spo2,
            )
        )

    # Temperature limits are fixed, not subject-specific
    if sample.body_temperature > context.config.fever_celsius:
        alerts.append(
            _warning(
                AlertCategory.FEVER,
                f"FEVER: Temperature {sample.body_temperature}°C",
                sample.body_temperature,
            )
        )
    elif sample.body_temperature < context.config.hypothermia_celsius:
        alerts.append(
            _critical(
                AlertCategory.HYPOTHERMIA,
                f"HYPOTHERMIA: Temperature {sample.body_temperature}°C",
                sample.body_temperature,
            )
        )

    return alerts


def evaluate_fall_risk(
    sample: VitalSample,
    window: Sequence[VitalSample],
    profile: SubjectProfile,
    context: EvaluationContext,
) -> list[Alert]:
    """Single-reading fall heuristic on the derived risk score."""
    if sample.fall_risk_score > context.config.fall_risk_limit:
        return [
            _critical(
                AlertCategory.FALL_DETECTED,
                f"FALL DETECTED: Subject {sample.subject_id} - "
                f"Risk Score {sample.fall_risk_score:g}%",
                sample.fall_risk_score,
            )
        ]
    return []


def evaluate_statistical(
    sample: VitalSample,
    window: Sequence[VitalSample],
    profile: SubjectProfile,
    context: EvaluationContext,
) -> list[Alert]:
    """
    Heart-rate z-score against the window and short-window SpO2 trend.

    Yields nothing until the window holds about an hour of data; that is
    insufficient history, not an error.
    """
    config = context.config
    if len(window) < config.statistical_min_window:
        return []

    alerts: list[Alert] = []

    heart_rates = [s.heart_rate for s in window]
    hr_mean = statistics.fmean(heart_rates)
    hr_std = statistics.pstdev(heart_rates, mu=hr_mean)
    z_score = (sample.heart_rate - hr_mean) / max(hr_std, 1.0)

    # Both directions are warnings; the sign lives in the value
    if abs(z_score) > config.hr_zscore_limit:
        alerts.append(
            _warning(
                AlertCategory.HR_ANOMALY,
                f"ABNORMAL HR: {sample.heart_rate} bpm (Z-score: {z_score:.2f})",
                z_score,
            )
        )

    recent_spo2 = [s.spo2 for s in window[-config.spo2_trend_span :]]
    spo2_delta = recent_spo2[-1] - recent_spo2[0]
    if spo2_delta < config.spo2_decline_limit:
        alerts.append(
            _warning(
                AlertCategory.SPO2_DECLINING,
                f"DECLINING SpO2: Down {abs(spo2_delta):.1f}% in last hour",
                spo2_delta,
            )
        )

    return alerts


def evaluate_behavioral(
    sample: VitalSample,
    window: Sequence[VitalSample],
    profile: SubjectProfile,
    context: EvaluationContext,
) -> list[Alert]:
    """Circadian-aware activity checks: daytime inactivity and night wandering."""
    config = context.config
    if len(window) < config.behavioral_min_window:
        return []

    alerts: list[Alert] = []
    is_night = context.is_night(sample)

    recent_motion = [s.motion_level for s in window[-config.inactivity_recent_span :]]
    avg_recent_motion = statistics.fmean(recent_motion)

    if (
        not is_night
        and avg_recent_motion < config.inactivity_mean_motion
        and len(window) > config.inactivity_min_window
    ):
        last_hour = window[-config.inactivity_hour_span :]
        if all(s.motion_level < config.inactivity_hour_motion for s in last_hour):
            alerts.append(
                _warning(
                    AlertCategory.SUSTAINED_INACTIVITY,
                    "SUSTAINED INACTIVITY: No movement for > 1 hour during active hours",
                    avg_recent_motion,
                )
            )

    if is_night and sample.motion_level > config.nocturnal_current_motion:
        active_count = sum(
            1
            for s in window[-config.nocturnal_recent_span :]
            if s.motion_level > config.nocturnal_active_motion
        )
        if active_count > config.nocturnal_active_count:
            alerts.append(
                _warning(
                    AlertCategory.NOCTURNAL_ACTIVITY,
                    "NOCTURNAL WANDERING: Unusual activity during night hours",
                    active_count,
                )
            )

    return alerts


# Fixed evaluation order: critical, fall, statistical, behavioral
DEFAULT_EVALUATORS: tuple[Evaluator, ...] = (
    evaluate_critical_thresholds,
    evaluate_fall_risk,
    evaluate_statistical,
    evaluate_behavioral,
)
