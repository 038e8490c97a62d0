"""
Domain models for subject vital-sign monitoring.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; readings and alerts are frozen so a sample
consumed by one detection can never change underneath the rolling window.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so timestamps always compare cleanly."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class AlertCategory(str, Enum):
    """Fixed tags for every kind of alert the detectors can raise."""

    BRADYCARDIA = "bradycardia"
    TACHYCARDIA = "tachycardia"
    HYPERTENSIVE_CRISIS = "hypertensive_crisis"
    HYPOTENSION = "hypotension"
    HYPOXEMIA = "hypoxemia"
    FEVER = "fever"
    HYPOTHERMIA = "hypothermia"
    FALL_DETECTED = "fall_detected"
    HR_ANOMALY = "hr_anomaly"
    SPO2_DECLINING = "spo2_declining"
    SUSTAINED_INACTIVITY = "sustained_inactivity"
    NOCTURNAL_ACTIVITY = "nocturnal_activity"


class AlertSeverity(str, Enum):
    """Severity of a single alert."""

    WARNING = "warning"
    CRITICAL = "critical"


class Severity(str, Enum):
    """Overall classification of a detection result."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class BloodPressure(BaseModel):
    """Paired systolic/diastolic reading in mmHg."""

    model_config = ConfigDict(frozen=True)

    systolic: int
    diastolic: int

    @classmethod
    def parse(cls, raw: str) -> "BloodPressure":
        """Parse the ``"130/85"`` form used by sensors and stored records."""
        try:
            systolic, diastolic = (int(part.strip()) for part in raw.split("/"))
        except ValueError as e:
            raise ValueError(f"Invalid blood pressure '{raw}', expected 'systolic/diastolic'") from e
        return cls(systolic=systolic, diastolic=diastolic)

    def __str__(self) -> str:
        return f"{self.systolic}/{self.diastolic}"


class VitalSample(BaseModel):
    """One timestamped reading of a subject's physiological and activity measurements."""

    model_config = ConfigDict(frozen=True)

    subject_id: str = Field(min_length=1)
    heart_rate: int = Field(ge=0, description="Beats per minute")
    blood_pressure: BloodPressure
    spo2: float = Field(ge=0.0, le=100.0, description="Oxygen saturation percentage")
    body_temperature: float = Field(description="Degrees Celsius")
    motion_level: float = Field(ge=0.0, le=1.0)
    fall_risk_score: float = Field(ge=0.0, le=100.0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    sensor_id: str | None = None

    @field_validator("blood_pressure", mode="before")
    @classmethod
    def parse_blood_pressure(cls, v: Any) -> Any:
        if isinstance(v, str):
            return BloodPressure.parse(v)
        return v

    @field_validator("timestamp")
    @classmethod
    def timestamp_is_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class AlertThresholds(BaseModel):
    """Subject-specific critical limits."""

    model_config = ConfigDict(frozen=True)

    heart_rate_critical: tuple[int, int] = Field(description="(low, high) bpm")
    blood_pressure_critical: tuple[int, int] = Field(description="(systolic high, systolic low)")
    spo2_critical: float = Field(ge=0.0, le=100.0)


class VitalRange(BaseModel):
    """Informational baseline range for one vital."""

    min: float
    max: float
    normal: float


class SubjectProfile(BaseModel):
    """A monitored subject. Supplied externally and read-only to the engine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    age: int | None = None
    conditions: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    baseline_vitals: dict[str, VitalRange] = Field(default_factory=dict)
    alert_thresholds: AlertThresholds
    is_active: bool = True


class Alert(BaseModel):
    """A single finding from one evaluator. Carries exactly one numeric payload."""

    model_config = ConfigDict(frozen=True)

    category: AlertCategory
    severity: AlertSeverity
    message: str
    value: float


class DetectionResult(BaseModel):
    """Merged outcome of running every evaluator against one sample."""

    model_config = ConfigDict(frozen=True)

    is_anomaly: bool
    severity: Severity
    alerts: list[Alert] = Field(default_factory=list)
    score: int = Field(ge=0, le=100)


class AnomalyHistoryEntry(BaseModel):
    """Observational record of one anomalous detection."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    alerts: list[Alert]
    severity: Severity


class AnomalyRecord(BaseModel):
    """Persisted anomaly, one per anomalous sample."""

    id: str | None = None
    subject_id: str
    severity: Severity
    detected_at: datetime
    alerts: list[Alert]
    anomaly_score: int = Field(ge=0, le=100)
    record_id: str | None = Field(default=None, description="Stored sample this anomaly refers to")
    acknowledged: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("detected_at")
    @classmethod
    def detected_at_is_aware(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class AlertLogEntry(BaseModel):
    """Persisted audit line for one alert of an anomaly."""

    subject_id: str
    severity: AlertSeverity
    category: AlertCategory
    message: str
    value: float
    thresholds: AlertThresholds | None = None
    timestamp: datetime
    action_taken: str = "alert_triggered"
    metadata: dict[str, Any] = Field(default_factory=dict)
