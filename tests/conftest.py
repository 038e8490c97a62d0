"""Shared fixtures: a reference subject, a sample factory and fixed clocks."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from vitalwatch.config import DetectionConfig
from vitalwatch.domain.models import SubjectProfile, VitalSample
from vitalwatch.domain.profiles import DEFAULT_SUBJECTS
from vitalwatch.services.detector import AnomalyDetector

SampleFactory = Callable[..., VitalSample]

BASE_TIME = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)
NOON = datetime(2026, 3, 2, 12, 0)
MIDNIGHT = datetime(2026, 3, 2, 23, 30)


@pytest.fixture
def profile() -> SubjectProfile:
    """Margaret Chen: HR critical (45, 130), systolic (180, 90), SpO2 92."""
    return DEFAULT_SUBJECTS[0]


@pytest.fixture
def make_sample(profile: SubjectProfile) -> SampleFactory:
    """Build normal vitals for the reference subject, overriding any field."""

    def _make(index: int = 0, **overrides: Any) -> VitalSample:
        values: dict[str, Any] = {
            "subject_id": profile.id,
            "heart_rate": 72,
            "blood_pressure": "140/88",
            "spo2": 98,
            "body_temperature": 36.8,
            "motion_level": 0.3,
            "fall_risk_score": 10,
            "timestamp": BASE_TIME + timedelta(minutes=5 * index),
        }
        values.update(overrides)
        return VitalSample(**values)

    return _make


@pytest.fixture
def day_detector() -> AnomalyDetector:
    return AnomalyDetector(DetectionConfig(), clock=lambda: NOON)


@pytest.fixture
def night_detector() -> AnomalyDetector:
    return AnomalyDetector(DetectionConfig(), clock=lambda: MIDNIGHT)
