"""
Tests for domain models in `vitalwatch/domain/models.py`.

Covers:
- Blood pressure parsing from the sensor string form
- Timestamp normalization to UTC
- Immutability of samples and alerts
- Field validation bounds
"""

from datetime import UTC, datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from vitalwatch.domain.models import (
    Alert,
    AlertCategory,
    AlertSeverity,
    BloodPressure,
    VitalSample,
)
from vitalwatch.domain.profiles import DEFAULT_SUBJECTS, get_default_subject


class TestBloodPressure:
    def test_parses_string_form(self) -> None:
        bp = BloodPressure.parse("130/85")
        assert bp.systolic == 130
        assert bp.diastolic == 85
        assert str(bp) == "130/85"

    def test_rejects_malformed_string(self) -> None:
        with pytest.raises(ValueError, match="Invalid blood pressure"):
            BloodPressure.parse("130-85")

    @given(
        systolic=st.integers(min_value=40, max_value=260),
        diastolic=st.integers(min_value=20, max_value=160),
    )
    def test_string_form_is_stable(self, systolic: int, diastolic: int) -> None:
        bp = BloodPressure(systolic=systolic, diastolic=diastolic)
        assert BloodPressure.parse(str(bp)) == bp


class TestVitalSample:
    def _sample(self, **overrides) -> VitalSample:
        values = {
            "subject_id": "P001",
            "heart_rate": 72,
            "blood_pressure": "140/88",
            "spo2": 98,
            "body_temperature": 36.8,
            "motion_level": 0.3,
            "fall_risk_score": 10,
        }
        values.update(overrides)
        return VitalSample(**values)

    def test_accepts_string_blood_pressure(self) -> None:
        sample = self._sample()
        assert sample.blood_pressure.systolic == 140

    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        sample = self._sample(timestamp=datetime(2026, 1, 1, 10, 0))
        assert sample.timestamp.tzinfo == UTC

    def test_default_timestamp_is_aware(self) -> None:
        assert self._sample().timestamp.tzinfo == UTC

    def test_sample_immutability(self) -> None:
        sample = self._sample()
        with pytest.raises(ValidationError, match="frozen"):
            sample.heart_rate = 90  # type: ignore

    def test_motion_level_bounds(self) -> None:
        with pytest.raises(ValidationError):
            self._sample(motion_level=1.5)

    def test_fall_risk_bounds(self) -> None:
        with pytest.raises(ValidationError):
            self._sample(fall_risk_score=120)


def test_alert_is_immutable() -> None:
    alert = Alert(
        category=AlertCategory.FEVER,
        severity=AlertSeverity.WARNING,
        message="FEVER: Temperature 39.0°C",
        value=39.0,
    )
    with pytest.raises(ValidationError, match="frozen"):
        alert.value = 40.0  # type: ignore


def test_default_roster_lookup() -> None:
    assert len(DEFAULT_SUBJECTS) == 5
    margaret = get_default_subject("P001")
    assert margaret is not None
    assert margaret.alert_thresholds.heart_rate_critical == (45, 130)
    assert get_default_subject("P999") is None
