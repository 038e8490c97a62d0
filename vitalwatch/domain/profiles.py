"""
Default roster of monitored subjects.

Elderly residents with common age-related conditions. Thresholds are
illustrative and tuned per condition (e.g. a lower SpO2 floor for COPD).
"""

from vitalwatch.domain.models import AlertThresholds, SubjectProfile, VitalRange


def _baseline(
    hr: tuple[float, float, float],
    systolic: tuple[float, float, float],
    diastolic: tuple[float, float, float],
    spo2: tuple[float, float, float],
    temp: tuple[float, float, float],
) -> dict[str, VitalRange]:
    ranges = {"hr": hr, "systolic": systolic, "diastolic": diastolic, "spo2": spo2, "temp": temp}
    return {
        name: VitalRange(min=low, max=high, normal=normal)
        for name, (low, high, normal) in ranges.items()
    }


DEFAULT_SUBJECTS: tuple[SubjectProfile, ...] = (
    SubjectProfile(
        id="P001",
        name="Margaret Chen",
        age=78,
        conditions=["Hypertension", "Cardiac Arrhythmia"],
        medications=["Lisinopril", "Metoprolol"],
        risk_factors=["heart_arrhythmia", "hypertensive_crisis"],
        baseline_vitals=_baseline(
            (60, 80, 72), (130, 150, 140), (80, 95, 88), (97, 100, 98), (36.4, 37.2, 36.8)
        ),
        alert_thresholds=AlertThresholds(
            heart_rate_critical=(45, 130), blood_pressure_critical=(180, 90), spo2_critical=92
        ),
    ),
    SubjectProfile(
        id="P002",
        name="Robert Williams",
        age=82,
        conditions=["Type 2 Diabetes", "Mobility Issues", "Neuropathy"],
        medications=["Metformin", "Amlodipine"],
        risk_factors=["fall", "circulation_issue", "low_oxygen"],
        baseline_vitals=_baseline(
            (68, 88, 76), (120, 140, 130), (75, 90, 82), (96, 100, 98), (36.3, 37.1, 36.7)
        ),
        alert_thresholds=AlertThresholds(
            heart_rate_critical=(50, 120), blood_pressure_critical=(160, 100), spo2_critical=93
        ),
    ),
    SubjectProfile(
        id="P003",
        name="Helen Martinez",
        age=75,
        conditions=["COPD", "Sleep Apnea", "Anxiety"],
        medications=["Albuterol", "Sertraline"],
        risk_factors=["apnea_episode", "oxygen_drop", "respiratory_distress"],
        baseline_vitals=_baseline(
            (65, 85, 74), (110, 135, 123), (70, 85, 78), (93, 97, 95), (36.2, 37.0, 36.6)
        ),
        # Lower SpO2 floor due to COPD
        alert_thresholds=AlertThresholds(
            heart_rate_critical=(55, 125), blood_pressure_critical=(170, 95), spo2_critical=91
        ),
    ),
    SubjectProfile(
        id="P004",
        name="James Thompson",
        age=81,
        conditions=["Atrial Fibrillation", "Hypertension"],
        medications=["Warfarin", "Atenolol"],
        risk_factors=["irregular_rhythm", "stroke_risk", "bp_spike"],
        baseline_vitals=_baseline(
            (55, 95, 72), (125, 155, 138), (78, 95, 86), (97, 100, 99), (36.5, 37.3, 37.0)
        ),
        alert_thresholds=AlertThresholds(
            heart_rate_critical=(40, 140), blood_pressure_critical=(180, 90), spo2_critical=94
        ),
    ),
    SubjectProfile(
        id="P005",
        name="Dorothy Brown",
        age=79,
        conditions=["Osteoporosis", "Arthritis", "Depression"],
        medications=["Vitamin D", "Sertraline"],
        risk_factors=["fall", "fracture", "immobility"],
        baseline_vitals=_baseline(
            (62, 82, 70), (115, 135, 127), (72, 88, 80), (97, 100, 98), (36.4, 37.1, 36.7)
        ),
        alert_thresholds=AlertThresholds(
            heart_rate_critical=(50, 115), blood_pressure_critical=(160, 95), spo2_critical=94
        ),
    ),
)


def get_default_subject(subject_id: str) -> SubjectProfile | None:
    """Look up a roster profile by id."""
    return next((p for p in DEFAULT_SUBJECTS if p.id == subject_id), None)
