"""
Core services for the application.

This package contains the detection engine (evaluators, rolling windows and
the aggregator) and the two orchestrators built on it: live monitoring and
retrospective replay.
"""

from .detector import AnomalyDetector, calculate_score
from .monitoring import AlertEvent, AlertManager, MonitoringService
from .repository import HealthRecordRepository
from .result import Result
from .retrospective import RetrospectiveRequest, RetrospectiveRunner, RetrospectiveSummary
from .window_store import RollingWindowStore

__all__ = [
    "AlertEvent",
    "AlertManager",
    "AnomalyDetector",
    "HealthRecordRepository",
    "MonitoringService",
    "Result",
    "RetrospectiveRequest",
    "RetrospectiveRunner",
    "RetrospectiveSummary",
    "RollingWindowStore",
    "calculate_score",
]
