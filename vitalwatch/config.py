"""
Configuration management with environment variable support and validation.

Design principles:
- Validation at startup (fail fast)
- Type safety with Pydantic
- Defaults reproduce the standard detection constants exactly
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

CircadianClock = Literal["wall_clock", "sample"]


class DetectionConfig(BaseModel):
    """Limits and window sizes used by the evaluators and the aggregator."""

    window_capacity: int = Field(
        default=288, gt=0, description="Samples kept per subject (24h at 5-minute cadence)"
    )
    history_capacity: int = Field(
        default=100, gt=0, description="Anomaly history entries kept per subject"
    )

    # Critical limits that are not subject-specific
    fever_celsius: float = Field(default=38.5, description="Temperature above this is a fever")
    hypothermia_celsius: float = Field(
        default=35.0, description="Temperature below this is hypothermia"
    )
    fall_risk_limit: float = Field(default=80.0, ge=0.0, le=100.0)

    # Statistical checks
    statistical_min_window: int = Field(default=12, gt=0, description="About one hour of data")
    hr_zscore_limit: float = Field(default=2.5, gt=0.0)
    spo2_trend_span: int = Field(default=12, gt=1)
    spo2_decline_limit: float = Field(
        default=-5.0, lt=0.0, description="Percentage points over the trend span"
    )

    # Behavioral checks
    behavioral_min_window: int = Field(default=6, gt=0, description="About 30 minutes of data")
    inactivity_recent_span: int = Field(default=6, gt=0)
    inactivity_mean_motion: float = Field(default=0.1, ge=0.0, le=1.0)
    inactivity_min_window: int = Field(default=24, gt=0)
    inactivity_hour_span: int = Field(default=12, gt=0)
    inactivity_hour_motion: float = Field(default=0.15, ge=0.0, le=1.0)
    nocturnal_current_motion: float = Field(default=0.6, ge=0.0, le=1.0)
    nocturnal_recent_span: int = Field(default=12, gt=0)
    nocturnal_active_motion: float = Field(default=0.5, ge=0.0, le=1.0)
    nocturnal_active_count: int = Field(default=6, ge=0)
    night_start_hour: int = Field(default=22, ge=0, le=23)
    night_end_hour: int = Field(default=6, ge=0, le=23)
    circadian_clock: CircadianClock = Field(
        default="wall_clock",
        description="Which hour decides day/night: evaluation wall clock or the sample timestamp",
    )

    # Scoring
    critical_weight: int = Field(default=30, ge=0)
    warning_weight: int = Field(default=10, ge=0)


class RetrospectiveConfig(BaseModel):
    """Retrospective replay settings."""

    context_limit: int = Field(
        default=50, ge=0, description="Samples preceding the range loaded as statistical context"
    )
    update_database: bool = Field(
        default=True, description="Default for requests that do not say"
    )


class MonitoringConfig(BaseModel):
    """Live monitoring settings."""

    warm_start_limit: int = Field(
        default=288, ge=0, description="Stored samples loaded into a window at startup"
    )
    persist_samples: bool = Field(
        default=True, description="Store every ingested sample before detection"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    retrospective: RetrospectiveConfig = Field(default_factory=RetrospectiveConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _clock_to_literal(val: str) -> CircadianClock:
        return "sample" if val.strip().lower() == "sample" else "wall_clock"

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    detection_config = DetectionConfig(
        window_capacity=int(os.getenv("WINDOW_CAPACITY", "288")),
        history_capacity=int(os.getenv("HISTORY_CAPACITY", "100")),
        circadian_clock=_clock_to_literal(os.getenv("CIRCADIAN_CLOCK", "wall_clock")),
    )

    retrospective_config = RetrospectiveConfig(
        context_limit=int(os.getenv("RETROSPECTIVE_CONTEXT_LIMIT", "50")),
    )

    monitoring_config = MonitoringConfig(
        warm_start_limit=int(os.getenv("WARM_START_LIMIT", "288")),
        persist_samples=_parse_bool(os.getenv("PERSIST_SAMPLES"), True),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        detection=detection_config,
        retrospective=retrospective_config,
        monitoring=monitoring_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
