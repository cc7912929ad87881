"""
Veritas Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "Veritas Protocol"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # ── Feature Gate ──────────────────────────────────────────────────────
    enable_veritas_protocol: bool = Field(default=False, alias="ENABLE_VERITAS_PROTOCOL")

    # ── Orchestrator ──────────────────────────────────────────────────────
    step_timeout_ms: int = Field(default=5000, alias="VERITAS_STEP_TIMEOUT_MS")
    global_deadline_ms: int = Field(default=15000, alias="VERITAS_GLOBAL_DEADLINE_MS")
    halt_on_fatal: bool = Field(default=True, alias="VERITAS_HALT_ON_FATAL")
    late_result_policy: str = Field(default="discard", alias="VERITAS_LATE_RESULT_POLICY")

    # ── Monitoring ────────────────────────────────────────────────────────
    monitor_max_records: int = Field(default=1000, alias="VERITAS_MONITOR_MAX_RECORDS")
    monitor_window_hours: float = Field(default=24.0, alias="VERITAS_MONITOR_WINDOW_HOURS")

    # ── Operational Alert Rules ───────────────────────────────────────────
    alert_error_rate_threshold: float = Field(default=50.0, alias="VERITAS_ALERT_ERROR_RATE_THRESHOLD")
    alert_min_samples: int = Field(default=5, alias="VERITAS_ALERT_MIN_SAMPLES")
    alert_slow_validation_ms: float = Field(default=15000.0, alias="VERITAS_ALERT_SLOW_VALIDATION_MS")
    alert_min_average_confidence: float = Field(default=60.0, alias="VERITAS_ALERT_MIN_AVERAGE_CONFIDENCE")
    alert_fatal_rate_threshold: float = Field(default=0.5, alias="VERITAS_ALERT_FATAL_RATE_THRESHOLD")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")


settings = Settings()


def is_veritas_enabled(current: Optional[Settings] = None) -> bool:
    """
    Feature gate consulted by callers before invoking the orchestrator.

    The core itself never reads this flag; it only exposes the boolean.
    """
    return (current or settings).enable_veritas_protocol
