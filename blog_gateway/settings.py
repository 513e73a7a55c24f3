"""
Gateway configuration.

Credentials come from the environment (optionally a .env file); tuning
options come from an optional JSON file using the camelCase option names
(``cacheTime``, ``rateLimit.windowMs``, ...). Durations are milliseconds.
Unknown keys and out-of-range values are rejected when the settings are built.
"""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

CONFIG_FILE_ENV = "GATEWAY_CONFIG_FILE"


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class RateLimitSettings(_Section):
    window_ms: int = Field(default=60_000, gt=0, alias="windowMs")
    max_requests: int = Field(default=30, gt=0, alias="maxRequests")


class RetrySettings(_Section):
    max_attempts: int = Field(default=3, ge=1, alias="maxAttempts")
    delay: int = Field(default=1000, ge=0)
    max_delay: int = Field(default=5000, ge=0, alias="maxDelay")

    @model_validator(mode="after")
    def _check_delays(self) -> "RetrySettings":
        if self.max_delay < self.delay:
            raise ValueError("retry.maxDelay must be >= retry.delay")
        return self


class HealthCheckSettings(_Section):
    interval: int = Field(default=60_000, gt=0)
    timeout: int = Field(default=5000, gt=0)


class MonitoringSettings(_Section):
    slow_request_threshold: int = Field(default=1000, ge=0, alias="slowRequestThreshold")
    max_metrics_history: int = Field(default=1000, gt=0, alias="maxMetricsHistory")


class AlertThresholds(_Section):
    error_rate: float = Field(default=0.1, ge=0, le=1, alias="errorRate")
    slow_request_rate: float = Field(default=0.2, ge=0, le=1, alias="slowRequestRate")
    avg_response_time: float = Field(default=2000, ge=0, alias="avgResponseTime")
    success_rate: float = Field(default=0.95, ge=0, le=1, alias="successRate")


class AlertSettings(_Section):
    enabled: bool = True
    thresholds: AlertThresholds = Field(default_factory=AlertThresholds)
    cooldown: int = Field(default=5 * 60 * 1000, ge=0)
    interval: int = Field(default=60_000, gt=0)
    webhook_url: str | None = Field(default=None, alias="webhookUrl")


class Settings(_Section):
    # Content service
    notion_api_key: str = Field(min_length=1, alias="NOTION_API_KEY")
    notion_version: str = Field(default="2022-06-28", alias="NOTION_VERSION")
    base_url: str = Field(default="https://api.notion.com/v1/", alias="NOTION_BASE_URL")
    default_database_id: str | None = Field(default=None, alias="NOTION_DATABASE_ID")

    # Per-attempt request timeout and caching
    timeout: int = Field(default=10_000, gt=0)
    cache_time: int = Field(default=5 * 60 * 1000, ge=0, alias="cacheTime")
    cache_max_entries: int = Field(default=500, gt=0, alias="cacheMaxEntries")
    single_flight: bool = Field(default=True, alias="singleFlight")

    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings, alias="rateLimit")
    retry: RetrySettings = Field(default_factory=RetrySettings)
    health_check: HealthCheckSettings = Field(
        default_factory=HealthCheckSettings, alias="healthCheck"
    )
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)

    # Server
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, gt=0, lt=65536, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def headers(self) -> dict[str, str]:
        """Headers sent with every upstream request."""
        return {
            "Authorization": f"Bearer {self.notion_api_key}",
            "Notion-Version": self.notion_version,
            "Content-Type": "application/json",
        }


ENV_ALIASES = (
    "NOTION_API_KEY",
    "NOTION_VERSION",
    "NOTION_BASE_URL",
    "NOTION_DATABASE_ID",
    "HOST",
    "PORT",
    "LOG_LEVEL",
)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Build Settings from the environment plus an optional JSON options file."""
    load_dotenv()

    data: dict[str, Any] = {k: os.environ[k] for k in ENV_ALIASES if k in os.environ}

    path = config_path or os.environ.get(CONFIG_FILE_ENV)
    if path:
        data.update(json.loads(Path(path).read_text(encoding="utf-8")))

    return Settings.model_validate(data)
