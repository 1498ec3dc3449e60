from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hostwatch.core.alerts.persister import DEFAULT_ALERTS_PATH


class AlertsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    path: str = DEFAULT_ALERTS_PATH
    queue_size: int = Field(default=1000, ge=1, le=1_000_000)
    fsync: bool = False
    debounce_seconds: float = Field(default=0.0, ge=0.0)
    # category name -> {metric: threshold}, merged over the built-in table
    threshold_overrides: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    flush_timeout_seconds: float = Field(default=5.0, gt=0.0)


class SinkConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    export_interval_seconds: float = Field(default=5.0, ge=0.2, le=3600.0)
    endpoint: Optional[str] = None
    timeout_seconds: float = Field(default=5.0, gt=0.0)
    max_samples_per_histogram: int = Field(default=200, ge=10)

    @field_validator("endpoint", mode="before")
    @classmethod
    def _blank_endpoint_is_none(cls, v: object) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        if not s:
            return None
        if not (s.startswith("http://") or s.startswith("https://")):
            raise ValueError("endpoint must be an http(s) URL")
        return s


class SourceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    network_interface: Optional[str] = None
    disk: Optional[str] = None
    # mobile identity is built from these; without device_model the OS name is
    # used and the host does not classify as MOBILE
    device_manufacturer: Optional[str] = None
    device_model: Optional[str] = None


class AgentConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    platform: Literal["desktop", "mobile"] = "desktop"
    host: Optional[str] = None
    service_name: Optional[str] = None
    sample_interval_seconds: float = Field(default=5.0, ge=0.2, le=3600.0)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    sink: SinkConfig = Field(default_factory=SinkConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    log_dir: str = "logs"
    log_level: str = "INFO"

    @field_validator("platform", mode="before")
    @classmethod
    def _lower_platform(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: object) -> str:
        s = str(v or "INFO").strip().upper()
        if s not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return s

    def resolved_service_name(self, host: str) -> str:
        return self.service_name or f"{host}-system-monitor"
