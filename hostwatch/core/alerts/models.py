from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ALERT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class DeviceCategory(str, Enum):
    MOBILE = "MOBILE"
    DESKTOP = "DESKTOP"
    UNKNOWN = "UNKNOWN"


class RegistryOutcome(str, Enum):
    ADDED = "ADDED"
    DUPLICATE = "DUPLICATE"
    REMOVED = "REMOVED"
    MISSING = "MISSING"
    UPDATED = "UPDATED"
    CREATED = "CREATED"


class EvaluationOutcome(str, Enum):
    TRIGGERED = "TRIGGERED"
    NOT_TRIGGERED = "NOT_TRIGGERED"
    UNREGISTERED = "UNREGISTERED"
    SUPPRESSED = "SUPPRESSED"


class Alert(BaseModel):
    """
    Monitored state for one (metric, host) pair.

    `value` and `timestamp` stay None until the alert first breaches.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    metric: str
    threshold: float
    host: Optional[str] = None
    value: Optional[float] = None
    timestamp: Optional[str] = None

    @field_validator("metric")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("metric required")
        return v

    @property
    def identity(self) -> Tuple[str, Optional[str]]:
        return (self.metric, self.host)

    @property
    def has_fired(self) -> bool:
        return self.timestamp is not None

    def mark_breach(self, value: float, now: Optional[float] = None) -> None:
        self.value = float(value)
        self.timestamp = format_alert_timestamp(now)

    def record(self) -> Dict[str, Any]:
        return {
            "metric": self.metric,
            "threshold": self.threshold,
            "value": self.value,
            "timestamp": self.timestamp,
            "host": self.host,
        }


class SampleSet(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    host: str
    values: Dict[str, float] = Field(default_factory=dict)
    sampled_at: float = Field(default_factory=lambda: time.monotonic())
    wall_time: float = Field(default_factory=lambda: time.time())

    def get(self, metric: str, default: Optional[float] = None) -> Optional[float]:
        return self.values.get(metric, default)


def format_alert_timestamp(now: Optional[float] = None) -> str:
    ts = time.time() if now is None else float(now)
    return time.strftime(ALERT_TIMESTAMP_FORMAT, time.localtime(ts))
