from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class HostwatchError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return f"{self.code}: {self.user_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": dict(self.context or {}),
        }


# ---- Core types ----
class ConfigError(HostwatchError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class SourceUnavailableError(HostwatchError):
    def __init__(self, user_message: str = "Metric source unavailable.", **ctx: Any):
        super().__init__("source_unavailable", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class PersistenceError(HostwatchError):
    def __init__(self, user_message: str = "Alert persistence failed.", **ctx: Any):
        super().__init__("persistence_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ExportError(HostwatchError):
    def __init__(self, user_message: str = "Metrics export failed.", **ctx: Any):
        super().__init__("export_error", user_message, severity=Severity.WARN, recoverable=True, context=ctx)
