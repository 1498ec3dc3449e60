from __future__ import annotations

import logging
import platform as pyplatform
from typing import Any, Callable, Dict, Optional

import psutil

from hostwatch.core.errors import SourceUnavailableError
from hostwatch.core.telemetry.sources.base import MOBILE_METRICS, MetricSource, memory_percent


class MobileMetricSource(MetricSource):
    """
    psutil-backed reader for handheld devices.

    CPU load is not readable without elevated access on the reference devices,
    so cpu_usage reports the unavailable sentinel. Network counters are totals
    across all interfaces.
    """

    name = "psutil-mobile"
    platform = "mobile"
    supported_metrics = MOBILE_METRICS

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        manufacturer: Optional[str] = None,
        model: Optional[str] = None,
        ps: Any = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._ps = ps or psutil
        self.manufacturer = manufacturer or ""
        self.model = model or ""
        super().__init__(host=host, logger=logger)
        self.logger.info(f"Mobile source ready: host={self.identity()}")

    def _detect_identity(self) -> str:
        if self.model:
            return format_device_name(self.manufacturer, self.model)
        system = pyplatform.system() or "unknown"
        self.logger.warning(f"No device model configured; using {system!r} as identity, which will not select the MOBILE threshold profile")
        return system

    def _readers(self) -> Dict[str, Callable[[], float]]:
        return {
            "cpu_usage": self._cpu_usage,
            "memory_usage": self._memory_usage,
            "temperature": self._temperature,
            "network_recv": self._network_recv,
            "network_sent": self._network_sent,
        }

    def _cpu_usage(self) -> float:
        raise SourceUnavailableError("CPU usage is not readable on this device.")

    def _memory_usage(self) -> float:
        return memory_percent(self._ps.virtual_memory())

    def _temperature(self) -> float:
        read = getattr(self._ps, "sensors_temperatures", None)
        if read is None:
            raise SourceUnavailableError("Temperature sensors not supported.")
        for entries in (read() or {}).values():
            for entry in entries:
                current = getattr(entry, "current", None)
                if current is not None:
                    return float(current)
        raise SourceUnavailableError("No temperature sensor reported a value.")

    def _network_recv(self) -> float:
        return float(self._totals().bytes_recv)

    def _network_sent(self) -> float:
        return float(self._totals().bytes_sent)

    def _totals(self) -> Any:
        totals = self._ps.net_io_counters(pernic=False)
        if totals is None:
            raise SourceUnavailableError("Network counters unavailable.")
        return totals


def format_device_name(manufacturer: str, model: str) -> str:
    """`model` alone when it already carries the manufacturer, else "Manufacturer model"."""
    if model.startswith(manufacturer):
        return _capitalize(model)
    return f"{_capitalize(manufacturer)} {model}"


def _capitalize(s: str) -> str:
    if not s:
        return s
    first = s[0]
    if "a" <= first <= "z":
        return first.upper() + s[1:]
    return s
