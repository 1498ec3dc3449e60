from __future__ import annotations

import logging
import platform as pyplatform
import time
from typing import Any, Callable, Dict, Optional

import psutil

from hostwatch.core.errors import ConfigError, SourceUnavailableError
from hostwatch.core.telemetry.sources.base import DESKTOP_METRICS, MetricSource, memory_percent


class DesktopMetricSource(MetricSource):
    """
    psutil-backed reader for desktop/server hosts.

    cpu_usage and disk_usage are percentages over the time since the previous
    read. disk_read/disk_write are cumulative operation counts and
    network_recv/network_sent cumulative byte counts of the selected device.
    """

    name = "psutil-desktop"
    platform = "desktop"
    supported_metrics = DESKTOP_METRICS

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        network_interface: Optional[str] = None,
        disk: Optional[str] = None,
        ps: Any = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        self._ps = ps or psutil
        self._clock = clock
        super().__init__(host=host, logger=logger)

        self.network_interface = self._select_interface(network_interface)
        self.disk = disk
        counters = self._disk_counters()
        if counters is None:
            raise ConfigError("No disk I/O counters available.", disk=disk)
        self._disk_prev_busy_ms = _busy_ms(counters)
        self._disk_prev_at = self._clock()
        # prime cpu_percent so the first read covers the interval since startup
        self._ps.cpu_percent(interval=None)
        self.logger.info(f"Desktop source ready: host={self.identity()} nic={self.network_interface} disk={disk or 'all'}")

    def _detect_identity(self) -> str:
        system = pyplatform.system() or "unknown"
        return system.split()[0]

    def _readers(self) -> Dict[str, Callable[[], float]]:
        return {
            "cpu_usage": self._cpu_usage,
            "memory_usage": self._memory_usage,
            "disk_usage": self._disk_usage,
            "disk_read": self._disk_read,
            "disk_write": self._disk_write,
            "network_recv": self._network_recv,
            "network_sent": self._network_sent,
        }

    # ---- readers ----
    def _cpu_usage(self) -> float:
        return float(self._ps.cpu_percent(interval=None))

    def _memory_usage(self) -> float:
        return memory_percent(self._ps.virtual_memory())

    def _disk_usage(self) -> float:
        counters = self._require_disk()
        now = self._clock()
        busy_ms = _busy_ms(counters)
        elapsed_ms = (now - self._disk_prev_at) * 1000.0
        delta = busy_ms - self._disk_prev_busy_ms
        self._disk_prev_busy_ms = busy_ms
        self._disk_prev_at = now
        if elapsed_ms <= 0:
            return 0.0
        return max(0.0, min(100.0, (delta / elapsed_ms) * 100.0))

    def _disk_read(self) -> float:
        return float(self._require_disk().read_count)

    def _disk_write(self) -> float:
        return float(self._require_disk().write_count)

    def _network_recv(self) -> float:
        return float(self._require_nic().bytes_recv)

    def _network_sent(self) -> float:
        return float(self._require_nic().bytes_sent)

    # ---- device selection ----
    def _select_interface(self, preferred: Optional[str]) -> str:
        try:
            pernic = self._ps.net_io_counters(pernic=True) or {}
        except OSError as e:
            raise ConfigError("Unable to enumerate network interfaces.", error=str(e)) from e
        if preferred:
            if preferred not in pernic:
                raise ConfigError(f"Network interface {preferred!r} not found.", available=sorted(pernic))
            return preferred
        for name in pernic:
            if not _is_loopback(name):
                return name
        raise ConfigError("No suitable network interface found.", available=sorted(pernic))

    def _disk_counters(self) -> Any:
        if self.disk:
            return (self._ps.disk_io_counters(perdisk=True) or {}).get(self.disk)
        return self._ps.disk_io_counters(perdisk=False)

    def _require_disk(self) -> Any:
        counters = self._disk_counters()
        if counters is None:
            raise SourceUnavailableError("Disk counters unavailable.", disk=self.disk)
        return counters

    def _require_nic(self) -> Any:
        counters = (self._ps.net_io_counters(pernic=True) or {}).get(self.network_interface)
        if counters is None:
            raise SourceUnavailableError("Network interface counters unavailable.", nic=self.network_interface)
        return counters


def _is_loopback(name: str) -> bool:
    n = name.lower()
    return n == "lo" or n.startswith("lo0") or "loopback" in n


def _busy_ms(counters: Any) -> float:
    busy = getattr(counters, "busy_time", None)
    if busy is not None:
        return float(busy)
    return float(getattr(counters, "read_time", 0)) + float(getattr(counters, "write_time", 0))

