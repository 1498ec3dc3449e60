from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Set, Tuple

from hostwatch.core.alerts.models import SampleSet
from hostwatch.core.errors import SourceUnavailableError

DESKTOP_METRICS: Tuple[str, ...] = ("cpu_usage", "memory_usage", "disk_usage", "disk_read", "disk_write", "network_recv", "network_sent")
MOBILE_METRICS: Tuple[str, ...] = ("cpu_usage", "memory_usage", "temperature", "network_recv", "network_sent")

# Returned for any metric the platform cannot read.
UNAVAILABLE_SENTINEL = 0.0


class MetricSource:
    """
    Platform metric reader interface.

    - identity()    -> host identity string (classification + alert scope)
    - sample()      -> SampleSet with every supported metric
    - read(metric)  -> one metric value (used by gauge callbacks)

    Subclasses provide `_detect_identity()` and `_readers()`. Reads are
    serialized by one lock because delta-based metrics keep previous-read
    state that two timers must not race on. Readers signal a missing metric by
    raising SourceUnavailableError; callers always get a float back.
    """

    name: str = "base"
    platform: str = "base"
    supported_metrics: Tuple[str, ...] = ()

    def __init__(self, *, host: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(f"hostwatch.telemetry.source.{self.platform}")
        self._lock = threading.Lock()
        self._warned: Set[str] = set()
        self._identity = str(host) if host else self._detect_identity()

    def identity(self) -> str:
        return self._identity

    def read(self, metric: str) -> float:
        with self._lock:
            return self._read_locked(metric)

    def sample(self) -> SampleSet:
        with self._lock:
            values = {m: self._read_locked(m) for m in self.supported_metrics}
        return SampleSet(host=self._identity, values=values, sampled_at=time.monotonic(), wall_time=time.time())

    def close(self) -> None:
        """Release platform handles (no-op by default)."""
        return None

    # ---- subclass hooks ----
    def _detect_identity(self) -> str:
        ...

    def _readers(self) -> Dict[str, Callable[[], float]]:
        ...

    # ---- internals ----
    def _read_locked(self, metric: str) -> float:
        reader = (self._readers() or {}).get(metric)
        if reader is None:
            self._report_unavailable(metric, "metric not supported on this platform")
            return UNAVAILABLE_SENTINEL
        try:
            return float(reader())
        except SourceUnavailableError as e:
            self._report_unavailable(metric, e.user_message)
        except Exception as e:  # noqa: BLE001
            self._report_unavailable(metric, f"{e.__class__.__name__}: {e}")
        return UNAVAILABLE_SENTINEL

    def _report_unavailable(self, metric: str, reason: str) -> None:
        if metric in self._warned:
            self.logger.debug(f"{metric} unavailable: {reason}")
            return
        self._warned.add(metric)
        self.logger.warning(f"{metric} unavailable on {self.platform} ({reason}); reporting {UNAVAILABLE_SENTINEL}")


def memory_percent(vm: Any) -> float:
    total = float(vm.total)
    if total <= 0:
        raise SourceUnavailableError("Total memory reported as zero.")
    return ((total - float(vm.available)) / total) * 100.0
