from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from hostwatch.core.errors import ExportError
from hostwatch.core.telemetry.metrics import RollingMetrics

GaugeCallback = Callable[[], float]


class MetricsSink:
    """
    Sink interface:
    - register_gauge(name, callback) -> None
    - start() -> None
    - shutdown() -> None
    """

    def register_gauge(self, name: str, callback: GaugeCallback) -> None:
        ...

    def start(self) -> None:
        ...

    def shutdown(self) -> None:
        ...


class GaugeSink(MetricsSink):
    """
    Pull-based gauge sink.

    Every `export_interval_seconds` the sink thread calls each registered
    callback, stores the values as gauges tagged with the service name, and,
    when an endpoint is configured, POSTs them as one JSON document.
    """

    def __init__(
        self,
        *,
        service_name: str,
        export_interval_seconds: float = 5.0,
        endpoint: Optional[str] = None,
        timeout_seconds: float = 5.0,
        metrics: Optional[RollingMetrics] = None,
        post: Optional[Callable[..., Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.service_name = str(service_name)
        self.export_interval_seconds = max(0.05, float(export_interval_seconds))
        self.endpoint = endpoint
        self.timeout_seconds = float(timeout_seconds)
        self.metrics = metrics or RollingMetrics()
        self._post = post or requests.post
        self.logger = logger or logging.getLogger("hostwatch.telemetry.sink")

        self._lock = threading.Lock()
        self._gauges: Dict[str, GaugeCallback] = {}
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._shut = False

    def register_gauge(self, name: str, callback: GaugeCallback) -> None:
        with self._lock:
            if name in self._gauges:
                self.logger.warning(f"Gauge {name} already registered; replacing callback.")
            self._gauges[str(name)] = callback

    def gauge_names(self) -> List[str]:
        with self._lock:
            return sorted(self._gauges)

    def start(self) -> None:
        with self._lock:
            if self._shut or self._thread is not None:
                return
            self._thread = threading.Thread(target=self._run, name="hostwatch-sink", daemon=True)
            self._thread.start()
        self.logger.info(f"Gauge sink started: service={self.service_name} interval={self.export_interval_seconds}s endpoint={self.endpoint or 'none'}")

    def shutdown(self, timeout: float = 2.0) -> None:
        with self._lock:
            if self._shut:
                return
            self._shut = True
            t = self._thread
        self._stop.set()
        if t is not None and t is not threading.current_thread():
            t.join(timeout=timeout)
        self.logger.info("Gauge sink shut down.")

    @property
    def running(self) -> bool:
        t = self._thread
        return bool(t is not None and t.is_alive() and not self._stop.is_set())

    def collect(self) -> Dict[str, float]:
        """Poll every gauge once; export when an endpoint is set."""
        with self._lock:
            items: List[Tuple[str, GaugeCallback]] = list(self._gauges.items())
        tags = {"service.name": self.service_name}
        values: Dict[str, float] = {}
        t0 = time.time()
        for name, cb in items:
            try:
                v = float(cb())
            except Exception as e:  # noqa: BLE001
                self.metrics.inc("gauge_callback_errors_total", tags={"gauge": name})
                self.logger.warning(f"Gauge callback {name} failed: {e}")
                continue
            values[name] = v
            self.metrics.set_gauge(name, v, tags=tags)
        self.metrics.observe("sink_poll_ms", (time.time() - t0) * 1000.0)
        self.metrics.inc("sink_polls_total")

        if self.endpoint and values:
            try:
                self._export(values)
                self.metrics.inc("sink_exports_total")
            except ExportError as e:
                self.metrics.inc("sink_export_errors_total")
                self.logger.warning(f"Gauge export failed: {e}")
        return values

    def snapshot(self) -> Dict[str, Any]:
        return self.metrics.snapshot()

    def _export(self, values: Dict[str, float]) -> None:
        payload = {"service": self.service_name, "ts": time.time(), "gauges": dict(values)}
        try:
            r = self._post(self.endpoint, json=payload, timeout=self.timeout_seconds)
            r.raise_for_status()
        except requests.RequestException as e:
            raise ExportError("Gauge export request failed.", endpoint=str(self.endpoint), error=str(e)) from e

    def _run(self) -> None:
        while not self._stop.wait(self.export_interval_seconds):
            try:
                self.collect()
            except Exception as e:  # noqa: BLE001
                self.logger.error(f"Gauge sink poll crashed: {e}")
