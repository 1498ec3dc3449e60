from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Optional

from hostwatch.core.alerts.evaluator import AlertEvaluator
from hostwatch.core.alerts.models import EvaluationOutcome, SampleSet
from hostwatch.core.alerts.persister import AlertPersister
from hostwatch.core.telemetry.metrics import RollingMetrics
from hostwatch.core.telemetry.sink import MetricsSink
from hostwatch.core.telemetry.sources.base import MetricSource


class ControllerState(str, Enum):
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"


class SampleController:
    """
    Periodic driver: sample the source, evaluate every metric, persist breaches.

    start() wires one gauge per supported metric into the sink and launches the
    sampler thread. stop() is idempotent; only the first call joins the thread,
    drains and closes the persister and shuts the sink down. A stopped
    controller does not restart.
    """

    def __init__(
        self,
        *,
        source: MetricSource,
        evaluator: AlertEvaluator,
        persister: AlertPersister,
        sink: Optional[MetricsSink] = None,
        interval_seconds: float = 5.0,
        flush_timeout_seconds: float = 5.0,
        metrics: Optional[RollingMetrics] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.source = source
        self.evaluator = evaluator
        self.persister = persister
        self.sink = sink
        self.interval_seconds = max(0.01, float(interval_seconds))
        self.flush_timeout_seconds = float(flush_timeout_seconds)
        self.metrics = metrics or RollingMetrics()
        self.logger = logger or logging.getLogger("hostwatch.telemetry.controller")

        self._lock = threading.Lock()
        self._state = ControllerState.STOPPED
        self._stopped = False
        self._stop = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_sample: Optional[SampleSet] = None

    @property
    def state(self) -> ControllerState:
        with self._lock:
            return self._state

    @property
    def last_sample(self) -> Optional[SampleSet]:
        with self._lock:
            return self._last_sample

    def start(self) -> bool:
        with self._lock:
            if self._state == ControllerState.RUNNING:
                self.logger.warning("Sample controller already running.")
                return False
            if self._stopped:
                self.logger.warning("Sample controller was stopped; create a new one to restart.")
                return False
            if self.sink is not None:
                for metric in self.source.supported_metrics:
                    self.sink.register_gauge(metric, self._gauge_callback(metric))
                self.sink.start()
            self._thread = threading.Thread(target=self._run, name="hostwatch-sampler", daemon=True)
            self._state = ControllerState.RUNNING
            self._thread.start()
        self.logger.info(f"Sampling {self.source.identity()} every {self.interval_seconds}s ({len(self.source.supported_metrics)} metrics)")
        return True

    def tick(self) -> Optional[SampleSet]:
        """Run one sample/evaluate cycle. Returns None once stopped."""
        if self._stopped:
            return None
        t0 = time.monotonic()
        sample = self.source.sample()
        triggered = 0
        for metric, value in sample.values.items():
            if self.evaluator.evaluate(metric, value, sample.host) == EvaluationOutcome.TRIGGERED:
                triggered += 1
        self.metrics.observe("tick_ms", (time.monotonic() - t0) * 1000.0)
        self.metrics.inc("ticks_total")
        with self._lock:
            self._last_sample = sample
        if triggered:
            self.logger.info(f"Tick complete: {triggered} alert(s) triggered")
        return sample

    def stop(self, timeout: Optional[float] = None) -> bool:
        with self._lock:
            if self._stopped:
                self.logger.info("Sample controller already stopped.")
                return False
            self._stopped = True
            self._state = ControllerState.STOPPED
            t = self._thread
        self._stop.set()

        if t is not None and t is not threading.current_thread():
            t.join(timeout=timeout)
            if t.is_alive():
                self.logger.warning("Sampler thread did not exit before timeout.")

        flush_timeout = self.flush_timeout_seconds if timeout is None else timeout
        if not self.persister.close(timeout=flush_timeout):
            self.logger.warning(f"Alert persister did not drain within {flush_timeout}s.")
        if self.sink is not None:
            self.sink.shutdown()
        self._done.set()
        self.logger.info("Sample controller stopped.")
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() has finished. Returns False on timeout."""
        return self._done.wait(timeout)

    def _gauge_callback(self, metric: str):
        def _read() -> float:
            return self.source.read(metric)

        return _read

    def _run(self) -> None:
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.tick()
            except Exception as e:  # noqa: BLE001
                self.metrics.inc("tick_errors_total")
                self.logger.error(f"Sampling tick failed: {e}")
            elapsed = time.monotonic() - started
            self._stop.wait(max(0.0, self.interval_seconds - elapsed))
