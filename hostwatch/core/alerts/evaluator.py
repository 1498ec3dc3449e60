from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from hostwatch.core.alerts.models import EvaluationOutcome
from hostwatch.core.alerts.persister import AlertPersister
from hostwatch.core.alerts.registry import AlertRegistry


class AlertEvaluator:
    """
    Checks one metric value against the registry and records breaches.

    A breach sets the alert's value/timestamp and hands a copy of the alert to
    the persister. Metrics without a registered alert are skipped (UNREGISTERED)
    rather than raising. With `debounce_seconds` > 0 a repeat breach of the same
    alert inside the window is SUPPRESSED; the default 0 re-fires every breach.
    """

    def __init__(
        self,
        *,
        registry: AlertRegistry,
        persister: AlertPersister,
        debounce_seconds: float = 0.0,
        clock: Callable[[], float] = time.time,
        metrics: Any = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.registry = registry
        self.persister = persister
        self.debounce_seconds = max(0.0, float(debounce_seconds))
        self.clock = clock
        self.metrics = metrics
        self.logger = logger or logging.getLogger("hostwatch.alerts.evaluator")
        self._lock = threading.Lock()
        self._last_fired: Dict[Tuple[str, Optional[str]], float] = {}

    def evaluate(self, metric: str, value: float, host: Optional[str]) -> EvaluationOutcome:
        with self._lock:
            alert = self.registry.find(metric, host)
            if alert is None:
                self.logger.debug(f"No alert defined for metric={metric} host={host}; skipping")
                self._count("alerts_unregistered_total", metric)
                return EvaluationOutcome.UNREGISTERED

            value = float(value)
            if not math.isfinite(value):
                self.logger.warning(f"Alert {metric} for host {host}: ignoring non-finite value ({value})")
                self._count("alerts_nonfinite_total", metric)
                return EvaluationOutcome.NOT_TRIGGERED
            if not value > alert.threshold:
                self.logger.debug(f"Alert {metric} for host {host} NOT TRIGGERED: value ({value}) <= threshold ({alert.threshold})")
                return EvaluationOutcome.NOT_TRIGGERED

            now = float(self.clock())
            if self.debounce_seconds > 0:
                last = self._last_fired.get(alert.identity)
                if last is not None and (now - last) < self.debounce_seconds:
                    self.logger.debug(f"Alert {metric} for host {host} suppressed (debounce {self.debounce_seconds}s)")
                    self._count("alerts_suppressed_total", metric)
                    return EvaluationOutcome.SUPPRESSED
            self._last_fired[alert.identity] = now

            alert.mark_breach(value, now)
            snapshot = alert.model_copy()

        self.logger.warning(f"Alert {metric} for host {host} TRIGGERED: value ({value}) > threshold ({snapshot.threshold})")
        self._count("alerts_triggered_total", metric)
        self.persister.append([snapshot])
        return EvaluationOutcome.TRIGGERED

    def _count(self, name: str, metric: str) -> None:
        if self.metrics is None:
            return
        self.metrics.inc(name, tags={"metric": metric})
