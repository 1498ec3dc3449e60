from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional

from hostwatch.core.alerts.models import Alert, DeviceCategory, RegistryOutcome
from hostwatch.core.alerts.thresholds import ABSOLUTE_DEFAULT_THRESHOLD, ThresholdConfig


class AlertRegistry:
    """
    Ordered set of alerts for a single host, keyed by (metric, host).

    Thread-safe: every read and write goes through one re-entrant lock, so a
    second evaluator (e.g. the export path) can share the registry.
    """

    def __init__(self, *, thresholds: Optional[ThresholdConfig] = None, logger: Optional[logging.Logger] = None):
        self.thresholds = thresholds or ThresholdConfig()
        self.logger = logger or logging.getLogger("hostwatch.alerts.registry")
        self._lock = threading.RLock()
        self._alerts: List[Alert] = []
        self._host: Optional[str] = None
        self._category: DeviceCategory = DeviceCategory.UNKNOWN

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def category(self) -> DeviceCategory:
        return self._category

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    def initialize_alerts(self, supported_metrics: Iterable[str], category: DeviceCategory, host: str) -> List[Alert]:
        with self._lock:
            self._alerts.clear()
            self._host = host
            self._category = category
            for name in supported_metrics:
                threshold = self.thresholds.resolve(category, name, ABSOLUTE_DEFAULT_THRESHOLD)
                self.add_alert(Alert(metric=name, threshold=threshold, host=host))
            created = list(self._alerts)
        self.logger.info(f"Initialized {len(created)} alert(s) for host={host} category={category.value}")
        return created

    def add_alert(self, alert: Alert) -> RegistryOutcome:
        with self._lock:
            if self._index_of(alert.metric, alert.host) is not None:
                self.logger.warning(f"Alert already exists: metric={alert.metric} host={alert.host}")
                return RegistryOutcome.DUPLICATE
            self._alerts.append(alert)
            return RegistryOutcome.ADDED

    def remove_alert(self, alert: Alert) -> RegistryOutcome:
        with self._lock:
            idx = self._index_of(alert.metric, alert.host)
            if idx is None:
                self.logger.warning(f"Alert does not exist: metric={alert.metric} host={alert.host}")
                return RegistryOutcome.MISSING
            del self._alerts[idx]
            return RegistryOutcome.REMOVED

    def find(self, metric: str, host: Optional[str]) -> Optional[Alert]:
        with self._lock:
            idx = self._index_of(metric, host)
            return None if idx is None else self._alerts[idx]

    def set_threshold(self, metric: str, threshold: float) -> RegistryOutcome:
        with self._lock:
            matches = [a for a in self._alerts if a.metric == metric]
            if matches:
                for a in matches:
                    a.threshold = float(threshold)
                self.logger.info(f"Threshold updated: metric={metric} threshold={threshold}")
                return RegistryOutcome.UPDATED
            self._alerts.append(Alert(metric=metric, threshold=float(threshold)))
        self.logger.info(f"Alert created by threshold update: metric={metric} threshold={threshold}")
        return RegistryOutcome.CREATED

    def alerts(self) -> List[Alert]:
        with self._lock:
            return list(self._alerts)

    def alerts_by_metric(self, metric: str) -> List[Alert]:
        with self._lock:
            return [a for a in self._alerts if a.metric == metric]

    def _index_of(self, metric: str, host: Optional[str]) -> Optional[int]:
        for i, a in enumerate(self._alerts):
            if a.metric == metric and a.host == host:
                return i
        return None
