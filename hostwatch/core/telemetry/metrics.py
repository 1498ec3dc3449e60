from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple

# (name, sorted tag pairs)
MetricKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def metric_key(name: str, tags: Optional[Dict[str, Any]] = None) -> MetricKey:
    pairs = sorted((str(k), str(v)) for k, v in (tags or {}).items() if v is not None)
    return (str(name), tuple(pairs))


def render_key(key: MetricKey) -> str:
    name, pairs = key
    if not pairs:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in pairs) + "}"


class RollingMetrics:
    """
    In-process self-observability store shared by the controller, the
    evaluator and the gauge sink.

    counters are monotonic ints, gauges keep the last value and when it was
    set, and histograms keep a bounded window of recent samples.
    """

    def __init__(self, *, max_samples_per_histogram: int = 200):
        self.window = max(10, int(max_samples_per_histogram))
        self._lock = threading.Lock()
        self._counters: Dict[MetricKey, int] = {}
        self._gauges: Dict[MetricKey, Tuple[float, float]] = {}
        self._windows: Dict[MetricKey, Deque[float]] = {}

    def reset(self) -> None:
        with self._lock:
            self._counters = {}
            self._gauges = {}
            self._windows = {}

    def inc(self, name: str, n: int = 1, tags: Optional[Dict[str, Any]] = None) -> None:
        key = metric_key(name, tags)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + int(n)

    def set_gauge(self, name: str, value: float, tags: Optional[Dict[str, Any]] = None) -> None:
        key = metric_key(name, tags)
        entry = (float(value), time.time())
        with self._lock:
            self._gauges[key] = entry

    def observe(self, name: str, value: float, tags: Optional[Dict[str, Any]] = None) -> None:
        key = metric_key(name, tags)
        with self._lock:
            win = self._windows.get(key)
            if win is None:
                win = self._windows[key] = deque(maxlen=self.window)
            win.append(float(value))

    def counter(self, name: str, tags: Optional[Dict[str, Any]] = None) -> int:
        with self._lock:
            return self._counters.get(metric_key(name, tags), 0)

    def gauge(self, name: str, tags: Optional[Dict[str, Any]] = None) -> Optional[float]:
        with self._lock:
            entry = self._gauges.get(metric_key(name, tags))
        if entry is None:
            return None
        return entry[0]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            counters = list(self._counters.items())
            gauges = list(self._gauges.items())
            windows = [(k, list(w)) for k, w in self._windows.items()]
        return {
            "counters": {render_key(k): v for k, v in counters},
            "gauges": {render_key(k): {"value": v, "updated_at": at} for k, (v, at) in gauges},
            "histograms": {render_key(k): summarize(samples) for k, samples in windows},
        }


def summarize(samples: List[float]) -> Dict[str, float]:
    """count/min/max/avg/last plus nearest-rank p50 and p95."""
    if not samples:
        return {"count": 0.0}
    ordered = sorted(samples)
    n = len(ordered)

    def rank(p: float) -> float:
        idx = max(0, min(n - 1, math.ceil(p / 100.0 * n) - 1))
        return ordered[idx]

    return {
        "count": float(n),
        "min": ordered[0],
        "max": ordered[-1],
        "avg": sum(ordered) / n,
        "last": samples[-1],
        "p50": rank(50),
        "p95": rank(95),
    }
