from __future__ import annotations

from typing import Dict, Mapping, Optional, Union

from hostwatch.core.alerts.models import DeviceCategory
from hostwatch.core.errors import ConfigError

ABSOLUTE_DEFAULT_THRESHOLD = 80.0

DEFAULT_THRESHOLDS: Dict[DeviceCategory, Dict[str, float]] = {
    DeviceCategory.MOBILE: {
        "cpu_usage": 0.0,
        "memory_usage": 60.0,
        "temperature": 0.0,
        "network_recv": 40000.0,
        "network_sent": 40000.0,
    },
    DeviceCategory.DESKTOP: {
        "cpu_usage": 50.0,
        "memory_usage": 50.0,
        "disk_usage": 50.0,
        "disk_read": 10000.0,
        "disk_write": 10000.0,
        "network_recv": 100000.0,
        "network_sent": 100000.0,
    },
    DeviceCategory.UNKNOWN: {
        "cpu_usage": ABSOLUTE_DEFAULT_THRESHOLD,
        "memory_usage": ABSOLUTE_DEFAULT_THRESHOLD,
        "network_recv": ABSOLUTE_DEFAULT_THRESHOLD,
        "network_sent": ABSOLUTE_DEFAULT_THRESHOLD,
    },
}


class ThresholdConfig:
    """
    Per-category metric thresholds.

    Overrides are merged over the built-in table at construction; the table is
    read-only afterwards.
    """

    def __init__(self, overrides: Optional[Mapping[Union[str, DeviceCategory], Mapping[str, float]]] = None):
        table: Dict[DeviceCategory, Dict[str, float]] = {cat: dict(m) for cat, m in DEFAULT_THRESHOLDS.items()}
        for raw_cat, metrics in (overrides or {}).items():
            cat = _parse_category(raw_cat)
            merged = table.setdefault(cat, {})
            for metric, value in (metrics or {}).items():
                try:
                    merged[str(metric)] = float(value)
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"Invalid threshold for {cat.value}.{metric}: {value!r}", category=cat.value, metric=str(metric)) from e
        self._table = table

    def resolve(self, category: DeviceCategory, metric: str, fallback: float = ABSOLUTE_DEFAULT_THRESHOLD) -> float:
        per_cat = self._table.get(category)
        if per_cat is None:
            return float(fallback)
        value = per_cat.get(metric)
        return float(fallback) if value is None else float(value)

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return {cat.value: dict(m) for cat, m in self._table.items()}


def _parse_category(raw: Union[str, DeviceCategory]) -> DeviceCategory:
    if isinstance(raw, DeviceCategory):
        return raw
    try:
        return DeviceCategory(str(raw).strip().upper())
    except ValueError as e:
        raise ConfigError(f"Unknown device category in threshold overrides: {raw!r}", category=str(raw)) from e
