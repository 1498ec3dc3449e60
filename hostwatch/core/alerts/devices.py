from __future__ import annotations

from typing import Dict, Mapping, Optional

from hostwatch.core.alerts.models import DeviceCategory

# Identity strings are matched exactly after lowercasing.
DEFAULT_DEVICE_TABLE: Dict[str, DeviceCategory] = {
    # mobile devices the agent has been validated on
    "google sdk_gphone64_x86_64": DeviceCategory.MOBILE,
    # desktop operating systems
    "windows": DeviceCategory.DESKTOP,
    "mac": DeviceCategory.DESKTOP,
    "darwin": DeviceCategory.DESKTOP,
    "linux": DeviceCategory.DESKTOP,
    "x86_64-conda-linux-gnu": DeviceCategory.DESKTOP,
}


class DeviceClassifier:
    def __init__(self, table: Optional[Mapping[str, DeviceCategory]] = None):
        src = DEFAULT_DEVICE_TABLE if table is None else table
        self._table: Dict[str, DeviceCategory] = {str(k).strip().lower(): DeviceCategory(v) for k, v in src.items()}

    def classify(self, host: Optional[str]) -> DeviceCategory:
        if not host:
            return DeviceCategory.UNKNOWN
        return self._table.get(str(host).strip().lower(), DeviceCategory.UNKNOWN)


_default = DeviceClassifier()


def classify_device(host: Optional[str]) -> DeviceCategory:
    return _default.classify(host)
