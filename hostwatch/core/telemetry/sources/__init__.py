from __future__ import annotations

import logging
from typing import Any, Optional

from hostwatch.core.errors import ConfigError
from hostwatch.core.telemetry.sources.base import DESKTOP_METRICS, MOBILE_METRICS, UNAVAILABLE_SENTINEL, MetricSource
from hostwatch.core.telemetry.sources.desktop import DesktopMetricSource
from hostwatch.core.telemetry.sources.mobile import MobileMetricSource, format_device_name

__all__ = [
    "DESKTOP_METRICS",
    "MOBILE_METRICS",
    "UNAVAILABLE_SENTINEL",
    "DesktopMetricSource",
    "MetricSource",
    "MobileMetricSource",
    "build_metric_source",
    "format_device_name",
]


def build_metric_source(platform: str, *, host: Optional[str] = None, source_cfg: Any = None, ps: Any = None, logger: Optional[logging.Logger] = None) -> MetricSource:
    """Resolve the platform variant once at startup."""
    p = str(platform or "").strip().lower()
    if p == "desktop":
        return DesktopMetricSource(
            host=host,
            network_interface=getattr(source_cfg, "network_interface", None),
            disk=getattr(source_cfg, "disk", None),
            ps=ps,
            logger=logger,
        )
    if p == "mobile":
        return MobileMetricSource(
            host=host,
            manufacturer=getattr(source_cfg, "device_manufacturer", None),
            model=getattr(source_cfg, "device_model", None),
            ps=ps,
            logger=logger,
        )
    raise ConfigError(f"Unsupported platform: {platform!r}", platform=str(platform))
