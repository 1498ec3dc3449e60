"""
Sampling runtime: metric sources, the periodic controller and the gauge sink.
"""

from hostwatch.core.telemetry.controller import ControllerState, SampleController
from hostwatch.core.telemetry.metrics import RollingMetrics
from hostwatch.core.telemetry.sink import GaugeSink, MetricsSink
from hostwatch.core.telemetry.sources import DesktopMetricSource, MetricSource, MobileMetricSource, build_metric_source

__all__ = [
    "ControllerState",
    "DesktopMetricSource",
    "GaugeSink",
    "MetricSource",
    "MetricsSink",
    "MobileMetricSource",
    "RollingMetrics",
    "SampleController",
    "build_metric_source",
]
