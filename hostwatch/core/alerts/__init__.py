"""
Threshold alerting for sampled host metrics.

- DeviceClassifier: host identity -> device category
- ThresholdConfig: (category, metric) -> threshold, default 80.0
- AlertRegistry: one alert per (metric, host)
- AlertEvaluator: breach detection and alert state
- AlertPersister: single-writer JSON-lines alert record
"""

from hostwatch.core.alerts.devices import DeviceClassifier, classify_device
from hostwatch.core.alerts.evaluator import AlertEvaluator
from hostwatch.core.alerts.models import Alert, DeviceCategory, EvaluationOutcome, RegistryOutcome, SampleSet
from hostwatch.core.alerts.persister import AlertPersister
from hostwatch.core.alerts.registry import AlertRegistry
from hostwatch.core.alerts.thresholds import ABSOLUTE_DEFAULT_THRESHOLD, ThresholdConfig

__all__ = [
    "ABSOLUTE_DEFAULT_THRESHOLD",
    "Alert",
    "AlertEvaluator",
    "AlertPersister",
    "AlertRegistry",
    "DeviceCategory",
    "DeviceClassifier",
    "EvaluationOutcome",
    "RegistryOutcome",
    "SampleSet",
    "ThresholdConfig",
    "classify_device",
]
