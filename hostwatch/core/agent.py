from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from hostwatch.core.alerts.devices import DeviceClassifier
from hostwatch.core.alerts.evaluator import AlertEvaluator
from hostwatch.core.alerts.models import DeviceCategory
from hostwatch.core.alerts.persister import AlertPersister
from hostwatch.core.alerts.registry import AlertRegistry
from hostwatch.core.alerts.thresholds import ThresholdConfig
from hostwatch.core.config.models import AgentConfig
from hostwatch.core.logger import get_logger
from hostwatch.core.telemetry.controller import SampleController
from hostwatch.core.telemetry.metrics import RollingMetrics
from hostwatch.core.telemetry.sink import GaugeSink
from hostwatch.core.telemetry.sources import MetricSource, build_metric_source


@dataclass
class Agent:
    cfg: AgentConfig
    source: MetricSource
    category: DeviceCategory
    registry: AlertRegistry
    persister: AlertPersister
    evaluator: AlertEvaluator
    sink: Optional[GaugeSink]
    controller: SampleController
    metrics: RollingMetrics

    def status(self) -> dict:
        return {
            "host": self.source.identity(),
            "platform": self.cfg.platform,
            "category": self.category.value,
            "state": self.controller.state.value,
            "alerts": len(self.registry),
            "persister": self.persister.stats(),
        }


def build_agent(cfg: AgentConfig, *, ps: Any = None, post: Any = None, logger: Optional[logging.Logger] = None) -> Agent:
    """
    Assemble the runtime from config. Raises ConfigError on any startup
    misconfiguration; nothing is started until `agent.controller.start()`.
    """
    log = logger or get_logger("agent")
    thresholds = ThresholdConfig(cfg.alerts.threshold_overrides)

    source = build_metric_source(cfg.platform, host=cfg.host, source_cfg=cfg.source, ps=ps, logger=get_logger(f"telemetry.source.{cfg.platform}"))
    host = source.identity()
    category = DeviceClassifier().classify(host)
    log.info(f"Host {host} classified as {category.value}")

    registry = AlertRegistry(thresholds=thresholds, logger=get_logger("alerts.registry"))
    registry.initialize_alerts(source.supported_metrics, category, host)

    metrics = RollingMetrics(max_samples_per_histogram=cfg.sink.max_samples_per_histogram)
    persister = AlertPersister(
        path=cfg.alerts.path,
        max_queue_size=cfg.alerts.queue_size,
        fsync=cfg.alerts.fsync,
        logger=get_logger("alerts.persister"),
    )
    evaluator = AlertEvaluator(
        registry=registry,
        persister=persister,
        debounce_seconds=cfg.alerts.debounce_seconds,
        metrics=metrics,
        logger=get_logger("alerts.evaluator"),
    )

    sink: Optional[GaugeSink] = None
    if cfg.sink.enabled:
        sink = GaugeSink(
            service_name=cfg.resolved_service_name(host),
            export_interval_seconds=cfg.sink.export_interval_seconds,
            endpoint=cfg.sink.endpoint,
            timeout_seconds=cfg.sink.timeout_seconds,
            metrics=metrics,
            post=post,
            logger=get_logger("telemetry.sink"),
        )

    controller = SampleController(
        source=source,
        evaluator=evaluator,
        persister=persister,
        sink=sink,
        interval_seconds=cfg.sample_interval_seconds,
        flush_timeout_seconds=cfg.alerts.flush_timeout_seconds,
        metrics=metrics,
        logger=get_logger("telemetry.controller"),
    )
    return Agent(
        cfg=cfg,
        source=source,
        category=category,
        registry=registry,
        persister=persister,
        evaluator=evaluator,
        sink=sink,
        controller=controller,
        metrics=metrics,
    )
