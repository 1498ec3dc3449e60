from __future__ import annotations

import threading
import time

from .helpers.fakes import FakeMetricSource, FakeSink, RecordingPersister
from .helpers.log_assertions import read_json_lines


def _controller(source=None, persister=None, sink=None, interval: float = 0.05):
    from hostwatch.core.alerts.devices import classify_device
    from hostwatch.core.alerts.evaluator import AlertEvaluator
    from hostwatch.core.alerts.registry import AlertRegistry
    from hostwatch.core.telemetry.controller import SampleController

    source = source or FakeMetricSource()
    registry = AlertRegistry()
    registry.initialize_alerts(source.supported_metrics, classify_device(source.identity()), source.identity())
    persister = persister or RecordingPersister()
    evaluator = AlertEvaluator(registry=registry, persister=persister)
    ctl = SampleController(source=source, evaluator=evaluator, persister=persister, sink=sink, interval_seconds=interval)
    return ctl, source, persister


def test_initial_state_is_stopped_and_tick_runs_once():
    from hostwatch.core.telemetry.controller import ControllerState

    ctl, source, persister = _controller(FakeMetricSource(scripted=[{"cpu_usage": 70.0, "memory_usage": 10.0}]))
    assert ctl.state == ControllerState.STOPPED
    sample = ctl.tick()
    assert sample is not None
    assert sample.values == {"cpu_usage": 70.0, "memory_usage": 10.0}
    assert ctl.last_sample == sample
    assert len(persister.batches) == 1
    assert persister.batches[0][0]["metric"] == "cpu_usage"
    assert persister.batches[0][0]["value"] == 70.0


def test_start_registers_one_gauge_per_metric_and_samples_periodically():
    from hostwatch.core.telemetry.controller import ControllerState

    sink = FakeSink()
    ctl, source, _ = _controller(sink=sink, interval=0.02)
    assert ctl.start() is True
    try:
        assert ctl.state == ControllerState.RUNNING
        assert sorted(sink.gauges) == ["cpu_usage", "memory_usage"]
        assert sink.started == 1
        assert sink.gauges["cpu_usage"]() == 10.0
        assert source.reads == ["cpu_usage"]
        deadline = time.time() + 2.0
        while source.samples < 3 and time.time() < deadline:
            time.sleep(0.01)
        assert source.samples >= 3
        assert ctl.start() is False
    finally:
        ctl.stop(timeout=2.0)


def test_stop_is_idempotent(caplog):
    from hostwatch.core.telemetry.controller import ControllerState

    sink = FakeSink()
    persister = RecordingPersister()
    ctl, _, _ = _controller(persister=persister, sink=sink)
    ctl.start()
    assert ctl.stop(timeout=2.0) is True
    assert ctl.stop(timeout=2.0) is False
    assert ctl.state == ControllerState.STOPPED
    assert persister.closed_calls == 1
    assert sink.shutdowns == 1
    assert ctl.wait(0.1) is True
    assert any("already stopped" in r.getMessage() for r in caplog.records)


def test_stopped_controller_does_not_restart_or_tick():
    ctl, source, _ = _controller()
    ctl.stop()
    assert ctl.start() is False
    assert ctl.tick() is None
    assert source.samples == 0


def test_concurrent_stop_calls_release_once():
    persister = RecordingPersister()
    ctl, _, _ = _controller(persister=persister, sink=FakeSink())
    ctl.start()
    results = []
    barrier = threading.Barrier(6)

    def stopper():
        barrier.wait()
        results.append(ctl.stop(timeout=2.0))

    threads = [threading.Thread(target=stopper) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(results) == [False] * 5 + [True]
    assert persister.closed_calls == 1


def test_tick_failure_does_not_kill_sampler(caplog):
    src = FakeMetricSource(fail=True)
    ctl, _, _ = _controller(source=src, interval=0.02)
    ctl.start()
    try:
        deadline = time.time() + 2.0
        while src.samples < 2 and time.time() < deadline:
            time.sleep(0.01)
        assert src.samples >= 2
        assert ctl.metrics.counter("tick_errors_total") >= 1
    finally:
        ctl.stop(timeout=2.0)
    assert any("Sampling tick failed" in r.getMessage() for r in caplog.records)


def test_stop_flushes_pending_alerts_to_disk(persister, alerts_path):
    src = FakeMetricSource(scripted=[{"cpu_usage": 99.0, "memory_usage": 99.0}])
    ctl, _, _ = _controller(source=src, persister=persister)
    for _ in range(5):
        ctl.tick()
    assert ctl.stop(timeout=5.0) is True
    lines = read_json_lines(alerts_path)
    assert len(lines) == 10
    assert {b[0]["metric"] for b in lines} == {"cpu_usage", "memory_usage"}
    assert persister.closed


def test_tick_duration_ignores_wall_clock_jumps(monkeypatch):
    from hostwatch.core.telemetry import controller as controller_mod

    wall = [1_000_000.0]

    def stepping_back() -> float:
        wall[0] -= 3600.0
        return wall[0]

    monkeypatch.setattr(controller_mod.time, "time", stepping_back)
    ctl, _, _ = _controller()
    for _ in range(3):
        ctl.tick()
    hist = ctl.metrics.snapshot()["histograms"]["tick_ms"]
    assert hist["count"] == 3.0
    assert hist["min"] >= 0.0
    assert hist["max"] < 60_000.0
