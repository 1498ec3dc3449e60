from __future__ import annotations

import time

import requests

from .helpers.fakes import RecordingPost


def _sink(**kw):
    from hostwatch.core.telemetry.sink import GaugeSink

    kw.setdefault("service_name", "Linux-system-monitor")
    kw.setdefault("export_interval_seconds", 9999)
    return GaugeSink(**kw)


def test_collect_polls_every_gauge_and_tags_service():
    sink = _sink()
    sink.register_gauge("cpu_usage", lambda: 42.0)
    sink.register_gauge("memory_usage", lambda: 61)
    values = sink.collect()
    assert values == {"cpu_usage": 42.0, "memory_usage": 61.0}
    tags = {"service.name": "Linux-system-monitor"}
    assert sink.metrics.gauge("cpu_usage", tags=tags) == 42.0
    snap = sink.snapshot()
    assert "cpu_usage{service.name=Linux-system-monitor}" in snap["gauges"]
    assert snap["counters"]["sink_polls_total"] == 1
    assert "sink_poll_ms" in snap["histograms"]


def test_failing_callback_does_not_stop_other_gauges(caplog):
    sink = _sink()

    def broken():
        raise RuntimeError("sensor gone")

    sink.register_gauge("temperature", broken)
    sink.register_gauge("cpu_usage", lambda: 5.0)
    assert sink.collect() == {"cpu_usage": 5.0}
    assert sink.metrics.counter("gauge_callback_errors_total", tags={"gauge": "temperature"}) == 1
    assert any("temperature failed" in r.getMessage() for r in caplog.records)


def test_background_thread_keeps_polling_until_shutdown():
    calls = []
    sink = _sink(export_interval_seconds=0.05)
    sink.register_gauge("cpu_usage", lambda: calls.append(1) or 1.0)
    sink.start()
    try:
        deadline = time.time() + 2.0
        while len(calls) < 3 and time.time() < deadline:
            time.sleep(0.01)
        assert len(calls) >= 3
        assert sink.running
    finally:
        sink.shutdown()
    n = len(calls)
    time.sleep(0.15)
    assert len(calls) == n
    assert not sink.running
    # shutdown twice and start after shutdown are harmless
    sink.shutdown()
    sink.start()
    assert not sink.running


def test_endpoint_receives_json_payload():
    post = RecordingPost()
    sink = _sink(endpoint="http://collector.local/v1/gauges", timeout_seconds=2.5, post=post)
    sink.register_gauge("cpu_usage", lambda: 12.0)
    sink.collect()
    assert len(post.calls) == 1
    call = post.calls[0]
    assert call["url"] == "http://collector.local/v1/gauges"
    assert call["timeout"] == 2.5
    assert call["json"]["service"] == "Linux-system-monitor"
    assert call["json"]["gauges"] == {"cpu_usage": 12.0}
    assert isinstance(call["json"]["ts"], float)
    assert sink.metrics.counter("sink_exports_total") == 1


def test_export_failures_are_counted_not_raised():
    sink = _sink(endpoint="http://collector.local", post=RecordingPost(exc=requests.ConnectionError("refused")))
    sink.register_gauge("cpu_usage", lambda: 1.0)
    assert sink.collect() == {"cpu_usage": 1.0}

    sink._post = RecordingPost(status_code=503)
    sink.collect()
    assert sink.metrics.counter("sink_export_errors_total") == 2
    assert sink.metrics.counter("sink_exports_total") == 0


def test_uses_requests_post_by_default(monkeypatch):
    from hostwatch.core.telemetry import sink as sink_mod

    post = RecordingPost()
    monkeypatch.setattr(sink_mod.requests, "post", post)
    s = _sink(endpoint="https://collector.example")
    s.register_gauge("cpu_usage", lambda: 3.0)
    s.collect()
    assert post.calls and post.calls[0]["json"]["gauges"] == {"cpu_usage": 3.0}
