from __future__ import annotations

import json

import pytest

from .helpers.fakes import FakePsutil, RecordingPost
from .helpers.log_assertions import read_json_lines


def _cfg(tmp_path, **over):
    from hostwatch.core.config import load_config

    data = {"host": "Linux", "alerts": {"path": str(tmp_path / "out" / "alerts.json")}, "log_dir": str(tmp_path / "logs")}
    data.update(over)
    return load_config(None, overrides=data)


def test_build_agent_wires_desktop_runtime(tmp_path):
    from hostwatch.core.agent import build_agent
    from hostwatch.core.alerts.models import DeviceCategory

    agent = build_agent(_cfg(tmp_path), ps=FakePsutil())
    try:
        assert agent.category == DeviceCategory.DESKTOP
        assert len(agent.registry) == 7
        assert agent.registry.find("cpu_usage", "Linux").threshold == 50.0
        assert agent.sink is not None
        assert agent.sink.service_name == "Linux-system-monitor"
        assert agent.status()["state"] == "STOPPED"
    finally:
        agent.controller.stop(timeout=2.0)


def test_agent_tick_persists_breaches(tmp_path):
    from hostwatch.core.agent import build_agent

    ps = FakePsutil()
    ps.cpu = 97.0
    agent = build_agent(_cfg(tmp_path, sink={"enabled": False}), ps=ps)
    assert agent.sink is None
    agent.controller.tick()
    agent.controller.stop(timeout=5.0)
    records = [rec for batch in read_json_lines(agent.cfg.alerts.path) for rec in batch]
    # cpu 97 > 50, memory 75 > 50; network byte counts are far below 100000
    assert sorted(r["metric"] for r in records) == ["cpu_usage", "memory_usage"]
    assert all(r["host"] == "Linux" for r in records)


def test_unknown_host_gets_absolute_default(tmp_path):
    from hostwatch.core.agent import build_agent
    from hostwatch.core.alerts.models import DeviceCategory

    agent = build_agent(_cfg(tmp_path, host="buildbox-7"), ps=FakePsutil())
    try:
        assert agent.category == DeviceCategory.UNKNOWN
        assert {a.threshold for a in agent.registry.alerts()} == {80.0}
    finally:
        agent.controller.stop(timeout=2.0)


def test_threshold_overrides_apply(tmp_path):
    from hostwatch.core.agent import build_agent

    cfg = _cfg(tmp_path, alerts={"path": str(tmp_path / "a.json"), "threshold_overrides": {"desktop": {"cpu_usage": 99}}})
    agent = build_agent(cfg, ps=FakePsutil())
    try:
        assert agent.registry.find("cpu_usage", "Linux").threshold == 99.0
    finally:
        agent.controller.stop(timeout=2.0)


def test_sink_posts_through_injected_client(tmp_path):
    from hostwatch.core.agent import build_agent

    post = RecordingPost()
    agent = build_agent(_cfg(tmp_path, sink={"endpoint": "http://127.0.0.1:9/g"}), ps=FakePsutil(), post=post)
    try:
        agent.controller.start()
        agent.sink.collect()
        assert post.calls[0]["json"]["service"] == "Linux-system-monitor"
        assert set(post.calls[0]["json"]["gauges"]) == set(agent.source.supported_metrics)
    finally:
        agent.controller.stop(timeout=2.0)


def test_cli_once_prints_sample(tmp_path, monkeypatch, capsys):
    import app
    from hostwatch.core.telemetry.sources import desktop

    monkeypatch.setattr(desktop, "psutil", FakePsutil())
    cfg_path = tmp_path / "hostwatch.json"
    cfg_path.write_text(json.dumps({"host": "Linux", "log_dir": str(tmp_path / "logs")}), encoding="utf-8")
    rc = app.main(["--config", str(cfg_path), "--once", "--no-sink", "--alerts-path", str(tmp_path / "alerts.json")])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["host"] == "Linux"
    assert out["values"]["cpu_usage"] == 12.5


def test_cli_config_error_exits_2(tmp_path, capsys):
    import app

    cfg_path = tmp_path / "hostwatch.json"
    cfg_path.write_text("{broken", encoding="utf-8")
    assert app.main(["--config", str(cfg_path)]) == 2
    assert "config_error" in capsys.readouterr().err


@pytest.fixture(autouse=True)
def _reset_hostwatch_handlers():
    import logging

    yield
    lg = logging.getLogger("hostwatch")
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()
