from __future__ import annotations

import logging

import pytest

from .helpers.fakes import FakeClock


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def alerts_path(tmp_path):
    return str(tmp_path / "output" / "alerts.json")


@pytest.fixture
def persister(alerts_path):
    from hostwatch.core.alerts.persister import AlertPersister

    p = AlertPersister(path=alerts_path, max_queue_size=1000)
    try:
        yield p
    finally:
        p.close(timeout=2.0)


@pytest.fixture(autouse=True)
def _hostwatch_logs_propagate():
    # setup_logging() turns propagation off; caplog needs it on
    lg = logging.getLogger("hostwatch")
    prev = lg.propagate
    lg.propagate = True
    try:
        yield
    finally:
        lg.propagate = prev
