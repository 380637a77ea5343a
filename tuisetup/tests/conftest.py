import itertools
import json
from datetime import datetime, timedelta

import pytest

from tuisetup.logging_config import reset_logging
from tuisetup.settings import ENV_KEYS


@pytest.fixture(autouse=True)
def _clean_logging_and_env(monkeypatch):
    for var in ENV_KEYS.values():
        monkeypatch.delenv(var, raising=False)
    yield
    reset_logging()


@pytest.fixture
def clock():
    """Advances one second per call so each run gets its own backup name."""
    start = datetime(2024, 5, 1, 12, 30, 45)
    counter = itertools.count()
    return lambda: start + timedelta(seconds=next(counter))


@pytest.fixture
def frozen_clock():
    return lambda: datetime(2024, 5, 1, 12, 30, 45)


@pytest.fixture
def daemon_config(tmp_path):
    doc = {
        "Server": {"Address": "tcp://1.2.3.4:50051", "LogFile": "/var/log/opensnitchd.log"},
        "DefaultAction": "allow",
        "ProcMonitorMethod": "ebpf",
    }
    p = tmp_path / "default-config.json"
    p.write_text(json.dumps(doc, indent=2) + "\n", encoding="utf-8")
    return p
