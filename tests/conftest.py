"""Shared fixtures."""

import pytest

from grafana_transfer.client import GrafanaClient
from grafana_transfer.config import GrafanaTarget

from tests.helpers import FakeSession


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's Grafana settings out of the tests."""
    for name in ("GRAFANA_URL", "GRAFANA_TOKEN", "GRAFANA_VERIFY_TLS",
                 "GRAFANA_TRANSFER_CONFIG", "GRAFANA_DS_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def target():
    return GrafanaTarget(url="http://grafana.test", token="glsa_secret")


@pytest.fixture
def client(target, session):
    return GrafanaClient(target, session=session)
