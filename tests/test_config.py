"""
Tests for grafana_transfer.config
"""

import pytest

from grafana_transfer.config import GrafanaTarget, load_target, normalize_base_url
from grafana_transfer.errors import ConfigurationError, MissingSettingError


@pytest.mark.parametrize("url,expected", [
    ("http://localhost:3000/", "http://localhost:3000"),
    ("https://grafana.example.com/api/datasources", "https://grafana.example.com"),
    ("https://grafana.example.com/api/datasources/", "https://grafana.example.com"),
    (" https://g.example.com ", "https://g.example.com"),
])
def test_normalize_base_url(url, expected):
    assert normalize_base_url(url) == expected


def test_validate_rejects_bad_values():
    with pytest.raises(MissingSettingError):
        GrafanaTarget(url="", token="t").validate()
    with pytest.raises(MissingSettingError):
        GrafanaTarget(url="http://g", token="").validate()
    with pytest.raises(ConfigurationError, match="http:// or https://"):
        GrafanaTarget(url="ftp://g", token="t").validate()


def test_arguments_win_over_environment(monkeypatch):
    monkeypatch.setenv("GRAFANA_URL", "http://env:3000")
    monkeypatch.setenv("GRAFANA_TOKEN", "env-token")

    target = load_target(url="http://flag:3000/", token=None)

    assert target.url == "http://flag:3000"
    assert target.token == "env-token"


def test_config_file_is_the_last_resort(tmp_path, monkeypatch):
    config = tmp_path / "config.yaml"
    config.write_text("grafana:\n  url: https://file.example.com\n  token: file-token\n  verify_tls: false\n")
    monkeypatch.setenv("GRAFANA_TOKEN", "env-token")

    target = load_target(config_file=config)

    assert target.url == "https://file.example.com"
    assert target.token == "env-token"
    assert target.verify_tls is False


def test_blank_token_in_config_file_is_missing(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("grafana:\n  url: http://g\n  token:\n")

    with pytest.raises(MissingSettingError, match="token is required"):
        load_target(config_file=config)


def test_blank_url_in_config_file_is_missing(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("grafana:\n  url:\n  token: file-token\n")

    with pytest.raises(MissingSettingError, match="URL is required"):
        load_target(config_file=config)


def test_config_file_found_through_xdg(tmp_path, monkeypatch):
    config_dir = tmp_path / "xdg" / "grafana-transfer"
    config_dir.mkdir(parents=True)
    (config_dir / "config.yaml").write_text("grafana:\n  url: http://xdg:3000\n  token: xdg\n")

    target = load_target()

    assert target.url == "http://xdg:3000"
    assert target.verify_tls is True


def test_broken_config_file(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("grafana: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_target(config_file=config)

    with pytest.raises(ConfigurationError, match="does not exist"):
        load_target(config_file=tmp_path / "nope.yaml")
