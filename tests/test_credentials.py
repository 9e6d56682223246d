"""
Tests for grafana_transfer.credentials
"""

import json

import pytest

from grafana_transfer.credentials import add_datasource_password
from grafana_transfer.errors import ConfigurationError

from tests.helpers import write_json


def test_password_is_added_in_place(tmp_path):
    path = write_json(tmp_path / "ds.json", {"name": "db1"})

    add_datasource_password(path, "P@ss!")

    text = path.read_text(encoding="utf-8")
    assert json.loads(text) == {"name": "db1", "secureJsonData": {"password": "P@ss!"}}
    assert list(tmp_path.iterdir()) == [path]


def test_password_written_to_separate_output(tmp_path):
    source = write_json(tmp_path / "ds.json", {"name": "db1", "secureJsonData": {"user": "me"}})
    output = tmp_path / "patched" / "ds.json"

    add_datasource_password(source, "s3cr$t", output)

    assert json.loads(source.read_text()) == {"name": "db1", "secureJsonData": {"user": "me"}}
    assert json.loads(output.read_text())["secureJsonData"] == {"user": "me", "password": "s3cr$t"}


def test_invalid_input_is_rejected(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")

    with pytest.raises(ConfigurationError, match="not valid JSON"):
        add_datasource_password(bad, "x")
    with pytest.raises(ConfigurationError, match="does not exist"):
        add_datasource_password(tmp_path / "missing.json", "x")
    with pytest.raises(ConfigurationError, match="Password is required"):
        add_datasource_password(bad, "")
