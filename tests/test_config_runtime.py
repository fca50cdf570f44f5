"""Tests for runtime configuration loading."""

import json
import os

import pytest

from gotestlooplint.config_runtime import DEFAULTS, load_runtime_config
from gotestlooplint.utils.constants import CONFIG_FILE_NAME


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop GOTESTLOOPLINT_* overrides inherited from the shell."""
    for name in list(os.environ):
        if name.startswith("GOTESTLOOPLINT_"):
            monkeypatch.delenv(name)


def write_config(tmp_path, data):
    (tmp_path / CONFIG_FILE_NAME).write_text(json.dumps(data), encoding="utf-8")


def test_defaults(tmp_path):
    cfg = load_runtime_config(str(tmp_path))

    assert cfg == DEFAULTS
    assert cfg is not DEFAULTS
    assert cfg["scan"]["exclude_patterns"] is not DEFAULTS["scan"]["exclude_patterns"]


def test_file_overrides(tmp_path):
    write_config(tmp_path, {
        "scan": {"require_test_function": True, "exclude_patterns": ["gen/"]},
        "output": {"format": "json"},
    })

    cfg = load_runtime_config(str(tmp_path))

    assert cfg["scan"]["require_test_function"] is True
    assert cfg["scan"]["exclude_patterns"] == ["gen/"]
    assert cfg["output"]["format"] == "json"
    assert cfg["scan"]["include_tests"] is True


def test_file_type_mismatch_is_ignored(tmp_path):
    write_config(tmp_path, {
        "scan": {"include_tests": "no", "unknown_key": 1},
        "limits": {"max_file_size": True},
    })

    cfg = load_runtime_config(str(tmp_path))

    assert cfg["scan"]["include_tests"] is True
    assert "unknown_key" not in cfg["scan"]
    assert cfg["limits"]["max_file_size"] == DEFAULTS["limits"]["max_file_size"]


def test_invalid_json_falls_back(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("{not json", encoding="utf-8")

    assert load_runtime_config(str(tmp_path)) == DEFAULTS


def test_env_overrides_file(tmp_path, monkeypatch):
    write_config(tmp_path, {"scan": {"require_test_function": True}})
    monkeypatch.setenv("GOTESTLOOPLINT_SCAN_REQUIRE_TEST_FUNCTION", "false")
    monkeypatch.setenv("GOTESTLOOPLINT_SCAN_EXCLUDE_PATTERNS", "gen/, mocks/")
    monkeypatch.setenv("GOTESTLOOPLINT_LIMITS_MAX_FILE_SIZE", "1024")

    cfg = load_runtime_config(str(tmp_path))

    assert cfg["scan"]["require_test_function"] is False
    assert cfg["scan"]["exclude_patterns"] == ["gen/", "mocks/"]
    assert cfg["limits"]["max_file_size"] == 1024


@pytest.mark.parametrize(
    "env_var,value",
    [
        ("GOTESTLOOPLINT_SCAN_INCLUDE_TESTS", "maybe"),
        ("GOTESTLOOPLINT_LIMITS_MAX_FILE_SIZE", "big"),
    ],
)
def test_invalid_env_values_keep_default(tmp_path, monkeypatch, env_var, value):
    monkeypatch.setenv(env_var, value)

    assert load_runtime_config(str(tmp_path)) == DEFAULTS


def test_unknown_output_format(tmp_path, monkeypatch):
    monkeypatch.setenv("GOTESTLOOPLINT_OUTPUT_FORMAT", "sarif")

    assert load_runtime_config(str(tmp_path))["output"]["format"] == "text"
