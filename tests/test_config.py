"""Config loading and lookups."""

import json
import logging

import pytest

from playmix.lib import config
from playmix.lib.config import cfg, load_config


@pytest.fixture
def fresh(tmp_path, monkeypatch):
    """Point the search path at tmp_path and forget any cached config."""
    xdg = tmp_path / "xdg"
    (xdg / "playmix").mkdir(parents=True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "_config", None)
    return xdg / "playmix" / "config.json"


def test_defaults_when_empty():
    assert cfg("refresh", "interval", default=2.0) == 2.0
    assert cfg("log_level", default="INFO") == "INFO"


def test_user_config_wins(fresh):
    fresh.write_text(json.dumps({"log_level": "DEBUG", "volume": {"step": 0.05}}))

    assert cfg("log_level") == "DEBUG"
    assert cfg("volume", "step") == 0.05
    assert cfg("volume", "master", default="pulse") == "pulse"


def test_cwd_config_used_without_user_config(fresh, tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"refresh": {"interval": 0.5}}))

    assert cfg("refresh", "interval") == 0.5


def test_invalid_json_falls_through_to_repo_default(fresh, caplog):
    fresh.write_text("{oops")

    with caplog.at_level(logging.ERROR):
        loaded = load_config()

    assert "Invalid JSON" in caplog.text
    assert loaded["volume"]["master"] == "pulse"
    assert cfg("artwork", "size") == 144


def test_config_is_cached(fresh):
    fresh.write_text(json.dumps({"log_level": "DEBUG"}))
    first = load_config()
    fresh.write_text(json.dumps({"log_level": "ERROR"}))

    assert load_config() is first
    assert config.reload_config()["log_level"] == "ERROR"


def test_scalar_section_with_key_gives_default():
    config._config = {"log_level": "INFO"}
    assert cfg("log_level", "level", default="x") == "x"


def test_suspicious_values_are_warned_about(fresh, tmp_path, caplog):
    fresh.write_text(json.dumps({
        "volume": {"master": "oss", "step": 5},
        "refresh": {"interval": 0},
        "icons": {"paths": [str(tmp_path / "no-such-dir")]},
        "correlation": {"policy": "magic"},
    }))

    with caplog.at_level(logging.WARNING):
        load_config()

    for fragment in ("volume.master", "volume.step", "refresh.interval", "does not exist", "correlation.policy"):
        assert fragment in caplog.text


def test_non_numeric_values_fall_back_to_defaults(fresh, caplog):
    fresh.write_text(json.dumps({
        "volume": {"step": "fast"},
        "refresh": {"interval": "often"},
        "tools": {"timeout": [3]},
    }))

    with caplog.at_level(logging.WARNING):
        load_config()

    assert "volume.step 'fast' is not a number" in caplog.text
    assert "refresh.interval 'often' is not a number" in caplog.text
    assert cfg("volume", "step", default=0.02) == 0.02
    assert cfg("refresh", "interval", default=2.0) == 2.0
    assert cfg("tools", "timeout", default=3) == 3
