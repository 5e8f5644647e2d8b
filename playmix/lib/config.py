# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Shared configuration loader for PlayMix.

Loads a single JSON config file.  Search order:
  1. $XDG_CONFIG_HOME/playmix/config.json   (~/.config/playmix by default)
  2. config.json                            (CWD — handy for local dev)
  3. ../../config/default.json              (repo fallback)

Usage:
    from playmix.lib.config import cfg

    interval   = cfg("refresh", "interval", default=2.0)
    step       = cfg("volume", "step", default=0.02)
    icon_paths = cfg("icons", "paths", default=[])
    level      = cfg("log_level", default="INFO")
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

_config: dict | None = None


def _search_paths() -> list[str]:
    xdg = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return [
        os.path.join(xdg, "playmix", "config.json"),
        "config.json",
        os.path.join(os.path.dirname(__file__), "..", "..", "config", "default.json"),
    ]


def _number(section: dict, key: str, name: str, path: str) -> float | None:
    """*section[key]* as a float; a non-numeric value is dropped so the default applies."""
    value = section.get(key) if isinstance(section, dict) else None
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Config %s: %s.%s %r is not a number — using the default", path, name, key, value)
        del section[key]
        return None


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    vol = config.get("volume") or {}
    master = vol.get("master", "pulse")
    if master not in ("pulse", "alsa"):
        logger.warning("Config %s: unknown volume.master '%s' — using pulse", path, master)
    step = _number(vol, "step", "volume", path)
    if step is not None and not (0 < step <= 1):
        logger.warning("Config %s: volume.step %s outside (0, 1]", path, step)
    refresh = config.get("refresh") or {}
    interval = _number(refresh, "interval", "refresh", path)
    if interval is not None and interval <= 0:
        logger.warning("Config %s: refresh.interval must be positive", path)
    _number(config.get("artwork") or {}, "timeout", "artwork", path)
    _number(config.get("tools") or {}, "timeout", "tools", path)
    icons = config.get("icons") or {}
    for icon_dir in icons.get("paths") or []:
        if not os.path.isdir(os.path.expanduser(icon_dir)):
            logger.warning("Config %s: icon path %s does not exist", path, icon_dir)
    policy = (config.get("correlation") or {}).get("policy", "process")
    if policy not in ("process", "none"):
        logger.warning("Config %s: unknown correlation.policy '%s'", path, policy)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _search_paths():
        try:
            with open(path) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", path)
                _validate(_config, path)
                return _config
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue

    logger.warning("No config.json found — using defaults")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("log_level")                    → config["log_level"]
    cfg("volume", "step")               → config["volume"]["step"]
    cfg("refresh", "interval", default=2.0)  → config["refresh"]["interval"] or 2.0
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()
