# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Async wrapper for the external CLI tools PlayMix talks to (pactl,
playerctl, amixer).

Every call runs under a timeout and raises ExternalToolUnavailable on a
missing binary, a timeout, or a non-zero exit, so callers only need one
except clause to fall back to their last known state.
"""

import asyncio
import logging
import os

from .config import cfg
from .errors import ExternalToolUnavailable

logger = logging.getLogger("playmix.tools")


def tool_env() -> dict:
    """Environment for tool subprocesses: C locale so output parses the same everywhere."""
    env = os.environ.copy()
    env.setdefault("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    env["LC_ALL"] = "C"
    return env


async def run_tool(*cmd: str, timeout: float | None = None) -> str:
    """Run *cmd* and return its stdout as text."""
    if timeout is None:
        timeout = float(cfg("tools", "timeout", default=3))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=tool_env(),
        )
    except FileNotFoundError:
        raise ExternalToolUnavailable(cmd[0], "not installed") from None

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise ExternalToolUnavailable(cmd[0], f"timed out after {timeout:.1f}s") from None

    if proc.returncode != 0:
        detail = stderr.decode(errors="replace").strip() or stdout.decode(errors="replace").strip()
        logger.debug("%s failed (rc=%d): %s", " ".join(cmd), proc.returncode, detail)
        raise ExternalToolUnavailable(cmd[0], detail or f"exit status {proc.returncode}")
    return stdout.decode(errors="replace")
