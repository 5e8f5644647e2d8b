# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Change notifications from the audio server and the MPRIS bus.

Both tools can stream events: ``pactl subscribe`` prints a line per mixer
change, ``playerctl --follow`` a line per player/metadata change.  A
watcher runs one of them, filters the lines it cares about, and fires a
debounced callback so a burst of events (a track change touches several
properties) becomes one registry refresh.

Usage:
    watcher = pactl_watcher(core.request_refresh)
    task = asyncio.create_task(watcher.run())
"""

import asyncio
import logging
import re

from .media_snapshot import METADATA_FORMAT
from .tools import tool_env

logger = logging.getLogger("playmix.watch")

RESTART_DELAY = 5.0  # seconds before restarting a dead watcher

_PACTL_EVENT_RE = re.compile(r"Event '(new|change|remove)' on (sink-input|sink|server) #?\d*")


class ChangeWatcher:
    """Runs *cmd* forever and calls *on_change* (debounced) for accepted lines."""

    def __init__(self, name: str, cmd: list[str], on_change, accept=None, debounce_ms: int = 150):
        self.name = name
        self._cmd = cmd
        self._on_change = on_change
        self._accept = accept or (lambda line: True)
        self._debounce_ms = debounce_ms
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._firing: set[asyncio.Task] = set()
        self._proc: asyncio.subprocess.Process | None = None

    async def run(self):
        try:
            while True:
                try:
                    self._proc = await asyncio.create_subprocess_exec(
                        *self._cmd,
                        stdout=asyncio.subprocess.PIPE,
                        stderr=asyncio.subprocess.DEVNULL,
                        env=tool_env(),
                    )
                    logger.info("Watching %s changes (%s)", self.name, self._cmd[0])
                    async for raw in self._proc.stdout:
                        if self._accept(raw.decode(errors="replace").rstrip("\n")):
                            self._schedule()
                    rc = await self._proc.wait()
                    logger.warning("%s watcher exited (rc=%s), restarting in %.0fs",
                                   self.name, rc, RESTART_DELAY)
                except FileNotFoundError:
                    logger.warning("%s not installed — %s changes will only be picked up by polling",
                                   self._cmd[0], self.name)
                    return
                finally:
                    self._kill()
                await asyncio.sleep(RESTART_DELAY)
        finally:
            self._cancel_pending()

    def _schedule(self):
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self._debounce_ms / 1000, self._start_fire)

    def _start_fire(self):
        task = asyncio.ensure_future(self._fire())
        self._firing.add(task)
        task.add_done_callback(self._firing.discard)

    def _cancel_pending(self):
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        for task in list(self._firing):
            task.cancel()

    async def _fire(self):
        self._debounce_handle = None
        try:
            await self._on_change()
        except Exception:
            logger.exception("%s change handler failed", self.name)

    def _kill(self):
        if self._proc is not None and self._proc.returncode is None:
            self._proc.kill()
        self._proc = None


def accept_pactl_event(line: str) -> bool:
    return _PACTL_EVENT_RE.search(line) is not None


def pactl_watcher(on_change) -> ChangeWatcher:
    return ChangeWatcher("mixer", ["pactl", "subscribe"], on_change, accept=accept_pactl_event)


def playerctl_watcher(on_change) -> ChangeWatcher:
    return ChangeWatcher(
        "player",
        ["playerctl", "-a", "--follow", "metadata", "--format", METADATA_FORMAT],
        on_change,
    )
