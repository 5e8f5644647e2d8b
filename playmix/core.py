# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
PlayMixCore — wires registry, dials, controllers and the image resolver
together and exposes the event API the host bridge drives:

    on_appear(instance_id, action)      host shows an action instance
    on_disappear(instance_id)           host removes it
    on_press / on_release(instance_id)  dial pushed / let go
    on_rotate(instance_id, ticks)       dial turned
    on_button_command(instance_id, cmd) transport button pressed

Output goes through a single coroutine supplied by the bridge:

    await render_update(instance_id, ResolvedImage | None, volume | None)

The registry refreshes every ``refresh.interval`` seconds and whenever a
watcher reports a change; after each refresh every dial whose selected
source changed (volume, metadata, art) or vanished is re-rendered.
"""

import asyncio
import logging

from .dial import DialInstance
from .images import ImageResolver, ResolvedImage
from .lib.audio_snapshot import PulseAudioSnapshot
from .lib.config import cfg
from .lib.correlation import get_policy
from .lib.errors import CoreInitError, ExternalToolUnavailable, SessionNotFound
from .lib.media_snapshot import PlayerctlSnapshot
from .lib.volume_adapters import PulseSinkInputVolume, create_master_adapter
from .lib.watchers import pactl_watcher, playerctl_watcher
from .media import MediaCommand, MediaController
from .registry import AudioSource, SourceRegistry
from .volume import VolumeController

logger = logging.getLogger("playmix.core")

VOLUME_DIAL = "volumedial"

# action name → command for plain transport buttons
BUTTON_ACTIONS = {
    "playpause": MediaCommand.PLAY_PAUSE,
    "play": MediaCommand.PLAY,
    "pause": MediaCommand.PAUSE,
    "stop": MediaCommand.STOP,
    "next": MediaCommand.NEXT,
    "previous": MediaCommand.PREVIOUS,
    "repeat": MediaCommand.REPEAT,
    "shuffle": MediaCommand.SHUFFLE,
}


class PlayMixCore:

    def __init__(self, render_update, *, audio=None, media=None, master=None,
                 app_adapter=None, resolver: ImageResolver | None = None, transport=None,
                 correlate=None, refresh_interval: float | None = None):
        master = master or create_master_adapter()
        audio = audio or PulseAudioSnapshot(master)
        media = media or PlayerctlSnapshot()
        correlate = correlate or get_policy(str(cfg("correlation", "policy", default="process")))

        self.registry = SourceRegistry(audio, media, correlate)
        self.resolver = resolver or ImageResolver()
        self.volume = VolumeController(self.registry, master, app_adapter or PulseSinkInputVolume)
        self.media = MediaController(self.registry, media, transport)

        self._render_update = render_update
        self._interval = float(refresh_interval or cfg("refresh", "interval", default=2.0))
        self._dials: dict[str, DialInstance] = {}
        self._buttons: dict[str, MediaCommand] = {}
        self._rendered: dict[str, AudioSource | None] = {}
        self._last_image: dict[str, ResolvedImage | None] = {}
        self._tasks: list[asyncio.Task] = []

    # ── Lifecycle ──

    async def start(self, watch: bool = True):
        """First refresh, then the periodic refresh loop (+ change watchers)."""
        await self.registry.refresh()
        if not self.registry.has_data:
            raise CoreInitError("neither pactl nor playerctl produced any data")
        logger.info("Core started: %d sources, refresh every %.1fs",
                    len(self.registry.current()), self._interval)

        self._tasks.append(asyncio.create_task(self._refresh_loop()))
        if watch:
            for watcher in (pactl_watcher(self.request_refresh), playerctl_watcher(self.request_refresh)):
                self._tasks.append(asyncio.create_task(watcher.run()))

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except (asyncio.CancelledError, Exception):
                pass
        self._tasks.clear()
        await self.resolver.close()
        logger.info("Core stopped")

    async def _refresh_loop(self):
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.request_refresh()
            except Exception:
                logger.exception("Refresh failed")

    async def request_refresh(self):
        await self.registry.refresh()
        await self._after_refresh()

    async def _after_refresh(self):
        self.resolver.forget(s.id for s in self.registry.current())
        stale = []
        for dial in list(self._dials.values()):
            source = dial.selected()  # falls back to master if the selection vanished
            if dial.needs_render or source != self._rendered.get(dial.instance_id):
                stale.append(self.render(dial))
        stale.extend(self._render_button(i) for i, c in self._buttons.items()
                     if c is MediaCommand.PLAY_PAUSE)
        if stale:
            await asyncio.gather(*stale)

    # ── Host events ──

    async def on_appear(self, instance_id: str, action: str):
        if action == VOLUME_DIAL:
            dial = self._dials.get(instance_id)
            if dial is None:
                dial = self._dials[instance_id] = DialInstance(instance_id, self.registry, self.volume)
                logger.info("Dial %s appeared (%d dials)", instance_id, len(self._dials))
            await self.render(dial)
        elif action in BUTTON_ACTIONS:
            self._buttons[instance_id] = BUTTON_ACTIONS[action]
            if self._buttons[instance_id] is MediaCommand.PLAY_PAUSE:
                await self._render_button(instance_id)
        else:
            logger.warning("Unknown action %s for %s", action, instance_id)

    async def on_disappear(self, instance_id: str):
        if self._dials.pop(instance_id, None) is not None:
            logger.info("Dial %s disappeared (%d dials)", instance_id, len(self._dials))
        self._buttons.pop(instance_id, None)
        self._rendered.pop(instance_id, None)
        self._last_image.pop(instance_id, None)

    async def on_press(self, instance_id: str):
        dial = self._dials.get(instance_id)
        if dial is not None:
            dial.press()

    async def on_release(self, instance_id: str):
        dial = self._dials.get(instance_id)
        if dial is not None:
            dial.release()

    async def on_rotate(self, instance_id: str, ticks: int):
        dial = self._dials.get(instance_id)
        if dial is None:
            return
        try:
            volume = await dial.rotate(ticks)
        except ExternalToolUnavailable as e:
            logger.warning("Dial %s: volume change failed: %s", instance_id, e)
            return
        if dial.needs_render:
            await self.render(dial)
        elif volume is not None:
            self._rendered[instance_id] = dial.selected()
            await self._emit(instance_id, self._last_image.get(instance_id), volume)

    async def on_button_command(self, instance_id: str, command: MediaCommand | None = None):
        """Transport command from a button, or from a dial for its selected source."""
        command = command or self._buttons.get(instance_id)
        if command is None:
            logger.warning("No command bound to %s", instance_id)
            return
        dial = self._dials.get(instance_id)
        source_id = dial.selected_id if dial is not None else None
        try:
            await self.media.dispatch(source_id, command)
        except SessionNotFound as e:
            logger.warning("%s ignored: %s", command.value, e)
        except ExternalToolUnavailable as e:
            logger.warning("%s failed: %s", command.value, e)

    def button_command(self, instance_id: str) -> MediaCommand | None:
        return self._buttons.get(instance_id)

    def dial(self, instance_id: str) -> DialInstance | None:
        return self._dials.get(instance_id)

    # ── Rendering ──

    async def render(self, dial: DialInstance):
        token = dial.begin_render()
        source = dial.selected()
        image = await self.resolver.resolve(source) if source is not None else None
        if not dial.is_current(token):
            logger.debug("Dial %s: discarding superseded image for %s",
                         dial.instance_id, source.id if source else None)
            return
        self._rendered[dial.instance_id] = source
        self._last_image[dial.instance_id] = image
        await self._emit(dial.instance_id, image, source.volume if source else None)

    async def _render_button(self, instance_id: str):
        image = None
        try:
            session = self.media.pick_active(self.registry.sessions())
        except SessionNotFound:
            session = None
        if session is not None:
            source = next((s for s in self.registry.current() if s.bus_name == session.bus_name), None)
            if source is not None:
                image = await self.resolver.resolve(source)
        if image != self._last_image.get(instance_id) or instance_id not in self._last_image:
            self._last_image[instance_id] = image
            await self._emit(instance_id, image, None)

    async def _emit(self, instance_id: str, image: ResolvedImage | None, volume: float | None):
        try:
            await self._render_update(instance_id, image, volume)
        except Exception as e:
            logger.warning("Render update for %s failed: %s", instance_id, e)
