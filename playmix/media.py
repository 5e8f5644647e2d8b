# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
MediaController — transport commands for MPRIS players.

A command either targets the player behind a dial's selected source, or
(for plain buttons and for Master) "the active player":

  1. the first player reporting Playing (remembered as last active)
  2. otherwise the last active player, if it still exists
  3. otherwise the first player on the bus

playerctld is never a candidate; it only mirrors a real player.
"""

import enum
import logging

from .lib.errors import ExternalToolUnavailable, SessionNotFound
from .lib.media_snapshot import BUS_PREFIX, MediaSession
from .lib.tools import run_tool
from .registry import SourceKind, SourceRegistry

logger = logging.getLogger("playmix.media")

LOOP_CYCLE = ("None", "Track", "Playlist")


class MediaCommand(enum.Enum):
    PLAY = "play"
    PAUSE = "pause"
    PLAY_PAUSE = "play-pause"
    STOP = "stop"
    NEXT = "next"
    PREVIOUS = "previous"
    REPEAT = "repeat"
    SHUFFLE = "shuffle"


class PlayerctlTransport:
    """Sends commands to one player instance through playerctl."""

    async def call(self, instance: str, *args: str) -> str:
        try:
            return await run_tool("playerctl", "-p", instance, *args)
        except ExternalToolUnavailable as e:
            if "no player" in e.detail.lower() or "could not find" in e.detail.lower():
                raise SessionNotFound(f"player {instance} is gone") from e
            raise


def next_loop_status(status: str) -> str:
    """None → Track → Playlist → None."""
    try:
        return LOOP_CYCLE[(LOOP_CYCLE.index(status.strip()) + 1) % len(LOOP_CYCLE)]
    except ValueError:
        return LOOP_CYCLE[1]


class MediaController:

    def __init__(self, registry: SourceRegistry, media, transport=None):
        self._registry = registry
        self._media = media
        self._transport = transport or PlayerctlTransport()
        self._last_active: str | None = None

    async def dispatch(self, source_id: str | None, command: MediaCommand) -> str:
        """Send *command* to the player behind *source_id* (or the active player).

        Returns the player instance that received the command.  Raises
        SessionNotFound if nothing can take it.
        """
        instance = await self._target(source_id)
        if command is MediaCommand.REPEAT:
            status = await self._transport.call(instance, "loop")
            new_status = next_loop_status(status)
            await self._transport.call(instance, "loop", new_status)
            logger.info("-> %s: loop %s", instance, new_status)
        elif command is MediaCommand.SHUFFLE:
            await self._transport.call(instance, "shuffle", "Toggle")
            logger.info("-> %s: shuffle toggled", instance)
        else:
            await self._transport.call(instance, command.value)
            logger.info("-> %s: %s", instance, command.value)
        return instance

    async def active_session(self) -> MediaSession:
        """Pick the player that unbound buttons should control."""
        try:
            sessions = await self._media.snapshot()
        except ExternalToolUnavailable as e:
            logger.warning("Media snapshot failed (%s), using last known players", e)
            sessions = self._registry.sessions()
        return self.pick_active(sessions)

    def pick_active(self, sessions) -> MediaSession:
        if not sessions:
            raise SessionNotFound("no MPRIS players found")

        for session in sessions:
            if session.playing:
                self._last_active = session.instance
                logger.debug("Active player: %s (Playing)", session.instance)
                return session
        for session in sessions:
            if session.instance == self._last_active:
                logger.debug("No player playing, using last active: %s", session.instance)
                return session
        logger.debug("No active or remembered player, using first: %s", sessions[0].instance)
        return sessions[0]

    async def _target(self, source_id: str | None) -> str:
        if source_id is None:
            return (await self.active_session()).instance

        source = self._registry.resolve(source_id)
        if source is None:
            raise SessionNotFound(f"source {source_id} is gone")
        if source.kind is SourceKind.MASTER:
            return (await self.active_session()).instance
        if source.kind is not SourceKind.MEDIA_PLAYER or not source.bus_name:
            raise SessionNotFound(f"{source.display_name} is not a media player")
        instance = source.bus_name.removeprefix(BUS_PREFIX)
        self._last_active = instance
        return instance
