# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Point-in-time view of the MPRIS players on the session bus, via playerctl.

Each player instance (``spotify``, ``firefox.instance_1_42``,
``chromium.instance8123``) becomes one MediaSession carrying its playback
status and the two metadata fields PlayMix renders: title and art URL.

Usage:
    media = PlayerctlSnapshot()
    sessions = await media.snapshot()
    sessions[0].bus_name   # "org.mpris.MediaPlayer2.spotify"
"""

import logging
from dataclasses import dataclass

from .errors import ExternalToolUnavailable
from .tools import run_tool

logger = logging.getLogger("playmix.mpris")

BUS_PREFIX = "org.mpris.MediaPlayer2."

# playerctld mirrors the active player
_IGNORED_PLAYERS = {"playerctld"}

_SEP = "\x1f"
_FIELDS = ("playerInstance", "playerName", "status", "xesam:title", "xesam:artist", "mpris:artUrl")
METADATA_FORMAT = _SEP.join("{{%s}}" % f for f in _FIELDS)


@dataclass(frozen=True)
class MediaSession:
    """One MPRIS player instance."""
    instance: str
    name: str
    status: str = "Stopped"
    title: str = ""
    artist: str = ""
    art_url: str = ""

    @property
    def bus_name(self) -> str:
        return BUS_PREFIX + self.instance

    @property
    def identity(self) -> str:
        return self.name.replace("_", " ").title()

    @property
    def playing(self) -> bool:
        return self.status == "Playing"


def player_name(instance: str) -> str:
    """``chromium.instance8123`` → ``chromium``."""
    return instance.split(".", 1)[0]


def _no_players(err: ExternalToolUnavailable) -> bool:
    return "no players" in err.detail.lower() or "no player could" in err.detail.lower()


def parse_metadata(text: str) -> dict[str, MediaSession]:
    """Parse ``playerctl -a metadata --format METADATA_FORMAT`` output, keyed by instance."""
    sessions: dict[str, MediaSession] = {}
    for line in text.splitlines():
        parts = line.split(_SEP)
        if len(parts) != len(_FIELDS) or not parts[0]:
            continue
        instance, name, status, title, artist, art_url = (p.strip() for p in parts)
        sessions[instance] = MediaSession(
            instance=instance,
            name=name or player_name(instance),
            status=status or "Stopped",
            title=title,
            artist=artist,
            art_url=art_url,
        )
    return sessions


class PlayerctlSnapshot:
    """Enumerates MPRIS sessions through playerctl."""

    async def list_instances(self) -> list[str]:
        try:
            out = await run_tool("playerctl", "-l")
        except ExternalToolUnavailable as e:
            if _no_players(e):
                return []
            raise
        return [
            line.strip() for line in out.splitlines()
            if line.strip() and player_name(line.strip()) not in _IGNORED_PLAYERS
        ]

    async def snapshot(self) -> tuple[MediaSession, ...]:
        instances = await self.list_instances()
        if not instances:
            return ()
        try:
            out = await run_tool("playerctl", "-a", "metadata", "--format", METADATA_FORMAT)
        except ExternalToolUnavailable as e:
            if not _no_players(e):
                raise
            out = ""
        details = parse_metadata(out)
        # Players without metadata still exist and can take transport commands
        sessions = tuple(
            details.get(instance) or MediaSession(instance=instance, name=player_name(instance))
            for instance in instances
        )
        logger.debug("Media snapshot: %s", ", ".join(s.instance for s in sessions))
        return sessions
