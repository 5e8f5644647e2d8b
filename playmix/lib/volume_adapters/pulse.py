# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
PulseAudio / PipeWire volume adapters — pactl against the default sink or
a single sink input.
"""

import logging

from ..audio_snapshot import parse_sink_inputs, parse_volume
from ..errors import ExternalToolUnavailable
from ..tools import run_tool
from .base import VolumeAdapter, to_percent

logger = logging.getLogger("playmix.volume.pulse")

DEFAULT_SINK = "@DEFAULT_SINK@"


def stream_gone(err: ExternalToolUnavailable) -> bool:
    """True when pactl failed because the sink input no longer exists."""
    return "no such entity" in err.detail.lower()


class PulseSinkVolume(VolumeAdapter):
    """Master volume: the default sink."""

    def __init__(self, sink: str = DEFAULT_SINK):
        self._sink = sink

    async def set_volume(self, volume: float) -> None:
        await run_tool("pactl", "set-sink-volume", self._sink, to_percent(volume))
        logger.info("-> master volume: %s", to_percent(volume))

    async def get_volume(self) -> float | None:
        return parse_volume(await run_tool("pactl", "get-sink-volume", self._sink))


class PulseSinkInputVolume(VolumeAdapter):
    """One application's stream, addressed by sink-input index."""

    def __init__(self, index: int):
        self._index = index

    async def set_volume(self, volume: float) -> None:
        await run_tool("pactl", "set-sink-input-volume", str(self._index), to_percent(volume))
        logger.info("-> sink input #%d volume: %s", self._index, to_percent(volume))

    async def get_volume(self) -> float | None:
        # pactl has no per-sink-input getter; the audio snapshot carries it
        listing = parse_sink_inputs(await run_tool("pactl", "list", "sink-inputs"))
        for stream in listing:
            if stream.index == self._index:
                return stream.volume
        return None
