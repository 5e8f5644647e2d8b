# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
ALSA master volume adapter — amixer against a simple mixer control.

For setups where the dial should drive the hardware mixer rather than the
PulseAudio/PipeWire default sink (e.g. a DAC with its own volume control).

Setup:
  1. Find the control with: amixer [-c CARD] scontrols
  2. Set volume.master to "alsa" in config.json, plus volume.alsa_control
     (default "Master") and optionally volume.alsa_card
"""

import logging
import re

from ..tools import run_tool
from .base import VolumeAdapter, to_percent

logger = logging.getLogger("playmix.volume.alsa")

DEFAULT_CONTROL = "Master"

_LEVEL_RE = re.compile(r"\[(\d+)%\]")


def parse_amixer_level(output: str) -> float | None:
    """Average the ``[NN%]`` values of an ``amixer sget`` listing → 0.0–1.0."""
    levels = [int(v) for v in _LEVEL_RE.findall(output)]
    if not levels:
        return None
    return sum(levels) / len(levels) / 100


class AlsaMasterVolume(VolumeAdapter):
    """Volume control via ALSA simple mixer control."""

    def __init__(self, card: str | None = None, control: str | None = None):
        self._card = card
        self._control = control or DEFAULT_CONTROL

    async def _amixer(self, *args) -> str:
        cmd = ["amixer"]
        if self._card:
            cmd += ["-c", str(self._card)]
        return await run_tool(*cmd, *args)

    async def set_volume(self, volume: float) -> None:
        await self._amixer("sset", self._control, to_percent(volume))
        logger.info("-> ALSA %s volume: %s", self._control, to_percent(volume))

    async def get_volume(self) -> float | None:
        return parse_amixer_level(await self._amixer("sget", self._control))
