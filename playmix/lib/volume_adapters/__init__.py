# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Pluggable volume adapters for PlayMix.

The master path is chosen by ``create_master_adapter`` from config.json;
per-application streams always go through PulseAudio/PipeWire.

Supported master types:
  - ``pulse``  – default sink via pactl (default)
  - ``alsa``   – ALSA simple mixer control via amixer
"""

import logging

from ..config import cfg
from .alsa import AlsaMasterVolume
from .base import VolumeAdapter
from .pulse import PulseSinkInputVolume, PulseSinkVolume, stream_gone

logger = logging.getLogger("playmix.volume")

__all__ = [
    "VolumeAdapter",
    "AlsaMasterVolume",
    "PulseSinkInputVolume",
    "PulseSinkVolume",
    "create_master_adapter",
    "stream_gone",
]


def create_master_adapter() -> VolumeAdapter:
    """Create the master volume adapter based on config.json.

    Reads from config.json "volume" section:
      master        – "pulse" (default) or "alsa"
      alsa_card     – ALSA card index/name (alsa only, default: amixer's default)
      alsa_control  – simple mixer control (alsa only, default "Master")
    """
    master = str(cfg("volume", "master", default="pulse")).lower()
    if master == "alsa":
        card = cfg("volume", "alsa_card")
        control = cfg("volume", "alsa_control", default="Master")
        logger.info("Master volume: ALSA control %s (card %s)", control, card or "default")
        return AlsaMasterVolume(card, control)
    logger.info("Master volume: PulseAudio default sink")
    return PulseSinkVolume()
