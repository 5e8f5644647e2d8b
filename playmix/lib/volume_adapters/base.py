# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Abstract base class for PlayMix volume adapters.

Every volume path (master sink, a single sink input, ALSA mixer control)
implements set_volume and get_volume on the normalized 0.0–1.0 scale.
Conversion to the tool's native scale happens inside the adapter.
"""

from abc import ABC, abstractmethod


class VolumeAdapter(ABC):
    """Interface every volume path must implement."""

    @abstractmethod
    async def set_volume(self, volume: float) -> None: ...

    @abstractmethod
    async def get_volume(self) -> float | None: ...


def to_percent(volume: float) -> str:
    """0.55 → ``"55%"`` (the argument form pactl and amixer both accept)."""
    return f"{round(max(0.0, min(1.0, volume)) * 100)}%"
