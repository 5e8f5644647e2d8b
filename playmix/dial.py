# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
DialInstance — one rotary control on the device.

Two states:

    BROWSING  (default)  rotate → volume of the selected source
    CYCLING   (held)     rotate → move the selection, wrapping at both ends

press enters CYCLING, release returns to BROWSING and keeps the selection.
Each instance owns its own selection; dials never see each other's state.
"""

import enum
import logging

from .lib.config import cfg
from .lib.errors import StaleSelection
from .registry import MASTER_ID, AudioSource, SourceRegistry
from .volume import VolumeController

logger = logging.getLogger("playmix.dial")


class DialState(enum.Enum):
    BROWSING = "browsing"
    CYCLING = "cycling"


class DialInstance:

    def __init__(self, instance_id: str, registry: SourceRegistry, volume: VolumeController,
                 step: float | None = None):
        self.instance_id = instance_id
        self.state = DialState.BROWSING
        self.needs_render = True
        self._registry = registry
        self._volume = volume
        self._step = float(step if step is not None else cfg("volume", "step", default=0.02))
        self._selected_id = MASTER_ID
        self._render_generation = 0

    def __repr__(self):
        return f"<DialInstance {self.instance_id} {self.state.value} selected={self._selected_id}>"

    # ── Selection ──

    @property
    def selected_id(self) -> str:
        """The selected source id; falls back to master if it has vanished."""
        if self._selected_id != MASTER_ID and self._registry.resolve(self._selected_id) is None:
            self._fall_back()
        return self._selected_id

    def selected(self) -> AudioSource | None:
        return self._registry.resolve(self.selected_id)

    def _fall_back(self):
        logger.info("Dial %s: source %s is gone, back to master", self.instance_id, self._selected_id)
        self._selected_id = MASTER_ID
        self.needs_render = True

    # ── Events ──

    def press(self):
        if self.state is not DialState.CYCLING:
            self.state = DialState.CYCLING
            logger.debug("Dial %s: cycling", self.instance_id)

    def release(self):
        if self.state is not DialState.BROWSING:
            self.state = DialState.BROWSING
            logger.debug("Dial %s: browsing (selected %s)", self.instance_id, self._selected_id)

    async def rotate(self, ticks: int) -> float | None:
        """Handle *ticks* detents (negative = counter-clockwise).

        Returns the new volume when browsing a source with a volume channel,
        otherwise None.
        """
        if ticks == 0:
            return None
        if self.state is DialState.CYCLING:
            self._cycle(ticks)
            return None
        return await self._adjust(ticks)

    def _cycle(self, ticks: int):
        sources = self._registry.current()
        if not sources:
            return
        index = self._registry.index_of(self.selected_id)
        if index is None:
            index = 0
        new_id = sources[(index + ticks) % len(sources)].id
        if new_id != self._selected_id:
            self._selected_id = new_id
            self.needs_render = True
            logger.info("Dial %s -> %s", self.instance_id, new_id)

    async def _adjust(self, ticks: int) -> float | None:
        # raw selection: a vanished source raises StaleSelection
        try:
            return await self._volume.adjust(self._selected_id, ticks * self._step)
        except StaleSelection:
            self._fall_back()
            return None

    # ── Rendering bookkeeping ──

    def begin_render(self) -> int:
        """Start a render; returns a token that goes stale when a newer render starts."""
        self._render_generation += 1
        self.needs_render = False
        return self._render_generation

    def is_current(self, token: int) -> bool:
        return token == self._render_generation
