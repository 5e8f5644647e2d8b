# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
VolumeController — turns "this source, this much" into the right mixer call.

Master goes to the master adapter (default sink or ALSA control); every
other source goes to its own sink input.  Results are clamped to 0.0–1.0
and written back into the registry so the next rotate tick starts from
the value we just set rather than the last refresh.
"""

import logging

from .lib.errors import ExternalToolUnavailable, StaleSelection
from .lib.volume_adapters import PulseSinkInputVolume, VolumeAdapter, create_master_adapter, stream_gone
from .registry import AudioSource, SourceKind, SourceRegistry

logger = logging.getLogger("playmix.volume")


def clamp(volume: float) -> float:
    # rounded so repeated ticks don't accumulate float drift (0.1 + 0.2 ...)
    return round(max(0.0, min(1.0, volume)), 4)


class VolumeController:

    def __init__(self, registry: SourceRegistry, master: VolumeAdapter | None = None,
                 app_adapter=PulseSinkInputVolume):
        self._registry = registry
        self._master = master or create_master_adapter()
        self._app_adapter = app_adapter

    @property
    def master(self) -> VolumeAdapter:
        return self._master

    def _target(self, source_id: str) -> tuple[AudioSource, VolumeAdapter | None]:
        source = self._registry.resolve(source_id)
        if source is None:
            raise StaleSelection(source_id)
        if not source.has_volume:
            return source, None
        if source.kind is SourceKind.MASTER:
            return source, self._master
        return source, self._app_adapter(source.stream_index)

    async def adjust(self, source_id: str, delta: float) -> float | None:
        """Change *source_id*'s volume by *delta*; return the new clamped level.

        Display-only players have no volume channel: returns None, writes nothing.
        Raises StaleSelection if the source is gone.
        """
        source, adapter = self._target(source_id)
        if adapter is None:
            return None
        current = source.volume
        if current is None:
            current = await adapter.get_volume() or 0.0
        return await self._write(source, adapter, clamp(current + delta))

    async def set(self, source_id: str, volume: float) -> float | None:
        """Set *source_id*'s volume to an absolute level; return the clamped level."""
        source, adapter = self._target(source_id)
        if adapter is None:
            return None
        return await self._write(source, adapter, clamp(volume))

    async def _write(self, source: AudioSource, adapter: VolumeAdapter, volume: float) -> float:
        if volume == source.volume:
            return volume
        try:
            await adapter.set_volume(volume)
        except ExternalToolUnavailable as e:
            if source.kind is not SourceKind.MASTER and stream_gone(e):
                logger.info("%s went away before its volume could be set", source.display_name)
                raise StaleSelection(source.id) from e
            raise
        logger.debug("%s volume: %s -> %.2f", source.display_name, source.volume, volume)
        self._registry.update_volume(source.id, volume)
        return volume
