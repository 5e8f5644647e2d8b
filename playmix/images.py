# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
ImageResolver — picks the picture for a selected source.

Rules, in order:
  1. Master                                  → bundled volume glyph
  2. Media player with art, not ambiguous    → album art (cached by URI)
  3. Anything else                           → <process_binary>.png from the
                                               icon path, else the bundled
                                               unknown-app glyph

Ambiguous entries (one browser process, several tabs, one MPRIS surface)
never show album art: the art belongs to whichever tab last updated the
shared surface, not necessarily to the stream the dial is on.

A failed art fetch falls through to rule 3.  Art is cached by URI; when a
source's URI changes the old entry is dropped.  There is no time-based
expiry.
"""

import enum
import logging
import os
from dataclasses import dataclass

import aiohttp

from .lib.artwork import (
    ArtworkCache,
    DEFAULT_IMAGE_SIZE,
    fetch_artwork,
    load_icon,
    render_glyph,
)
from .lib.config import cfg
from .lib.errors import ArtFetchFailed, IconNotFound
from .registry import AudioSource, SourceKind

logger = logging.getLogger("playmix.images")

VOLUME_GLYPH = "volume"
UNKNOWN_GLYPH = "unknown"


class ImageKind(enum.Enum):
    BUNDLED_ICON = "bundled_icon"
    DISCOVERED_ICON = "discovered_icon"
    ALBUM_ART = "album_art"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ResolvedImage:
    kind: ImageKind
    reference: str          # glyph name, icon path or art URI
    data: str | None = None  # data: URL ready for the host


class ImageResolver:

    def __init__(self, icon_paths: list[str] | None = None, fetch=None,
                 size: int | None = None, cache_size: int | None = None):
        if icon_paths is None:
            icon_paths = cfg("icons", "paths", default=[]) or []
        self._icon_paths = [os.path.expanduser(p) for p in icon_paths]
        self._size = int(size or cfg("artwork", "size", default=DEFAULT_IMAGE_SIZE))
        self._timeout = float(cfg("artwork", "timeout", default=10))
        self._fetch = fetch or self._fetch_remote
        self._art_cache = ArtworkCache(max_size=int(cache_size or cfg("artwork", "cache_size", default=50)))
        self._art_by_source: dict[str, str] = {}
        self._icon_cache: dict[tuple[str, float], str] = {}
        self._glyph_cache: dict[str, str] = {}
        self._session: aiohttp.ClientSession | None = None

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    # ── Public API ──

    async def resolve(self, source: AudioSource) -> ResolvedImage:
        if source.kind is SourceKind.MASTER:
            return await self._bundled(VOLUME_GLYPH, ImageKind.BUNDLED_ICON)

        art_uri = source.metadata.art_uri if source.metadata else ""
        if source.kind is SourceKind.MEDIA_PLAYER and art_uri and not source.ambiguous:
            try:
                return await self.album_art(source.id, art_uri)
            except ArtFetchFailed as e:
                logger.warning("Artwork for %s unavailable, using icon: %s", source.display_name, e)
        elif source.ambiguous and art_uri:
            logger.debug("%s is a shared instance — not showing album art", source.display_name)

        return await self.process_icon(source.process_binary)

    async def album_art(self, source_id: str, art_uri: str) -> ResolvedImage:
        previous = self._art_by_source.get(source_id)
        if previous is not None and previous != art_uri:
            self._art_cache.evict(previous)
            logger.debug("Art for %s changed, dropped %s", source_id, previous)
        self._art_by_source[source_id] = art_uri

        data = self._art_cache.get(art_uri)
        if data is None:
            data = await self._fetch(art_uri)
            self._art_cache.put(art_uri, data)
            logger.info("Cached artwork for %s (%d items in cache)", art_uri, len(self._art_cache))
        return ResolvedImage(ImageKind.ALBUM_ART, art_uri, data)

    def forget(self, live_ids):
        """Drop art bookkeeping for sources that are no longer registered."""
        live = set(live_ids)
        for source_id in [i for i in self._art_by_source if i not in live]:
            uri = self._art_by_source.pop(source_id)
            if uri not in self._art_by_source.values():
                self._art_cache.evict(uri)
            logger.debug("Forgot art for %s (%s)", source_id, uri)

    async def process_icon(self, binary: str | None) -> ResolvedImage:
        try:
            path = self.find_icon(binary)
            return ResolvedImage(ImageKind.DISCOVERED_ICON, path, await self._load_icon(path))
        except IconNotFound as e:
            logger.debug("%s — using unknown-app glyph", e)
            return await self._bundled(UNKNOWN_GLYPH, ImageKind.FALLBACK)

    def find_icon(self, binary: str | None) -> str:
        """First ``<binary>.png`` across the icon path (exact filename match)."""
        if binary:
            filename = f"{binary}.png"
            for directory in self._icon_paths:
                path = os.path.join(directory, filename)
                if os.path.isfile(path):
                    return path
        raise IconNotFound(f"no icon for {binary!r} in {self._icon_paths}")

    # ── Internal ──

    async def _fetch_remote(self, url: str) -> str:
        if url.startswith(("http://", "https://")) and self._session is None:
            self._session = aiohttp.ClientSession()
        return await fetch_artwork(url, self._session, size=self._size, timeout=self._timeout)

    async def _load_icon(self, path: str) -> str:
        try:
            key = (path, os.path.getmtime(path))
        except OSError as e:
            raise IconNotFound(f"icon {path} vanished: {e}") from e
        data = self._icon_cache.get(key)
        if data is None:
            try:
                data = await load_icon(path, self._size)
            except Exception as e:
                raise IconNotFound(f"icon {path} unreadable: {e}") from e
            self._icon_cache[key] = data
        return data

    async def _bundled(self, glyph: str, kind: ImageKind) -> ResolvedImage:
        # An operator-supplied volume.png / unknown.png wins over the drawn glyph
        try:
            path = self.find_icon(glyph)
            return ResolvedImage(kind, path, await self._load_icon(path))
        except IconNotFound:
            pass
        data = self._glyph_cache.get(glyph)
        if data is None:
            data = self._glyph_cache[glyph] = render_glyph(glyph, self._size)
        return ResolvedImage(kind, glyph, data)
