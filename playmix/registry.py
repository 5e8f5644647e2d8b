# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Source model & registry.

The registry merges the audio snapshot (master + sink inputs) and the media
snapshot (MPRIS players) into one ordered tuple of AudioSource: master
first, then everything else in first-seen order.  Readers get the tuple
itself; a refresh builds a new one and swaps it in with a single
assignment, so nobody ever sees a half-built list.

Identity: each entry is backed by a sink input and/or one or more MPRIS
sessions (``stream:<sink input>``, ``player:<bus name>``).  An entry keeps
the id of whatever still backs it, so a paused player whose stream shows
up, or a tab that becomes one of several, stays selected.  Entries with
nothing previously seen get the next id from a counter; an id whose
backing is all gone is never handed out again.
"""

import asyncio
import dataclasses
import enum
import itertools
import logging
from dataclasses import dataclass

from .lib.audio_snapshot import AudioSnapshot
from .lib.correlation import Correlated, CorrelationPolicy, correlate_by_process
from .lib.media_snapshot import MediaSession

logger = logging.getLogger("playmix.registry")

MASTER_ID = "master"


class SourceKind(enum.Enum):
    MASTER = "master"
    APPLICATION = "application"
    MEDIA_PLAYER = "media_player"


@dataclass(frozen=True)
class MediaMetadata:
    title: str = ""
    artist: str = ""
    art_uri: str = ""
    status: str = "Stopped"


@dataclass(frozen=True)
class AudioSource:
    """One selectable entry on the dial."""
    id: str
    kind: SourceKind
    display_name: str
    process_binary: str | None = None
    volume: float | None = None          # None → display-only, no volume channel
    metadata: MediaMetadata | None = None
    ambiguous: bool = False              # shared instance: metadata can't be trusted per entry
    stream_index: int | None = None
    bus_name: str | None = None

    @property
    def has_volume(self) -> bool:
        return self.volume is not None or self.kind is SourceKind.MASTER


def _backing_keys(c: Correlated) -> tuple[str, ...]:
    """Everything that backs an entry: its stream first, then its sessions."""
    keys = []
    if c.stream is not None:
        keys.append(f"stream:{c.stream.index}")
    sessions = c.sessions or ((c.session,) if c.session is not None else ())
    keys.extend(f"player:{s.bus_name}" for s in sessions)
    return tuple(keys)


def _build_source(source_id: str, c: Correlated) -> AudioSource:
    metadata = None
    if c.session is not None:
        s: MediaSession = c.session
        metadata = MediaMetadata(title=s.title, artist=s.artist, art_uri=s.art_url, status=s.status)

    if c.stream is not None:
        return AudioSource(
            id=source_id,
            kind=SourceKind.MEDIA_PLAYER if metadata else SourceKind.APPLICATION,
            display_name=c.stream.app_name,
            process_binary=c.stream.process_binary,
            volume=c.stream.volume,
            metadata=metadata,
            ambiguous=c.ambiguous,
            stream_index=c.stream.index,
            bus_name=c.session.bus_name if c.session else None,
        )
    return AudioSource(
        id=source_id,
        kind=SourceKind.MEDIA_PLAYER,
        display_name=c.session.identity,
        process_binary=c.session.name,
        volume=None,
        metadata=metadata,
        ambiguous=c.ambiguous,
        bus_name=c.session.bus_name,
    )


class SourceRegistry:
    """Owns the merged, ordered source list.

    *audio* and *media* are snapshot sources (``await x.snapshot()``);
    *correlate* pairs streams with sessions (see playmix.lib.correlation).
    """

    def __init__(self, audio, media, correlate: CorrelationPolicy = correlate_by_process):
        self._audio = audio
        self._media = media
        self._correlate = correlate
        self._snapshot: tuple[AudioSource, ...] = ()
        self._last_audio: AudioSnapshot | None = None
        self._last_media: tuple[MediaSession, ...] | None = None
        self._ids: dict[str, str] = {}      # backing key -> id
        self._seq: dict[str, int] = {}      # id -> first-seen order
        self._counter = itertools.count(1)
        self._inflight: asyncio.Task | None = None
        self._dirty = False
        self.degraded = False

    # ── Readers ──

    def current(self) -> tuple[AudioSource, ...]:
        """The latest materialized list.  Never blocks."""
        return self._snapshot

    def resolve(self, source_id: str) -> AudioSource | None:
        for source in self._snapshot:
            if source.id == source_id:
                return source
        return None

    def index_of(self, source_id: str) -> int | None:
        for i, source in enumerate(self._snapshot):
            if source.id == source_id:
                return i
        return None

    @property
    def has_data(self) -> bool:
        """True once either snapshot source has produced anything."""
        return self._last_audio is not None or self._last_media is not None

    def sessions(self) -> tuple[MediaSession, ...]:
        """The last media snapshot, as seen by the registry."""
        return self._last_media or ()

    # ── Writers ──

    def update_volume(self, source_id: str, volume: float) -> AudioSource | None:
        """Record a volume we just wrote, so the next tick builds on it."""
        updated = None
        sources = []
        for source in self._snapshot:
            if source.id == source_id:
                source = updated = dataclasses.replace(source, volume=volume)
            sources.append(source)
        if updated is not None:
            self._snapshot = tuple(sources)
        return updated

    async def refresh(self) -> tuple[AudioSource, ...]:
        """Pull fresh snapshots and rebuild the list.

        A refresh requested while one is running is folded into it: the
        running task does one more pass and every caller awaits that task.
        """
        if self._inflight is not None and not self._inflight.done():
            self._dirty = True
            return await asyncio.shield(self._inflight)
        self._inflight = asyncio.ensure_future(self._refresh_loop())
        return await asyncio.shield(self._inflight)

    async def _refresh_loop(self) -> tuple[AudioSource, ...]:
        while True:
            self._dirty = False
            await self._refresh_once()
            if not self._dirty:
                return self._snapshot
            logger.debug("Change arrived during refresh, refreshing again")

    async def _refresh_once(self):
        audio, media = await asyncio.gather(
            self._audio.snapshot(), self._media.snapshot(), return_exceptions=True)

        audio_failed = isinstance(audio, Exception)
        media_failed = isinstance(media, Exception)
        for result in (audio, media):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        if audio_failed and media_failed:
            self.degraded = True
            logger.warning("Refresh degraded: audio (%s) and media (%s) unavailable — keeping %d sources",
                           audio, media, len(self._snapshot))
            return
        if audio_failed:
            logger.warning("Refresh degraded: audio snapshot failed (%s) — reusing last mixer state", audio)
            audio = self._last_audio
        if media_failed:
            logger.warning("Refresh degraded: media snapshot failed (%s) — reusing last player state", media)
            media = self._last_media
        self.degraded = audio_failed or media_failed

        if not audio_failed:
            self._last_audio = audio
        if not media_failed:
            self._last_media = media
        self._materialize(audio, media or ())

    def _materialize(self, audio: AudioSnapshot | None, media: tuple[MediaSession, ...]):
        streams = audio.streams if audio is not None else ()
        entries = [(c, _backing_keys(c)) for c in self._correlate(streams, media)]
        assigned: list[str | None] = [None] * len(entries)
        claimed: set[str] = set()

        # an entry keeps the id of whatever still backs it: its stream wins,
        # then any of its sessions
        for first_only in (True, False):
            for i, (c, keys) in enumerate(entries):
                if assigned[i] is not None:
                    continue
                for key in keys[:1] if first_only else keys:
                    source_id = self._ids.get(key)
                    if source_id is not None and source_id not in claimed:
                        assigned[i] = source_id
                        claimed.add(source_id)
                        break

        for gone_id in [i for i in self._seq if i not in claimed]:
            del self._seq[gone_id]
            logger.info("Source gone: %s", gone_id)

        ids: dict[str, str] = {}
        sources = []
        for (c, keys), source_id in zip(entries, assigned):
            if source_id is None:
                seq = next(self._counter)
                source_id = f"src-{seq}"
                self._seq[source_id] = seq
                logger.info("Source registered: %s (%s)", source_id, ", ".join(keys))
            for key in keys:
                ids.setdefault(key, source_id)
            sources.append(_build_source(source_id, c))
        self._ids = ids
        sources.sort(key=lambda s: self._seq[s.id])

        if audio is not None:
            master = AudioSource(
                id=MASTER_ID,
                kind=SourceKind.MASTER,
                display_name="Master",
                volume=audio.master_volume,
            )
            sources.insert(0, master)

        self._snapshot = tuple(sources)
