# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Audio-stream ↔ media-session correlation policies.

A policy is a plain function ``(streams, sessions) -> list[Correlated]``
handed to the SourceRegistry, so it can be swapped and tested on its own.

``correlate_by_process`` (default) groups both sides by process name
(sink input ``application.process.binary`` / ``application.name`` vs. the
MPRIS player name) and then, within a group:

  - one stream, one session          → merged
  - N streams, N sessions            → paired by sorted order (stream index
                                       vs. player instance)
  - stream and session counts differ → every stream gets the group's
                                       metadata but is flagged ambiguous
                                       (Chromium: many tabs, one MPRIS
                                       surface; can't tell which tab is which)
  - sessions with no stream, >1      → collapsed into one ambiguous entry

Assumptions: a player's MPRIS name equals its process binary (true for
Spotify, VLC, Firefox, Chromium, Brave, mpv).  Two separate Chromium
windows are indistinguishable from two tabs and are treated as one
shared instance.  Pairing by sorted order is a guess that holds when
each player instance owns exactly one stream; with any mismatch no
stream is trusted to own any one session's metadata.
"""

from dataclasses import dataclass, field
from typing import Callable, Sequence

from .audio_snapshot import AudioStream
from .media_snapshot import MediaSession

_SUFFIXES = ("-bin", ".bin", "-stable", "-browser")


@dataclass(frozen=True)
class Correlated:
    """One registry entry worth of correlated data."""
    stream: AudioStream | None = None
    session: MediaSession | None = None
    ambiguous: bool = False
    # every session folded into this entry (more than one only when ambiguous)
    sessions: tuple[MediaSession, ...] = field(default=())


CorrelationPolicy = Callable[[Sequence[AudioStream], Sequence[MediaSession]], list[Correlated]]


def process_key(name: str) -> str:
    """Normalize a binary / player name: ``Brave-Browser`` → ``brave``."""
    key = name.strip().lower()
    for suffix in _SUFFIXES:
        if key.endswith(suffix):
            key = key[: -len(suffix)]
    return key


def _representative(sessions: Sequence[MediaSession]) -> MediaSession:
    """The session whose metadata best describes a collapsed group."""
    for s in sessions:
        if s.playing:
            return s
    return sessions[0]


def correlate_by_process(streams: Sequence[AudioStream],
                         sessions: Sequence[MediaSession]) -> list[Correlated]:
    by_key: dict[str, list[MediaSession]] = {}
    for s in sorted(sessions, key=lambda s: s.instance):
        by_key.setdefault(process_key(s.name), []).append(s)

    streams_by_key: dict[str, list[AudioStream]] = {}
    unmatched: list[AudioStream] = []
    for st in sorted(streams, key=lambda st: st.index):
        for candidate in (process_key(st.process_binary), process_key(st.app_name)):
            if candidate in by_key:
                streams_by_key.setdefault(candidate, []).append(st)
                break
        else:
            unmatched.append(st)

    out: list[Correlated] = []
    player_only: list[Correlated] = []

    for key, group in by_key.items():
        group_streams = streams_by_key.get(key, [])
        if not group_streams:
            if len(group) == 1:
                player_only.append(Correlated(session=group[0], sessions=(group[0],)))
            else:
                player_only.append(Correlated(
                    session=_representative(group), sessions=tuple(group), ambiguous=True))
        elif len(group_streams) != len(group):
            rep = _representative(group)
            for st in group_streams:
                out.append(Correlated(stream=st, session=rep, sessions=tuple(group), ambiguous=True))
        else:
            for st, session in zip(group_streams, group):
                out.append(Correlated(stream=st, session=session, sessions=(session,)))

    out.extend(Correlated(stream=st) for st in unmatched)
    out.sort(key=lambda c: c.stream.index)
    return out + player_only


def no_correlation(streams: Sequence[AudioStream],
                   sessions: Sequence[MediaSession]) -> list[Correlated]:
    """Every stream and every session gets its own entry."""
    return ([Correlated(stream=st) for st in sorted(streams, key=lambda st: st.index)]
            + [Correlated(session=s, sessions=(s,)) for s in sorted(sessions, key=lambda s: s.instance)])


POLICIES: dict[str, CorrelationPolicy] = {
    "process": correlate_by_process,
    "none": no_correlation,
}


def get_policy(name: str) -> CorrelationPolicy:
    return POLICIES.get(name, correlate_by_process)
