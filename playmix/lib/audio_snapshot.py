# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Point-in-time view of the PulseAudio / PipeWire mixer via pactl.

Produces the master (default sink) volume and one AudioStream per sink
input.  Volumes are normalized to 0.0–1.0 here; the percent scale pactl
speaks never leaves this module and the volume adapters.

Usage:
    audio = PulseAudioSnapshot()
    snap = await audio.snapshot()
    snap.master_volume    # 0.45
    snap.streams          # (AudioStream(index=42, process_binary="firefox", ...), ...)
"""

import asyncio
import logging
import re
from dataclasses import dataclass

from .tools import run_tool

logger = logging.getLogger("playmix.audio")

_PERCENT_RE = re.compile(r"(\d+)%")
_PROP_RE = re.compile(r'^\s*([\w.]+)\s*=\s*"(.*)"\s*$')

# Stream roles that are too short-lived to be worth a dial position
_IGNORED_ROLES = {"event", "phone"}


@dataclass(frozen=True)
class AudioStream:
    """One sink input as seen by the audio server."""
    index: int
    process_binary: str
    app_name: str
    volume: float
    pid: int | None = None
    muted: bool = False


@dataclass(frozen=True)
class AudioSnapshot:
    master_volume: float | None
    streams: tuple[AudioStream, ...]


def parse_volume(text: str) -> float | None:
    """Average the per-channel percentages of a pactl ``Volume:`` line → 0.0–1.0."""
    percents = [int(p) for p in _PERCENT_RE.findall(text)]
    if not percents:
        return None
    return sum(percents) / len(percents) / 100


def parse_sink_inputs(text: str) -> list[AudioStream]:
    """Parse ``pactl list sink-inputs`` output into AudioStream records."""
    streams: list[AudioStream] = []
    current: dict | None = None

    def _flush():
        if current is None:
            return
        props = current["props"]
        if props.get("media.role") in _IGNORED_ROLES:
            return
        binary = props.get("application.process.binary") or props.get("application.name") or ""
        if not binary:
            logger.debug("Skipping sink input #%d without a process name", current["index"])
            return
        pid = props.get("application.process.id")
        streams.append(AudioStream(
            index=current["index"],
            process_binary=binary,
            app_name=props.get("application.name") or binary,
            volume=current["volume"] if current["volume"] is not None else 1.0,
            pid=int(pid) if pid and pid.isdigit() else None,
            muted=current["muted"],
        ))

    for line in text.splitlines():
        if line.startswith("Sink Input #"):
            _flush()
            try:
                index = int(line[len("Sink Input #"):].strip())
            except ValueError:
                current = None
                continue
            current = {"index": index, "volume": None, "muted": False, "props": {}}
            continue
        if current is None:
            continue
        stripped = line.strip()
        if stripped.startswith("Volume:") and current["volume"] is None:
            current["volume"] = parse_volume(stripped)
        elif stripped.startswith("Mute:"):
            current["muted"] = stripped.split(":", 1)[1].strip() == "yes"
        else:
            m = _PROP_RE.match(line)
            if m:
                current["props"][m.group(1)] = m.group(2)
    _flush()

    # pactl already lists each sink input once; dedupe anyway so a garbled
    # listing can't produce two dial positions for one stream
    seen: set[int] = set()
    unique = []
    for s in streams:
        if s.index not in seen:
            seen.add(s.index)
            unique.append(s)
    return unique


class PulseAudioSnapshot:
    """Enumerates master + per-application volumes through pactl.

    The master level is read from *master* (a VolumeAdapter) so an ALSA
    master shows the value the dial actually writes.
    """

    def __init__(self, master=None):
        self._master = master

    async def _master_volume(self) -> float | None:
        if self._master is not None:
            return await self._master.get_volume()
        return parse_volume(await run_tool("pactl", "get-sink-volume", "@DEFAULT_SINK@"))

    async def snapshot(self) -> AudioSnapshot:
        listing, master_volume = await asyncio.gather(
            run_tool("pactl", "list", "sink-inputs"),
            self._master_volume(),
        )
        streams = parse_sink_inputs(listing)
        logger.debug("Audio snapshot: master=%s, %d streams", master_volume, len(streams))
        return AudioSnapshot(master_volume=master_volume, streams=tuple(streams))
