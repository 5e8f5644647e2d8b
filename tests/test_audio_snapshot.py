"""Parsing of pactl output and the PulseAudio snapshot source."""

import asyncio

import pytest

from fakes import FakeAdapter

from playmix.lib import audio_snapshot
from playmix.lib.audio_snapshot import PulseAudioSnapshot, parse_sink_inputs, parse_volume

SINK_INPUTS = """\
Sink Input #42
	Driver: PipeWire
	Owner Module: n/a
	Client: 41
	Sink: 50
	Sample Specification: float32le 2ch 48000Hz
	Channel Map: front-left,front-right
	Format: pcm, format.sample_format = "\\"float32le\\""  format.rate = "48000"
	Corked: no
	Mute: no
	Volume: front-left: 19661 /  30% / -31.37 dB,   front-right: 19661 /  30% / -31.37 dB
	        balance 0.00
	Buffer Latency: 0 usec
	Sink Latency: 0 usec
	Resample method: PipeWire
	Properties:
		client.api = "pipewire-pulse"
		application.name = "Discord"
		application.process.id = "4242"
		application.process.binary = "Discord"
		media.name = "playStream"
Sink Input #57
	Driver: PipeWire
	Mute: yes
	Volume: front-left: 65536 / 100% / 0.00 dB,   front-right: 32768 /  50% / -18.06 dB
	        balance -0.50
	Properties:
		application.name = "Firefox"
		application.process.id = "1337"
		application.process.binary = "firefox"
		media.name = "YouTube"
Sink Input #58
	Driver: PipeWire
	Mute: no
	Volume: mono: 65536 / 100% / 0.00 dB
	Properties:
		application.name = "GNOME Shell"
		application.process.binary = "gnome-shell"
		media.role = "event"
Sink Input #60
	Driver: PipeWire
	Mute: no
	Volume: mono: 29491 /  45% / -20.81 dB
	Properties:
		application.name = "speech-dispatcher"
"""


def test_parse_volume_averages_channels():
    assert parse_volume("Volume: front-left: 29491 /  45% / -20.81 dB,   front-right: 29491 /  45% / -20.81 dB") \
        == pytest.approx(0.45)
    assert parse_volume("front-left: 65536 / 100% / 0.00 dB, front-right: 32768 / 50% / -18.06 dB") \
        == pytest.approx(0.75)


def test_parse_volume_without_percent():
    assert parse_volume("Volume: n/a") is None


def test_parse_sink_inputs():
    streams = parse_sink_inputs(SINK_INPUTS)

    assert [s.index for s in streams] == [42, 57, 60]

    discord = streams[0]
    assert discord.process_binary == "Discord"
    assert discord.app_name == "Discord"
    assert discord.volume == pytest.approx(0.3)
    assert discord.pid == 4242
    assert discord.muted is False

    firefox = streams[1]
    assert firefox.volume == pytest.approx(0.75)
    assert firefox.muted is True


def test_event_sounds_are_skipped():
    assert "gnome-shell" not in [s.process_binary for s in parse_sink_inputs(SINK_INPUTS)]


def test_binary_falls_back_to_application_name():
    speech = parse_sink_inputs(SINK_INPUTS)[-1]
    assert speech.process_binary == "speech-dispatcher"
    assert speech.pid is None
    assert speech.volume == pytest.approx(0.45)


def test_duplicate_sink_inputs_listed_once():
    first_block = SINK_INPUTS.split("Sink Input #57")[0]
    assert len(parse_sink_inputs(first_block + first_block)) == 1


def test_empty_listing():
    assert parse_sink_inputs("") == []


def test_snapshot_reads_master_from_adapter(monkeypatch):
    calls = []

    async def fake_run_tool(*cmd, timeout=None):
        calls.append(cmd)
        return SINK_INPUTS

    monkeypatch.setattr(audio_snapshot, "run_tool", fake_run_tool)
    snap = asyncio.run(PulseAudioSnapshot(FakeAdapter(0.7)).snapshot())

    assert snap.master_volume == 0.7
    assert len(snap.streams) == 3
    assert calls == [("pactl", "list", "sink-inputs")]


def test_snapshot_reads_default_sink_without_adapter(monkeypatch):
    async def fake_run_tool(*cmd, timeout=None):
        if cmd[1] == "get-sink-volume":
            return "Volume: front-left: 39322 /  60% / -13.31 dB,   front-right: 39322 /  60% / -13.31 dB\n"
        return ""

    monkeypatch.setattr(audio_snapshot, "run_tool", fake_run_tool)
    snap = asyncio.run(PulseAudioSnapshot().snapshot())

    assert snap.master_volume == pytest.approx(0.6)
    assert snap.streams == ()
