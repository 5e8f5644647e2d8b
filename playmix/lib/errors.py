# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Error taxonomy for PlayMix.

Everything except CoreInitError is recovered where it is caught: a
snapshot failure keeps the last known data, a stale selection falls back
to master, missing icons and failed artwork fall back to glyphs.
"""


class PlayMixError(Exception):
    """Base class for all PlayMix errors."""


class ExternalToolUnavailable(PlayMixError):
    """pactl / playerctl / amixer is missing, timed out, or exited non-zero."""

    def __init__(self, tool: str, detail: str = ""):
        self.tool = tool
        self.detail = detail
        super().__init__(f"{tool}: {detail}" if detail else tool)


class StaleSelection(PlayMixError):
    """The selected source disappeared between selection and use."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"source {source_id!r} is no longer available")


class IconNotFound(PlayMixError):
    """No <binary>.png exists in any configured icon directory."""


class ArtFetchFailed(PlayMixError):
    """Album art could not be fetched or decoded."""


class SessionNotFound(PlayMixError):
    """No media player session matches a transport command."""


class CoreInitError(PlayMixError):
    """Neither snapshot source produced data at startup."""
