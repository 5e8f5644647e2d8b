"""PlayMix — audio source dial for OpenAction / Stream Deck hosts on Linux."""

__version__ = "0.4.0"
