"""Shared fixtures for the PlayMix test suite.

- Config is pinned to an empty dict so every test runs on built-in
  defaults, whatever is in ~/.config/playmix.
- Registry / controller fixtures are wired to the in-memory fakes in
  fakes.py; tests mutate the fakes and call ``registry.refresh()``.
"""

import pytest

from fakes import AppAdapters, FakeAdapter, FakeAudio, FakeMedia, FakeTransport

from playmix.lib import config
from playmix.media import MediaController
from playmix.registry import SourceRegistry
from playmix.volume import VolumeController


@pytest.fixture(autouse=True)
def default_config(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config, "_config", {})


@pytest.fixture
def audio() -> FakeAudio:
    return FakeAudio()


@pytest.fixture
def media() -> FakeMedia:
    return FakeMedia()


@pytest.fixture
def master() -> FakeAdapter:
    return FakeAdapter(0.5)


@pytest.fixture
def app_adapters() -> AppAdapters:
    return AppAdapters()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def registry(audio, media) -> SourceRegistry:
    return SourceRegistry(audio, media)


@pytest.fixture
def volume(registry, master, app_adapters) -> VolumeController:
    return VolumeController(registry, master, app_adapter=app_adapters)


@pytest.fixture
def controller(registry, media, transport) -> MediaController:
    return MediaController(registry, media, transport)
