# PlayMix
# Copyright (C) 2024-2026 PlayMix contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Artwork plumbing: fetching album art, encoding images as data URLs the
host can display, and the bundled glyphs.

Album art URLs come straight from MPRIS ``mpris:artUrl`` and can be
``data:`` (passed through), ``file://`` (local cache of the player) or
``http(s)://`` (fetched with aiohttp).  Raster work runs in a small thread
pool so the event loop keeps serving dial events.
"""

import asyncio
import base64
import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from urllib.parse import unquote, urlparse

import aiohttp
from PIL import Image, ImageDraw, ImageFont

from .errors import ArtFetchFailed

log = logging.getLogger("playmix.artwork")

MAX_ARTWORK_SIZE = 200 * 1024  # 200 KB limit for JPEG output
DEFAULT_IMAGE_SIZE = 144       # dial key is 144x144 on most devices

# Shared thread pool for CPU-bound image processing
_artwork_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="artwork")


class ArtworkCache:
    """Simple LRU cache for artwork data (URL -> data URL)."""

    def __init__(self, max_size=50):
        self.max_size = max_size
        self._cache: OrderedDict[str, str] = OrderedDict()

    def get(self, url: str):
        if url in self._cache:
            self._cache.move_to_end(url)
            return self._cache[url]
        return None

    def put(self, url: str, data: str):
        if url in self._cache:
            self._cache.move_to_end(url)
        else:
            if len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
        self._cache[url] = data

    def evict(self, url: str):
        self._cache.pop(url, None)

    def __contains__(self, url: str):
        return url in self._cache

    def __len__(self):
        return len(self._cache)


def to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def process_artwork(image_bytes: bytes, size: int = DEFAULT_IMAGE_SIZE) -> str:
    """Scale album art to *size* and re-encode as a JPEG data URL.

    Runs in a thread pool (CPU-bound).  Raises ArtFetchFailed when Pillow
    can't decode the bytes.
    """
    try:
        image = Image.open(BytesIO(image_bytes))
        if image.mode in ("RGBA", "LA", "P"):
            image = image.convert("RGB")
        image.thumbnail((size, size))

        buf = BytesIO()
        image.save(buf, "JPEG", quality=85)
        if buf.tell() > MAX_ARTWORK_SIZE:
            buf = BytesIO()
            image.save(buf, "JPEG", quality=60)
        return to_data_url(buf.getvalue(), "image/jpeg")
    except Exception as e:
        raise ArtFetchFailed(f"undecodable artwork: {e}") from e


def process_icon(image_bytes: bytes, size: int = DEFAULT_IMAGE_SIZE) -> str:
    """Scale an icon to *size*, keeping transparency, as a PNG data URL."""
    image = Image.open(BytesIO(image_bytes))
    image = image.convert("RGBA")
    image.thumbnail((size, size))
    buf = BytesIO()
    image.save(buf, "PNG")
    return to_data_url(buf.getvalue(), "image/png")


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


async def read_bytes(path: str) -> bytes:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_artwork_executor, _read_file, path)


async def load_icon(path: str, size: int = DEFAULT_IMAGE_SIZE) -> str:
    """Read and scale the icon at *path* on the artwork pool."""
    raw = await read_bytes(path)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_artwork_executor, process_icon, raw, size)


async def fetch_artwork(url: str, session: aiohttp.ClientSession | None = None,
                        size: int = DEFAULT_IMAGE_SIZE, timeout: float = 10) -> str:
    """Fetch the art at *url* and return it as a display-ready data URL.

    If *session* is None a temporary one is created (and closed).  Raises
    ArtFetchFailed on any failure.
    """
    if url.startswith("data:"):
        return url

    loop = asyncio.get_running_loop()
    if url.startswith("file:"):
        path = unquote(urlparse(url).path)
        try:
            image_bytes = await read_bytes(path)
        except OSError as e:
            raise ArtFetchFailed(f"cannot read {path}: {e}") from e
    elif url.startswith(("http://", "https://")):
        close_session = False
        if session is None:
            session = aiohttp.ClientSession()
            close_session = True
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
                resp.raise_for_status()
                image_bytes = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ArtFetchFailed(f"error fetching {url}: {e}") from e
        finally:
            if close_session:
                await session.close()
    else:
        raise ArtFetchFailed(f"unsupported artwork URL scheme: {url}")

    if not image_bytes:
        raise ArtFetchFailed(f"{url} returned 0 bytes")

    log.debug("Downloaded %d bytes of artwork from %s", len(image_bytes), url)
    return await loop.run_in_executor(_artwork_executor, process_artwork, image_bytes, size)


# ── Bundled glyphs ──

def _draw_volume(draw: ImageDraw.ImageDraw, size: int):
    s = size / 144
    draw.rectangle([28 * s, 56 * s, 50 * s, 88 * s], fill="white")
    draw.polygon([(50 * s, 56 * s), (78 * s, 32 * s), (78 * s, 112 * s), (50 * s, 88 * s)], fill="white")
    for r in (18, 32, 46):
        box = [78 * s - r * s, 72 * s - r * s, 78 * s + r * s, 72 * s + r * s]
        draw.arc(box, start=-45, end=45, fill="white", width=max(1, int(6 * s)))


def _draw_unknown(draw: ImageDraw.ImageDraw, size: int):
    s = size / 144
    draw.ellipse([24 * s, 24 * s, 120 * s, 120 * s], outline="white", width=max(1, int(6 * s)))
    font = ImageFont.load_default(size=int(64 * s))
    draw.text((72 * s, 74 * s), "?", fill="white", font=font, anchor="mm")


_GLYPHS = {
    "volume": _draw_volume,
    "unknown": _draw_unknown,
}


def render_glyph(name: str, size: int = DEFAULT_IMAGE_SIZE) -> str:
    """Draw a bundled glyph on a dark key background → PNG data URL."""
    image = Image.new("RGBA", (size, size), (24, 24, 24, 255))
    _GLYPHS[name](ImageDraw.Draw(image), size)
    buf = BytesIO()
    image.save(buf, "PNG")
    return to_data_url(buf.getvalue(), "image/png")

