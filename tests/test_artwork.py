"""Artwork fetching, encoding and the LRU cache."""

import asyncio
import base64
from io import BytesIO

import pytest
from aiohttp import web
from PIL import Image

from playmix.lib.artwork import (
    ArtworkCache,
    fetch_artwork,
    process_artwork,
    process_icon,
    render_glyph,
)
from playmix.lib.errors import ArtFetchFailed


def _png_bytes(size=(400, 300), color=(10, 120, 200, 255)) -> bytes:
    buf = BytesIO()
    Image.new("RGBA", size, color).save(buf, "PNG")
    return buf.getvalue()


def _decode(data_url: str) -> Image.Image:
    header, payload = data_url.split(",", 1)
    return Image.open(BytesIO(base64.b64decode(payload)))


def test_cache_evicts_least_recently_used():
    cache = ArtworkCache(max_size=2)
    cache.put("a", "A")
    cache.put("b", "B")
    cache.get("a")
    cache.put("c", "C")

    assert "a" in cache
    assert "b" not in cache
    assert len(cache) == 2


def test_cache_evict():
    cache = ArtworkCache()
    cache.put("a", "A")
    cache.evict("a")
    cache.evict("missing")
    assert cache.get("a") is None


def test_process_artwork_scales_to_jpeg():
    data_url = process_artwork(_png_bytes(), size=144)

    assert data_url.startswith("data:image/jpeg;base64,")
    image = _decode(data_url)
    assert image.format == "JPEG"
    assert max(image.size) == 144


def test_process_artwork_rejects_garbage():
    with pytest.raises(ArtFetchFailed):
        process_artwork(b"\x00\x01 definitely not an image")


def test_process_icon_keeps_transparency():
    image = _decode(process_icon(_png_bytes((256, 256), (0, 0, 0, 0)), size=72))
    assert image.format == "PNG"
    assert image.mode == "RGBA"
    assert image.size == (72, 72)


@pytest.mark.parametrize("name", ["volume", "unknown"])
def test_render_glyph(name):
    image = _decode(render_glyph(name, size=96))
    assert image.size == (96, 96)


def test_data_url_passes_through():
    url = "data:image/png;base64,AAAA"
    assert asyncio.run(fetch_artwork(url)) == url


def test_file_url(tmp_path):
    path = tmp_path / "cover art.png"
    path.write_bytes(_png_bytes())

    data_url = asyncio.run(fetch_artwork("file://" + str(path).replace(" ", "%20"), size=64))

    assert max(_decode(data_url).size) == 64


def test_missing_file(tmp_path):
    with pytest.raises(ArtFetchFailed):
        asyncio.run(fetch_artwork(f"file://{tmp_path}/nope.jpg"))


def test_unsupported_scheme():
    with pytest.raises(ArtFetchFailed):
        asyncio.run(fetch_artwork("ftp://example.com/cover.jpg"))


def test_http_fetch():
    png = _png_bytes()

    async def art(request):
        return web.Response(body=png, content_type="image/png")

    async def scenario():
        app = web.Application()
        app.router.add_get("/cover.png", art)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        port = runner.addresses[0][1]
        try:
            ok = await fetch_artwork(f"http://127.0.0.1:{port}/cover.png", size=100)
            with pytest.raises(ArtFetchFailed):
                await fetch_artwork(f"http://127.0.0.1:{port}/missing.png")
            return ok
        finally:
            await runner.cleanup()

    data_url = asyncio.run(scenario())

    assert data_url.startswith("data:image/jpeg;base64,")
    assert max(_decode(data_url).size) == 100
