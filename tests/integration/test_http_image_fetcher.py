import httpx
import pytest

from figmaflow.infrastructure.adapters.http_image_fetcher import HttpImageFetcher


async def test_fetch_returns_content_and_type():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png"})

    async with HttpImageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
        result = await fetcher.fetch("https://cdn.test/a.png")

    assert result.url == "https://cdn.test/a.png"
    assert result.content == b"\x89PNG"
    assert result.content_type == "image/png"


async def test_fetch_follows_redirects():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old.png":
            return httpx.Response(302, headers={"Location": "https://cdn.test/new.png"})
        return httpx.Response(200, content=b"data")

    async with HttpImageFetcher(transport=httpx.MockTransport(handler)) as fetcher:
        result = await fetcher.fetch("https://cdn.test/old.png")
    assert result.content == b"data"


async def test_fetch_raises_on_error_status():
    transport = httpx.MockTransport(lambda request: httpx.Response(403))
    async with HttpImageFetcher(transport=transport) as fetcher:
        with pytest.raises(httpx.HTTPStatusError):
            await fetcher.fetch("https://cdn.test/expired.png")
