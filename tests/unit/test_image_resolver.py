from __future__ import annotations

import base64
import threading
from typing import Any, Sequence

import pytest

from figmaflow.application.dto.processing import ImageProcessingOptions
from figmaflow.application.ports.image_fetcher import ImageFetchResult, ImageInfo
from figmaflow.application.services.image_resolver import (
    ImageResolver,
    create_batches,
    generate_placeholder,
)
from figmaflow.application.services.ttl_cache import TTLCache
from figmaflow.domain.models.document import BoundingBox, ComputedStyles, ParsedElement


class FakeImageSource:
    """Returns a CDN URL per id; batches listed in ``failing`` raise."""

    def __init__(self, failing: set[int] | None = None, err_batches: set[int] | None = None) -> None:
        self.calls: list[list[str]] = []
        self.failing = failing or set()
        self.err_batches = err_batches or set()

    async def get_images(
        self,
        file_key: str,
        node_ids: Sequence[str],
        *,
        format: str = "png",
        scale: float = 1.0,
    ) -> dict[str, Any]:
        index = len(self.calls)
        self.calls.append(list(node_ids))
        if index in self.failing:
            raise ConnectionError("upstream unavailable")
        if index in self.err_batches:
            return {"err": "Invalid node ids"}
        return {"images": {node_id: f"https://cdn.test/{node_id}.{format}" for node_id in node_ids}}


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeFetcher:
    def __init__(self, fail_urls: set[str] | None = None) -> None:
        self.fetched: list[str] = []
        self.fail_urls = fail_urls or set()

    async def fetch(self, url: str) -> ImageFetchResult:
        self.fetched.append(url)
        if url in self.fail_urls:
            raise ConnectionError("404")
        return ImageFetchResult(url=url, content=b"x" * 1234, content_type="image/png")


class FakeInspector:
    def inspect(self, content: bytes, content_type: str | None = None) -> ImageInfo:
        return ImageInfo(width=640, height=480, format="png")

    def to_data_url(self, content, info, max_width, max_height, quality) -> str:
        return "data:image/png;base64," + base64.b64encode(content[:3]).decode()


def _ids(count: int) -> list[str]:
    return [f"1:{i}" for i in range(count)]


def test_create_batches():
    assert create_batches(["a", "b", "c"], 2) == [["a", "b"], ["c"]]
    assert create_batches([], 50) == []


def test_placeholder_is_svg_data_url():
    url = generate_placeholder("Hero <img>", 320, 200)
    assert url.startswith("data:image/svg+xml;base64,")
    svg = base64.b64decode(url.split(",", 1)[1]).decode()
    assert 'width="320"' in svg
    assert "Hero &lt;img&gt;" in svg


async def test_batches_are_sequential_with_delay_between_calls():
    source = FakeImageSource()
    sleep = RecordingSleep()
    resolver = ImageResolver(source, sleep=sleep)

    images = await resolver.resolve_images("file", _ids(120))

    assert [len(call) for call in source.calls] == [50, 50, 20]
    assert sleep.delays == [1.0, 1.0]
    assert len(images) == 120
    assert images["1:0"] == "https://cdn.test/1:0.png"


async def test_duplicate_ids_resolved_once():
    source = FakeImageSource()
    resolver = ImageResolver(source, sleep=RecordingSleep())
    images = await resolver.resolve_images("file", ["1:1", "1:2", "1:1"])
    assert source.calls == [["1:1", "1:2"]]
    assert list(images) == ["1:1", "1:2"]


async def test_failed_batch_gets_placeholders_and_reports_error():
    source = FakeImageSource(failing={1})
    resolver = ImageResolver(source, sleep=RecordingSleep())
    errors = []
    progress = []

    images = await resolver.resolve_images(
        "file",
        _ids(120),
        on_error=errors.append,
        on_progress=lambda done, total: progress.append((done, total)),
    )

    assert len(images) == 120
    assert images["1:60"].startswith("data:image/svg+xml;base64,")
    assert images["1:110"] == "https://cdn.test/1:110.png"
    assert len(errors) == 1
    assert errors[0].batch_index == 1
    assert len(errors[0].node_ids) == 50
    assert progress == [(1, 3), (2, 3), (3, 3)]


async def test_error_response_is_a_batch_failure():
    source = FakeImageSource(err_batches={0})
    resolver = ImageResolver(source, sleep=RecordingSleep())
    errors = []
    images = await resolver.resolve_images(
        "file",
        ["1:1"],
        ImageProcessingOptions(generate_placeholders=False),
        on_error=errors.append,
    )
    assert images == {}
    assert "Invalid node ids" in str(errors[0])


async def test_placeholder_uses_element_name_and_size():
    source = FakeImageSource(failing={0})
    resolver = ImageResolver(source, sleep=RecordingSleep())
    element = ParsedElement(
        id="1:1",
        name="Logo",
        type="image",
        styles=ComputedStyles(),
        bounds=BoundingBox(width=64, height=32),
    )
    images = await resolver.resolve_images("file", ["1:1"], elements={"1:1": element})
    svg = base64.b64decode(images["1:1"].split(",", 1)[1]).decode()
    assert 'width="64" height="32"' in svg
    assert "Logo" in svg


async def test_cached_batches_skip_network_and_delay():
    source = FakeImageSource()
    sleep = RecordingSleep()
    resolver = ImageResolver(source, sleep=sleep)

    first = await resolver.resolve_images("file", _ids(60))
    second = await resolver.resolve_images("file", list(reversed(_ids(50))) + _ids(60)[50:])

    assert len(source.calls) == 2
    assert sleep.delays == [1.0]
    assert resolver.cache_hits == 2
    assert second == {k: first[k] for k in second}


async def test_cache_key_includes_format():
    source = FakeImageSource()
    resolver = ImageResolver(source, sleep=RecordingSleep())
    await resolver.resolve_images("file", ["1:1"])
    await resolver.resolve_images("file", ["1:1"], ImageProcessingOptions(format="svg"))
    assert len(source.calls) == 2


async def test_optimize_describes_images():
    fetcher = FakeFetcher()
    resolver = ImageResolver(FakeImageSource(), fetcher=fetcher, inspector=FakeInspector())
    result = await resolver.optimize({"1:1": "https://cdn.test/a.png"})
    image = result["1:1"]
    assert image.optimized is True
    assert (image.width, image.height, image.format, image.size) == (640, 480, "png", 1234)
    assert image.base64 is None


async def test_optimize_inlines_base64_when_requested():
    resolver = ImageResolver(FakeImageSource(), fetcher=FakeFetcher(), inspector=FakeInspector())
    result = await resolver.optimize(
        {"1:1": "https://cdn.test/a.png"}, ImageProcessingOptions(inline_base64=True)
    )
    assert result["1:1"].base64.startswith("data:image/png;base64,")


async def test_optimize_failure_falls_back_to_unoptimized():
    fetcher = FakeFetcher(fail_urls={"https://cdn.test/bad.png"})
    resolver = ImageResolver(FakeImageSource(), fetcher=fetcher, inspector=FakeInspector())
    errors = []
    result = await resolver.optimize(
        {"1:1": "https://cdn.test/bad.png", "1:2": "https://cdn.test/ok.png"},
        on_error=errors.append,
    )
    assert result["1:1"].optimized is False
    assert result["1:1"].url == "https://cdn.test/bad.png"
    assert result["1:2"].optimized is True
    assert len(errors) == 1


async def test_optimize_caches_per_url():
    fetcher = FakeFetcher()
    resolver = ImageResolver(FakeImageSource(), fetcher=fetcher, inspector=FakeInspector())
    await resolver.optimize({"1:1": "https://cdn.test/a.png"})
    await resolver.optimize({"1:2": "https://cdn.test/a.png"})
    assert fetcher.fetched == ["https://cdn.test/a.png"]


async def test_data_url_is_described_without_download():
    fetcher = FakeFetcher()
    resolver = ImageResolver(FakeImageSource(), fetcher=fetcher, inspector=FakeInspector())
    placeholder = generate_placeholder()
    result = await resolver.optimize({"1:1": placeholder})
    assert fetcher.fetched == []
    assert result["1:1"].format == "svg"


async def test_optimize_without_fetcher_is_unoptimized():
    resolver = ImageResolver(FakeImageSource(), cache=TTLCache())
    result = await resolver.optimize({"1:1": "https://cdn.test/a.png"})
    assert result["1:1"].optimized is False


def test_batch_size_above_cap_is_rejected():
    with pytest.raises(ValueError):
        ImageProcessingOptions(batch_size=51)


class ThreadRecordingInspector(FakeInspector):
    def __init__(self) -> None:
        self.threads: list[int] = []

    def inspect(self, content: bytes, content_type: str | None = None) -> ImageInfo:
        self.threads.append(threading.get_ident())
        return super().inspect(content, content_type)

    def to_data_url(self, content, info, max_width, max_height, quality) -> str:
        self.threads.append(threading.get_ident())
        return super().to_data_url(content, info, max_width, max_height, quality)


async def test_image_decoding_runs_off_the_event_loop_thread():
    inspector = ThreadRecordingInspector()
    resolver = ImageResolver(FakeImageSource(), fetcher=FakeFetcher(), inspector=inspector)

    result = await resolver.optimize(
        {"1:1": "https://cdn.test/a.png"}, ImageProcessingOptions(inline_base64=True)
    )

    assert result["1:1"].base64.startswith("data:image/png;base64,")
    assert len(inspector.threads) == 2
    assert threading.get_ident() not in inspector.threads
