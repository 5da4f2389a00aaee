import base64
import io

import pytest
from PIL import Image

from figmaflow.application.ports.image_fetcher import ImageInfo
from figmaflow.infrastructure.adapters.pillow_image_inspector import (
    PillowImageInspector,
    detect_image_format,
    format_from_content_type,
)

SVG = b'<svg width="10" height="10" xmlns="http://www.w3.org/2000/svg"></svg>'


def _image_bytes(width: int, height: int, fmt: str = "PNG", mode: str = "RGBA") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color="red").save(buffer, format=fmt)
    return buffer.getvalue()


def _decode(data_url: str) -> Image.Image:
    _, encoded = data_url.split(",", 1)
    return Image.open(io.BytesIO(base64.b64decode(encoded)))


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("image/png", "png"),
        ("image/jpeg; charset=binary", "jpg"),
        ("image/svg+xml", "svg"),
        ("application/octet-stream", None),
        (None, None),
    ],
)
def test_format_from_content_type(content_type, expected):
    assert format_from_content_type(content_type) == expected


def test_detect_image_format():
    assert detect_image_format(_image_bytes(2, 2)) == "png"
    assert detect_image_format(_image_bytes(2, 2, "JPEG", "RGB")) == "jpg"
    assert detect_image_format(SVG) == "svg"
    assert detect_image_format(b"plain text") is None


def test_inspect_reads_dimensions():
    info = PillowImageInspector().inspect(_image_bytes(40, 30))
    assert info == ImageInfo(width=40, height=30, format="png")


def test_inspect_prefers_content_type():
    info = PillowImageInspector().inspect(_image_bytes(4, 4, "JPEG", "RGB"), "image/jpeg")
    assert info.format == "jpg"
    assert (info.width, info.height) == (4, 4)


def test_inspect_svg_has_no_raster_size():
    assert PillowImageInspector().inspect(SVG, "image/svg+xml") == ImageInfo(0, 0, "svg")


def test_to_data_url_downscales_to_bounds():
    inspector = PillowImageInspector()
    content = _image_bytes(400, 200)
    info = inspector.inspect(content)

    data_url = inspector.to_data_url(content, info, max_width=100, max_height=100, quality=80)

    assert data_url.startswith("data:image/png;base64,")
    assert _decode(data_url).size == (100, 50)


def test_to_data_url_keeps_small_images():
    inspector = PillowImageInspector()
    content = _image_bytes(20, 10)
    data_url = inspector.to_data_url(content, inspector.inspect(content), 100, 100, 80)
    assert _decode(data_url).size == (20, 10)


def test_to_data_url_converts_alpha_for_jpeg():
    inspector = PillowImageInspector()
    content = _image_bytes(10, 10)
    info = ImageInfo(width=10, height=10, format="jpg")

    data_url = inspector.to_data_url(content, info, 100, 100, 70)

    assert data_url.startswith("data:image/jpeg;base64,")
    assert _decode(data_url).mode == "RGB"


def test_svg_data_url_is_raw_payload():
    data_url = PillowImageInspector().to_data_url(SVG, ImageInfo(0, 0, "svg"), 10, 10, 80)
    assert data_url == "data:image/svg+xml;base64," + base64.b64encode(SVG).decode("ascii")
