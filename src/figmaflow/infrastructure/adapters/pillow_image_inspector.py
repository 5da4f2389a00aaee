"""Image inspection and inlining with Pillow."""

from __future__ import annotations

import base64
import io
import logging

from filetype import guess
from PIL import Image

from ...application.ports.image_fetcher import ImageInfo

logger = logging.getLogger(__name__)

SAVE_FORMATS = {"jpg": "JPEG", "png": "PNG", "webp": "WEBP", "gif": "GIF"}
MIME_TYPES = {"jpg": "image/jpeg", "svg": "image/svg+xml"}


def format_from_content_type(content_type: str | None) -> str | None:
    """``image/jpeg; charset=...`` -> ``jpg``; None when not an image type."""
    if not content_type:
        return None
    parts = content_type.split(";")[0].strip().lower().split("/")
    if len(parts) != 2 or parts[0] != "image":
        return None
    ext = parts[1]
    if ext == "jpeg":
        return "jpg"
    if ext == "svg+xml":
        return "svg"
    return ext


def detect_image_format(data: bytes) -> str | None:
    """Detect image type from the payload signature; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    if data.lstrip()[:5] in (b"<svg ", b"<?xml"):
        return "svg"
    return None


class PillowImageInspector:
    """Reads image dimensions with Pillow and encodes downscaled data URLs."""

    def inspect(self, content: bytes, content_type: str | None = None) -> ImageInfo:
        fmt = format_from_content_type(content_type) or detect_image_format(content) or "unknown"
        if fmt == "svg":
            # vector payloads carry no raster size
            return ImageInfo(width=0, height=0, format=fmt)

        with Image.open(io.BytesIO(content)) as image:
            width, height = image.size
        return ImageInfo(width=width, height=height, format=fmt)

    def to_data_url(
        self,
        content: bytes,
        info: ImageInfo,
        max_width: int,
        max_height: int,
        quality: int,
    ) -> str:
        if info.format == "svg":
            encoded = base64.b64encode(content).decode("ascii")
            return f"data:{MIME_TYPES['svg']};base64,{encoded}"

        save_format = SAVE_FORMATS.get(info.format, "PNG")
        with Image.open(io.BytesIO(content)) as image:
            if image.width > max_width or image.height > max_height:
                image.thumbnail((max_width, max_height))
                logger.debug(f"Downscaled image to {image.width}x{image.height}")
            if save_format == "JPEG" and image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            buffer = io.BytesIO()
            image.save(buffer, format=save_format, quality=quality)

        ext = info.format if info.format in SAVE_FORMATS else "png"
        mime = MIME_TYPES.get(ext, f"image/{ext}")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:{mime};base64,{encoded}"
