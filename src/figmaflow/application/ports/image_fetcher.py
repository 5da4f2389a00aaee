"""Ports for downloading and inspecting resolved images."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ImageFetchResult:
    url: str
    content: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class ImageInfo:
    """Decoded properties of an image payload."""

    width: int
    height: int
    format: str


@runtime_checkable
class ImageFetcherPort(Protocol):
    async def fetch(self, url: str) -> ImageFetchResult:
        """
        Download an image with a single GET.

        Raises:
            Exception: On transport failure or non-success status
        """
        ...


@runtime_checkable
class ImageInspectorPort(Protocol):
    def inspect(self, content: bytes, content_type: str | None = None) -> ImageInfo:
        """
        Read dimensions and format of an image payload.

        Format comes from ``content_type`` when it names one, otherwise from
        the payload signature; ``"unknown"`` when neither identifies it.
        """
        ...

    def to_data_url(
        self,
        content: bytes,
        info: ImageInfo,
        max_width: int,
        max_height: int,
        quality: int,
    ) -> str:
        """Encode the payload as a base64 data URL, downscaled to fit max_width x max_height."""
        ...
