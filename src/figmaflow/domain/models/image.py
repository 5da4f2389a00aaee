"""Image descriptors produced by the images stage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class OptimizedImage:
    """
    Resolved image with inspected metadata.

    ``optimized`` is False for descriptors built without a successful download
    (zero dimensions, unknown format).
    """

    url: str
    width: int = 0
    height: int = 0
    format: str = "unknown"
    size: int = 0
    optimized: bool = False
    base64: str | None = None

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0 or self.size < 0:
            raise ValueError("OptimizedImage dimensions and size must be >= 0")

    @classmethod
    def unoptimized(cls, url: str) -> OptimizedImage:
        """Fallback descriptor used when probing an image fails."""
        return cls(url=url)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "format": self.format,
            "size": self.size,
            "optimized": self.optimized,
        }
        if self.base64 is not None:
            data["base64"] = self.base64
        return data


ImageMap = dict[str, str]
OptimizedImageMap = dict[str, OptimizedImage]
