"""Closed value types shared across the figmaflow domain."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class NodeKind(str, Enum):
    """
    Closed set of raw node categories the parser knows how to handle.

    Every raw ``type`` tag maps to exactly one member; anything not listed
    falls into ``UNSUPPORTED`` and is rendered as a generic frame element.
    """

    DOCUMENT = "document"
    PAGE = "page"
    CONTAINER = "container"
    TEXT = "text"
    VECTOR = "vector"
    COMPONENT = "component"
    INSTANCE = "instance"
    UNSUPPORTED = "unsupported"


CONTAINER_TYPES = frozenset({"FRAME", "GROUP", "SECTION", "COMPONENT_SET"})
VECTOR_TYPES = frozenset({"VECTOR", "STAR", "LINE", "ELLIPSE", "POLYGON", "RECTANGLE"})


def classify_node(node_type: str | None) -> NodeKind:
    """Map a raw node ``type`` tag onto its :class:`NodeKind`."""
    if node_type is None:
        return NodeKind.UNSUPPORTED
    if node_type == "DOCUMENT":
        return NodeKind.DOCUMENT
    if node_type == "CANVAS":
        return NodeKind.PAGE
    if node_type in CONTAINER_TYPES:
        return NodeKind.CONTAINER
    if node_type == "TEXT":
        return NodeKind.TEXT
    if node_type in VECTOR_TYPES:
        return NodeKind.VECTOR
    if node_type == "COMPONENT":
        return NodeKind.COMPONENT
    if node_type == "INSTANCE":
        return NodeKind.INSTANCE
    return NodeKind.UNSUPPORTED


class Stage(str, Enum):
    """Pipeline stages, in execution order."""

    FETCHING = "fetching"
    PARSING = "parsing"
    IMAGES = "images"
    ANALYSIS = "analysis"
    CSS_GENERATION = "css-generation"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ImageBatchKey:
    """Cache key for one resolved image batch."""

    document_id: str
    node_ids: tuple[str, ...]
    format: str
    scale: float

    @classmethod
    def create(
        cls,
        document_id: str,
        node_ids: list[str] | tuple[str, ...],
        format: str,
        scale: float,
    ) -> ImageBatchKey:
        """Build a key with node ids sorted so batch ordering does not matter."""
        return cls(
            document_id=document_id,
            node_ids=tuple(sorted(node_ids)),
            format=format,
            scale=float(scale),
        )


@dataclass(frozen=True)
class OptimizedImageKey:
    """Cache key for a per-image optimization result."""

    url: str
    max_width: int
    max_height: int
    quality: int
    inline_base64: bool


@dataclass(frozen=True)
class InlineImageKey:
    """Cache key for a base64 data-URL payload."""

    url: str
    max_width: int
    max_height: int
    quality: int


@dataclass(frozen=True)
class FileKey:
    """Cache key for a fetched file response."""

    file_key: str
    version: str | None = None
    node_ids: tuple[str, ...] = ()
