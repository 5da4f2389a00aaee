"""Normalized, style-resolved representation of a design document."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, is_dataclass
from datetime import datetime
from typing import Any, Iterable, Iterator, Literal

from .component import ParsedComponent

FrameVariant = Literal["frame", "component", "instance", "group"]
ElementVariant = Literal["text", "vector", "frame", "image"]
LayoutMode = Literal["none", "horizontal", "vertical"]
SizingMode = Literal["fixed", "auto"]
PrimaryAlignment = Literal["min", "center", "max", "space-between"]
CounterAlignment = Literal["min", "center", "max"]
Complexity = Literal["simple", "medium", "complex"]
StyleType = Literal["fill", "text", "effect", "grid"]


def compact_dict(value: Any) -> Any:
    """Recursively drop ``None`` entries so serialized output stays minimal."""
    if isinstance(value, dict):
        return {k: compact_dict(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [compact_dict(v) for v in value]
    return value


def _to_json(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return compact_dict(asdict(value))
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    return compact_dict(value)


def _field_items(obj: Any) -> Iterator[tuple[str, Any]]:
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is not None:
            yield f.name, value


def serialize_elements(elements: Iterable[ParsedElement]) -> list[dict[str, Any]]:
    """
    Serialize an element forest with an explicit stack.

    Element nesting is unbounded, so this never recurses per level; the output
    matches ``compact_dict(asdict(element))`` for each element.
    """
    result: list[dict[str, Any]] = []
    stack = [(element, result) for element in reversed(tuple(elements))]
    while stack:
        element, target = stack.pop()
        data: dict[str, Any] = {}
        for name, value in _field_items(element):
            if name == "children":
                children: list[dict[str, Any]] = []
                data[name] = children
                stack.extend((child, children) for child in reversed(value))
            else:
                data[name] = _to_json(value)
        target.append(data)
    return result


@dataclass(frozen=True)
class BoundingBox:
    """Absolute node geometry; width and height are never negative."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"BoundingBox dimensions must be >= 0, got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class Spacing:
    """Four-sided spacing record (padding or margin)."""

    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    def is_zero(self) -> bool:
        return not (self.top or self.right or self.bottom or self.left)


@dataclass(frozen=True)
class BorderStyle:
    width: float
    style: str
    color: str


@dataclass(frozen=True)
class ComputedStyles:
    """
    Resolved visual properties of a frame or element.

    Every field is optional; absent fields are ``None`` and omitted from
    serialized output and generated CSS. Numeric fields are non-negative,
    except the position offsets ``top`` and ``left``.
    """

    background_color: str | None = None
    color: str | None = None
    font_size: float | None = None
    font_family: str | None = None
    font_weight: float | None = None
    line_height: float | None = None
    letter_spacing: float | None = None
    text_align: str | None = None
    padding: Spacing | None = None
    margin: Spacing | None = None
    border_radius: float | tuple[float, ...] | None = None
    border: BorderStyle | None = None
    box_shadow: tuple[str, ...] | None = None
    opacity: float | None = None
    display: str | None = None
    flex_direction: str | None = None
    justify_content: str | None = None
    align_items: str | None = None
    gap: float | None = None
    width: float | str | None = None
    height: float | str | None = None
    position: str | None = None
    top: float | None = None
    left: float | None = None
    z_index: int | None = None

    def __post_init__(self) -> None:
        for name in (
            "font_size",
            "font_weight",
            "line_height",
            "letter_spacing",
            "opacity",
            "gap",
            "z_index",
        ):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, (int, float)) and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

    def present(self) -> dict[str, Any]:
        """Return only the fields that carry a value, in declaration order."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class LayoutProperties:
    """Auto-layout description derived from raw layout flags."""

    mode: LayoutMode = "none"
    primary_axis_sizing: SizingMode = "fixed"
    counter_axis_sizing: SizingMode = "fixed"
    primary_axis_alignment: PrimaryAlignment = "min"
    counter_axis_alignment: CounterAlignment = "min"
    padding: Spacing = field(default_factory=Spacing)
    gap: float = 0.0


@dataclass(frozen=True)
class ParsedElement:
    """
    A node nested inside a frame.

    Only the ``frame`` variant carries ``children``; text leaves carry
    ``content``; vector leaves carry ``svg_content``.
    """

    id: str
    name: str
    type: ElementVariant
    styles: ComputedStyles
    bounds: BoundingBox
    content: str | None = None
    children: tuple[ParsedElement, ...] | None = None
    image_url: str | None = None
    svg_content: str | None = None


@dataclass(frozen=True)
class ParsedFrame:
    """A top-level node of a page."""

    id: str
    name: str
    type: FrameVariant
    children: tuple[ParsedElement, ...]
    styles: ComputedStyles
    layout: LayoutProperties
    bounds: BoundingBox
    is_component: bool = False
    component_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            name: serialize_elements(value) if name == "children" else _to_json(value)
            for name, value in _field_items(self)
        }


@dataclass(frozen=True)
class ParsedPage:
    id: str
    name: str
    frames: tuple[ParsedFrame, ...]
    background_color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            name: [frame.to_dict() for frame in value] if name == "frames" else _to_json(value)
            for name, value in _field_items(self)
        }


@dataclass(frozen=True)
class ParsedStyle:
    """A named, shared style published in the file (fill, text, effect or grid)."""

    id: str
    name: str
    type: StyleType
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentMetadata:
    """
    Counters and complexity bucket for a parsed document.

    ``last_modified`` is the wall-clock parse time and is the only field that
    differs between two parses of the same input.
    """

    total_nodes: int
    total_components: int
    total_styles: int
    complexity: Complexity
    version: str = "1.0"
    last_modified: datetime | None = None
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.total_nodes < 0 or self.total_components < 0 or self.total_styles < 0:
            raise ValueError("DocumentMetadata counters must be >= 0")


@dataclass(frozen=True)
class ParsedDocument:
    id: str
    name: str
    pages: tuple[ParsedPage, ...]
    components: tuple[ParsedComponent, ...]
    styles: tuple[ParsedStyle, ...]
    metadata: DocumentMetadata

    def iter_frames(self):
        """Yield every top-level frame across all pages."""
        for page in self.pages:
            yield from page.frames

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict without empty optional fields."""
        data = {
            name: [page.to_dict() for page in value] if name == "pages" else _to_json(value)
            for name, value in _field_items(self)
        }
        last_modified = self.metadata.last_modified
        if last_modified is not None:
            data["metadata"]["last_modified"] = last_modified.isoformat()
        return data
