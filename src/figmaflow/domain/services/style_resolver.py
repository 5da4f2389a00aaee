"""Deterministic conversion of raw visual properties into computed styles."""

from __future__ import annotations

import math
from typing import Any, Mapping

from ..models.document import (
    BorderStyle,
    BoundingBox,
    ComputedStyles,
    LayoutProperties,
    Spacing,
)

ALIGNMENT_MAP = {
    "MIN": "flex-start",
    "CENTER": "center",
    "MAX": "flex-end",
    "SPACE_BETWEEN": "space-between",
}

TEXT_ALIGN_MAP = {
    "LEFT": "left",
    "RIGHT": "right",
    "CENTER": "center",
    "JUSTIFIED": "justify",
}

DEFAULT_SHADOW_COLOR = "rgba(0,0,0,0.25)"
LINE_HEIGHT_RATIO = 1.2


def format_number(value: float) -> str:
    """Render a number the way CSS expects: ``4`` not ``4.0``, ``0.5`` as is."""
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _channel(value: Any) -> int:
    # round half up, matching browser colour rounding
    return int(math.floor(_as_float(value) * 255 + 0.5))


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _non_negative(value: Any) -> float:
    return max(0.0, _as_float(value))


def color_to_css(color: Mapping[str, Any], opacity: float | None = None) -> str:
    """
    Convert an ``{r, g, b, a}`` colour with channels in [0, 1] to CSS.

    The effective alpha is ``opacity`` when given, otherwise the colour's own
    alpha. Fully opaque colours become ``#rrggbb``; anything else becomes
    ``rgba(r, g, b, alpha)`` with 0-255 channels.
    """
    r = _channel(color.get("r", 0))
    g = _channel(color.get("g", 0))
    b = _channel(color.get("b", 0))
    alpha = opacity if opacity is not None else color.get("a", 1)
    alpha = _as_float(alpha, 1.0)

    if alpha < 1:
        return f"rgba({r}, {g}, {b}, {format_number(alpha)})"
    return f"#{r:02x}{g:02x}{b:02x}"


def map_alignment(alignment: str | None) -> str:
    """Map an auto-layout alignment enum to its flexbox keyword."""
    return ALIGNMENT_MAP.get(alignment or "", "flex-start")


def effect_to_box_shadow(effect: Mapping[str, Any]) -> str:
    """Format a drop-shadow effect as ``"{x}px {y}px {blur}px {spread}px {color}"``."""
    offset = effect.get("offset") or {}
    x = _as_float(offset.get("x"))
    y = _as_float(offset.get("y"))
    blur = _as_float(effect.get("radius"))
    spread = _as_float(effect.get("spread"))
    color = effect.get("color")
    color_value = color_to_css(color) if isinstance(color, Mapping) else DEFAULT_SHADOW_COLOR
    return (
        f"{format_number(x)}px {format_number(y)}px "
        f"{format_number(blur)}px {format_number(spread)}px {color_value}"
    )


def resolve_bounds(node: Mapping[str, Any]) -> BoundingBox:
    """Read ``absoluteBoundingBox``; nodes without geometry get an all-zero box."""
    box = node.get("absoluteBoundingBox")
    if not isinstance(box, Mapping):
        return BoundingBox()
    return BoundingBox(
        x=_as_float(box.get("x")),
        y=_as_float(box.get("y")),
        width=_non_negative(box.get("width")),
        height=_non_negative(box.get("height")),
    )


def _padding(node: Mapping[str, Any]) -> Spacing:
    return Spacing(
        top=_non_negative(node.get("paddingTop")),
        right=_non_negative(node.get("paddingRight")),
        bottom=_non_negative(node.get("paddingBottom")),
        left=_non_negative(node.get("paddingLeft")),
    )


def _lower_enum(value: Any, allowed: tuple[str, ...], default: str) -> str:
    if not isinstance(value, str):
        return default
    lowered = value.lower().replace("_", "-")
    return lowered if lowered in allowed else default


def resolve_layout(node: Mapping[str, Any]) -> LayoutProperties:
    """Derive auto-layout properties from the raw layout flags of a frame."""
    return LayoutProperties(
        mode=_lower_enum(node.get("layoutMode"), ("none", "horizontal", "vertical"), "none"),
        primary_axis_sizing=_lower_enum(
            node.get("primaryAxisSizingMode"), ("fixed", "auto"), "fixed"
        ),
        counter_axis_sizing=_lower_enum(
            node.get("counterAxisSizingMode"), ("fixed", "auto"), "fixed"
        ),
        primary_axis_alignment=_lower_enum(
            node.get("primaryAxisAlignItems"),
            ("min", "center", "max", "space-between"),
            "min",
        ),
        counter_axis_alignment=_lower_enum(
            node.get("counterAxisAlignItems"), ("min", "center", "max"), "min"
        ),
        padding=_padding(node),
        gap=_non_negative(node.get("itemSpacing")),
    )


def _first_solid(paints: Any) -> Mapping[str, Any] | None:
    if not isinstance(paints, list) or not paints:
        return None
    paint = paints[0]
    if isinstance(paint, Mapping) and paint.get("type") == "SOLID" and isinstance(
        paint.get("color"), Mapping
    ):
        return paint
    return None


def _paint_color(paint: Mapping[str, Any]) -> str:
    opacity = paint.get("opacity")
    return color_to_css(paint["color"], _as_float(opacity, 1.0) if opacity is not None else None)


def _corner_radius(node: Mapping[str, Any]) -> float | tuple[float, ...] | None:
    radius = node.get("cornerRadius")
    if isinstance(radius, (list, tuple)) and radius:
        return tuple(_non_negative(r) for r in radius)
    if radius:
        return _non_negative(radius)
    corners = node.get("rectangleCornerRadii")
    if isinstance(corners, (list, tuple)) and any(corners):
        return tuple(_non_negative(r) for r in corners)
    return None


def _box_shadows(node: Mapping[str, Any]) -> tuple[str, ...] | None:
    effects = node.get("effects")
    if not isinstance(effects, list) or not effects:
        return None
    shadows = tuple(
        effect_to_box_shadow(effect)
        for effect in effects
        if isinstance(effect, Mapping)
        and effect.get("type") == "DROP_SHADOW"
        and effect.get("visible") is not False
    )
    return shadows or None


def resolve_text_styles(style: Any) -> dict[str, Any]:
    """Typography fields of a text node's ``style`` record."""
    if not isinstance(style, Mapping):
        return {}
    resolved: dict[str, Any] = {}
    font_size = style.get("fontSize")
    if font_size is not None:
        resolved["font_size"] = _non_negative(font_size)
    if style.get("fontFamily"):
        resolved["font_family"] = str(style["fontFamily"])
    if style.get("fontWeight") is not None:
        resolved["font_weight"] = _non_negative(style["fontWeight"])

    line_height = _as_float(style.get("lineHeightPx"))
    if not line_height and font_size is not None:
        line_height = _non_negative(font_size) * LINE_HEIGHT_RATIO
    if line_height:
        resolved["line_height"] = _non_negative(line_height)

    # negative tracking is clamped to zero
    if style.get("letterSpacing") is not None:
        resolved["letter_spacing"] = _non_negative(style["letterSpacing"])

    align = style.get("textAlignHorizontal")
    if isinstance(align, str):
        resolved["text_align"] = TEXT_ALIGN_MAP.get(align, align.lower())
    return resolved


def resolve_styles(
    node: Mapping[str, Any],
    *,
    is_container: bool = False,
    is_text: bool = False,
) -> ComputedStyles:
    """
    Compute the style record of a raw node.

    Containers (frames, groups, components, instances) additionally resolve
    flex layout hints, padding and gap; text nodes use their first solid fill
    as foreground colour and resolve typography.
    """
    fields: dict[str, Any] = {}

    opacity = node.get("opacity")
    if opacity is not None and _as_float(opacity, 1.0) < 1:
        fields["opacity"] = _non_negative(opacity)

    if is_container and isinstance(node.get("backgroundColor"), Mapping):
        fields["background_color"] = color_to_css(node["backgroundColor"])

    fill = _first_solid(node.get("fills"))
    if fill is not None:
        if is_text:
            fields["color"] = _paint_color(fill)
        else:
            fields["background_color"] = _paint_color(fill)

    stroke = _first_solid(node.get("strokes"))
    stroke_weight = _as_float(node.get("strokeWeight"))
    if stroke is not None and stroke_weight:
        fields["border"] = BorderStyle(
            width=max(0.0, stroke_weight),
            style="solid",
            color=_paint_color(stroke),
        )

    radius = _corner_radius(node)
    if radius is not None:
        fields["border_radius"] = radius

    shadows = _box_shadows(node)
    if shadows is not None:
        fields["box_shadow"] = shadows

    if is_container:
        layout_mode = node.get("layoutMode")
        if layout_mode in ("HORIZONTAL", "VERTICAL"):
            fields["display"] = "flex"
            fields["flex_direction"] = "row" if layout_mode == "HORIZONTAL" else "column"
        if node.get("primaryAxisAlignItems"):
            fields["justify_content"] = map_alignment(node["primaryAxisAlignItems"])
        if node.get("counterAxisAlignItems"):
            fields["align_items"] = map_alignment(node["counterAxisAlignItems"])
        gap = _non_negative(node.get("itemSpacing"))
        if gap:
            fields["gap"] = gap
        padding = _padding(node)
        if not padding.is_zero():
            fields["padding"] = padding

    if is_text:
        fields.update(resolve_text_styles(node.get("style")))

    return ComputedStyles(**fields)
