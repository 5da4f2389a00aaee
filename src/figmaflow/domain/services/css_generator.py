"""Stylesheet text generation from a parsed document."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator

from ..models.document import (
    BorderStyle,
    ComputedStyles,
    ParsedDocument,
    ParsedElement,
    ParsedFrame,
    Spacing,
)
from .style_resolver import format_number

logger = logging.getLogger(__name__)

# Numeric fields rendered with a px unit.
PX_FIELDS = frozenset(
    {"font_size", "line_height", "letter_spacing", "gap", "top", "left", "width", "height"}
)


@dataclass(frozen=True)
class CssOptions:
    include_variables: bool = False
    minify: bool = False
    class_prefix: str = ""


def _px(value: float) -> str:
    return f"{format_number(value)}px"


def _spacing(spacing: Spacing) -> str:
    return " ".join(_px(v) for v in (spacing.top, spacing.right, spacing.bottom, spacing.left))


def css_property_name(field_name: str) -> str:
    """``background_color`` -> ``background-color``."""
    return field_name.replace("_", "-")


def css_value(field_name: str, value: Any) -> str:
    """Format one ComputedStyles value as CSS text, with shorthands for compound values."""
    if isinstance(value, Spacing):
        return _spacing(value)
    if isinstance(value, BorderStyle):
        return f"{_px(value.width)} {value.style} {value.color}"
    if field_name == "border_radius":
        if isinstance(value, tuple):
            return " ".join(_px(v) for v in value)
        return _px(value)
    if field_name == "box_shadow":
        return ", ".join(value)
    if field_name in PX_FIELDS and isinstance(value, (int, float)):
        return _px(value)
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def class_name(name: str, prefix: str = "") -> str:
    """Lower-cased slug of a frame name: non-alphanumerics collapse to single dashes."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return f"{prefix}{slug or 'frame'}"


def style_declarations(styles: ComputedStyles) -> list[str]:
    return [
        f"{css_property_name(field_name)}: {css_value(field_name, value)};"
        for field_name, value in styles.present().items()
    ]


def _walk(frame: ParsedFrame) -> Iterator[ParsedFrame | ParsedElement]:
    stack: list[ParsedFrame | ParsedElement] = [frame]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children or ()))


def collect_variables(document: ParsedDocument) -> list[tuple[str, str]]:
    """Design tokens as ``(name, value)`` pairs: colors, spacing, typography, shadows, radii."""
    colors: dict[str, None] = {}
    spacing: set[float] = set()
    families: dict[str, None] = {}
    sizes: set[float] = set()
    weights: set[float] = set()
    shadows: dict[str, None] = {}
    radii: set[float] = set()

    for frame in document.iter_frames():
        layout = frame.layout
        spacing.update(
            v
            for v in (
                layout.padding.top,
                layout.padding.right,
                layout.padding.bottom,
                layout.padding.left,
                layout.gap,
            )
            if v
        )
        if isinstance(frame.styles.border_radius, (int, float)):
            radii.add(frame.styles.border_radius)
        for shadow in frame.styles.box_shadow or ():
            shadows.setdefault(shadow)

        for node in _walk(frame):
            styles = node.styles
            for color in (styles.background_color, styles.color):
                if color:
                    colors.setdefault(color)
            if isinstance(node, ParsedElement) and node.type == "text":
                if styles.font_family:
                    families.setdefault(styles.font_family)
                if styles.font_size:
                    sizes.add(styles.font_size)
                if styles.font_weight:
                    weights.add(styles.font_weight)

    variables: list[tuple[str, str]] = []
    for index, color in enumerate(colors):
        if color == "#ffffff":
            name = "--color-white"
        elif color == "#000000":
            name = "--color-black"
        else:
            name = f"--color-{index}"
        variables.append((name, color))
    variables.extend((f"--spacing-{i}", _px(v)) for i, v in enumerate(sorted(spacing)))
    variables.extend((f"--font-family-{i}", f) for i, f in enumerate(families))
    variables.extend((f"--font-size-{i}", _px(v)) for i, v in enumerate(sorted(sizes)))
    variables.extend((f"--font-weight-{i}", format_number(v)) for i, v in enumerate(sorted(weights)))
    variables.extend((f"--shadow-{i}", s) for i, s in enumerate(shadows))
    variables.extend((f"--border-radius-{i}", _px(v)) for i, v in enumerate(sorted(radii)))
    return variables


def generate_frame_css(frame: ParsedFrame | ParsedElement, prefix: str = "") -> str:
    """One rule block for ``frame`` followed by blocks for its nested frame elements."""
    blocks: list[str] = []
    for node in _walk(frame):
        if isinstance(node, ParsedElement) and node.type != "frame":
            continue
        body = "".join(f"  {decl}\n" for decl in style_declarations(node.styles))
        blocks.append(f".{class_name(node.name, prefix)} {{\n{body}}}\n\n")
    return "".join(blocks)


def minify_css(css: str) -> str:
    css = re.sub(r"/\*[\s\S]*?\*/", "", css)
    css = re.sub(r"\s+", " ", css)
    css = re.sub(r";\s*}", "}", css)
    css = re.sub(r"\s*{\s*", "{", css)
    css = re.sub(r"\s*}\s*", "}", css)
    css = re.sub(r"\s*;\s*", ";", css)
    return css.strip()


def generate_document_css(document: ParsedDocument, options: CssOptions | None = None) -> str:
    """
    Generate stylesheet text for every frame of the document.

    Output is a header comment, an optional ``:root`` block of design tokens,
    then per page a comment followed by one rule block per frame (nested
    frame elements included). Property names are kebab-case and size,
    spacing and typography values carry px units.
    """
    options = options or CssOptions()
    parts = [f"/* Generated CSS for {document.name} */\n\n"]

    if options.include_variables:
        variables = collect_variables(document)
        if variables:
            lines = "".join(f"  {name}: {value};\n" for name, value in variables)
            parts.append(f":root {{\n{lines}}}\n\n")

    for page in document.pages:
        parts.append(f"/* Page: {page.name} */\n")
        for frame in page.frames:
            parts.append(generate_frame_css(frame, options.class_prefix))
        parts.append("\n")

    css = "".join(parts)
    if options.minify:
        css = minify_css(css)
    logger.debug(f"Generated {len(css)} characters of CSS", extra={"document_id": document.id})
    return css
