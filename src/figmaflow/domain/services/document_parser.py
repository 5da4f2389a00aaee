"""Conversion of a raw design-document tree into a ParsedDocument."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, assert_never

from ..errors import ParseError
from ..models.document import (
    BoundingBox,
    ComputedStyles,
    DocumentMetadata,
    FrameVariant,
    LayoutProperties,
    ParsedDocument,
    ParsedElement,
    ParsedFrame,
    ParsedPage,
    ParsedStyle,
    StyleType,
)
from ..policy.complexity_policy import DEFAULT_COMPLEXITY_POLICY, ComplexityPolicy
from ..types import NodeKind, classify_node
from .component_extractor import extract_components
from .style_resolver import (
    color_to_css,
    format_number,
    resolve_bounds,
    resolve_layout,
    resolve_styles,
)

logger = logging.getLogger(__name__)

STYLE_TYPES: dict[str, StyleType] = {
    "FILL": "fill",
    "TEXT": "text",
    "EFFECT": "effect",
    "GRID": "grid",
}


@dataclass
class ParseContext:
    """
    Mutable state threaded through one parse.

    Each call to :meth:`DocumentParser.parse_document` owns a fresh context,
    so several documents can be parsed concurrently without sharing counters.
    """

    node_count: int = 0
    component_count: int = 0
    invalid_count: int = 0
    warnings: list[str] = field(default_factory=list)

    def visit(self) -> None:
        self.node_count += 1

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)

    def next_invalid_id(self) -> str:
        self.invalid_count += 1
        return f"invalid-{self.invalid_count}"


def _children(node: Any) -> list[Any]:
    if not isinstance(node, Mapping):
        return []
    children = node.get("children")
    return children if isinstance(children, list) else []


def _has_image_fill(node: Mapping[str, Any]) -> bool:
    fills = node.get("fills")
    if not isinstance(fills, list):
        return False
    return any(isinstance(f, Mapping) and f.get("type") == "IMAGE" for f in fills)


def svg_placeholder(node_type: str, bounds: BoundingBox) -> str:
    """Inline SVG box labelled with the node type, sized from its bounds."""
    width = format_number(bounds.width)
    height = format_number(bounds.height)
    return (
        f'<svg width="{width}" height="{height}" viewBox="0 0 {width} {height}">'
        '<rect width="100%" height="100%" fill="#f0f0f0" stroke="#ccc" stroke-width="1"/>'
        '<text x="50%" y="50%" text-anchor="middle" dy="0.3em" font-size="12" fill="#666">'
        f"{node_type}</text></svg>"
    )


class DocumentParser:
    """
    Single-pass walker producing the normalized document representation.

    Nodes are dispatched on :class:`NodeKind`. Unknown node types are recorded
    as warnings and rendered as generic frame elements; a malformed node never
    aborts the rest of the walk. Element subtrees are traversed with an
    explicit stack, so arbitrarily deep trees do not hit the recursion limit.
    """

    def __init__(
        self,
        complexity_policy: ComplexityPolicy = DEFAULT_COMPLEXITY_POLICY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.complexity_policy = complexity_policy
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def parse_document(
        self,
        root: Any,
        styles: Mapping[str, Any] | None = None,
    ) -> ParsedDocument:
        """
        Parse a raw root node.

        Args:
            root: ``DOCUMENT`` node (children are pages), a single ``CANVAS``
                page, or any other node, which is wrapped in one synthetic page
            styles: Optional ``styles`` map from the file response

        Returns:
            ParsedDocument whose ``metadata.total_nodes`` counts every raw node
            including the root

        Raises:
            ParseError: If the root itself is not a readable node
        """
        if not isinstance(root, Mapping):
            raise ParseError(f"root node must be an object, got {type(root).__name__}")
        if not root.get("type"):
            raise ParseError("root node has no type", node_id=root.get("id"))

        ctx = ParseContext()
        document_id = str(root.get("id", ""))
        document_name = str(root.get("name", ""))
        logger.info(f"Parsing document: {document_name}", extra={"document_id": document_id})

        kind = classify_node(root.get("type"))
        if kind is NodeKind.DOCUMENT:
            ctx.visit()
            pages = tuple(self._parse_page(page, ctx) for page in _children(root))
        elif kind is NodeKind.PAGE:
            pages = (self._parse_page(root, ctx),)
        else:
            pages = (
                ParsedPage(
                    id=document_id,
                    name=document_name,
                    frames=(self._parse_frame(root, ctx),),
                ),
            )

        components = tuple(extract_components(root))
        ctx.component_count = len(components)
        parsed_styles = self._parse_styles(styles, ctx)

        metadata = DocumentMetadata(
            total_nodes=ctx.node_count,
            total_components=ctx.component_count,
            total_styles=len(parsed_styles),
            complexity=self.complexity_policy.classify(ctx.node_count, ctx.component_count),
            version=str(root.get("version") or "1.0"),
            last_modified=self._clock(),
            warnings=tuple(ctx.warnings),
        )
        logger.info(
            f"Parsed {ctx.node_count} nodes, {ctx.component_count} components "
            f"({metadata.complexity})",
            extra={"document_id": document_id},
        )
        return ParsedDocument(
            id=document_id,
            name=document_name,
            pages=pages,
            components=components,
            styles=parsed_styles,
            metadata=metadata,
        )

    def _parse_page(self, page: Any, ctx: ParseContext) -> ParsedPage:
        ctx.visit()
        if not isinstance(page, Mapping):
            ctx.warn(f"Skipping malformed page entry of type {type(page).__name__}")
            return ParsedPage(id=ctx.next_invalid_id(), name="", frames=())

        background = page.get("backgroundColor")
        logger.debug(f"Parsing page: {page.get('name', '')}")
        return ParsedPage(
            id=str(page.get("id", "")),
            name=str(page.get("name", "")),
            frames=tuple(self._parse_frame(child, ctx) for child in _children(page)),
            background_color=color_to_css(background) if isinstance(background, Mapping) else None,
        )

    def _parse_frame(self, node: Any, ctx: ParseContext) -> ParsedFrame:
        ctx.visit()
        if not isinstance(node, Mapping):
            ctx.warn(f"Malformed top-level node of type {type(node).__name__} rendered as empty frame")
            return self._empty_frame(ctx.next_invalid_id())

        node_type = str(node.get("type", ""))
        kind = classify_node(node.get("type"))
        variant: FrameVariant
        is_container = True
        match kind:
            case NodeKind.CONTAINER:
                variant = "group" if node_type == "GROUP" else "frame"
            case NodeKind.COMPONENT:
                variant = "component"
            case NodeKind.INSTANCE:
                variant = "instance"
            case NodeKind.TEXT | NodeKind.VECTOR:
                variant = "frame"
                is_container = False
            case NodeKind.DOCUMENT | NodeKind.PAGE | NodeKind.UNSUPPORTED:
                ctx.warn(
                    f"Unsupported node type '{node_type}' ({node.get('id', '')}) rendered as frame"
                )
                variant = "frame"
            case _:
                assert_never(kind)

        children = self._parse_elements(_children(node), ctx)
        try:
            styles = resolve_styles(
                node, is_container=is_container, is_text=kind is NodeKind.TEXT
            )
            layout = resolve_layout(node)
            bounds = resolve_bounds(node)
        except (TypeError, ValueError) as e:
            ctx.warn(f"Invalid style data on node {node.get('id', '')}: {e}")
            return self._empty_frame(str(node.get("id", "")), str(node.get("name", "")), children)

        component_id = node.get("componentId")
        return ParsedFrame(
            id=str(node.get("id", "")),
            name=str(node.get("name", "")),
            type=variant,
            children=children,
            styles=styles,
            layout=layout,
            bounds=bounds,
            is_component=node_type == "COMPONENT",
            component_id=str(component_id) if component_id else None,
        )

    @staticmethod
    def _empty_frame(
        node_id: str,
        name: str = "",
        children: tuple[ParsedElement, ...] = (),
    ) -> ParsedFrame:
        return ParsedFrame(
            id=node_id,
            name=name,
            type="frame",
            children=children,
            styles=ComputedStyles(),
            layout=LayoutProperties(),
            bounds=BoundingBox(),
        )

    def _parse_elements(self, nodes: list[Any], ctx: ParseContext) -> tuple[ParsedElement, ...]:
        # Post-order walk: a node is built once all of its children are built.
        roots: list[ParsedElement] = []
        stack: list[tuple[Any, list[ParsedElement], list[ParsedElement] | None]] = [
            (node, roots, None) for node in reversed(nodes)
        ]
        while stack:
            node, sink, built = stack.pop()
            if built is None:
                ctx.visit()
                children = _children(node)
                if children:
                    collected: list[ParsedElement] = []
                    stack.append((node, sink, collected))
                    stack.extend((child, collected, None) for child in reversed(children))
                    continue
                sink.append(self._build_element(node, (), ctx))
            else:
                sink.append(self._build_element(node, tuple(built), ctx))
        return tuple(roots)

    def _build_element(
        self,
        node: Any,
        children: tuple[ParsedElement, ...],
        ctx: ParseContext,
    ) -> ParsedElement:
        if not isinstance(node, Mapping):
            ctx.warn(f"Malformed node of type {type(node).__name__} rendered as empty frame")
            return ParsedElement(
                id=ctx.next_invalid_id(),
                name="",
                type="frame",
                styles=ComputedStyles(),
                bounds=BoundingBox(),
                children=children,
            )

        node_id = str(node.get("id", ""))
        name = str(node.get("name", ""))
        node_type = str(node.get("type", ""))
        kind = classify_node(node.get("type"))
        try:
            bounds = resolve_bounds(node)
            match kind:
                case NodeKind.TEXT:
                    return ParsedElement(
                        id=node_id,
                        name=name,
                        type="text",
                        content=str(node.get("characters") or ""),
                        styles=resolve_styles(node, is_text=True),
                        bounds=bounds,
                    )
                case NodeKind.VECTOR:
                    if _has_image_fill(node):
                        return ParsedElement(
                            id=node_id,
                            name=name,
                            type="image",
                            styles=resolve_styles(node),
                            bounds=bounds,
                        )
                    return ParsedElement(
                        id=node_id,
                        name=name,
                        type="vector",
                        styles=resolve_styles(node),
                        bounds=bounds,
                        svg_content=svg_placeholder(node_type, bounds),
                    )
                case NodeKind.CONTAINER | NodeKind.COMPONENT | NodeKind.INSTANCE:
                    return ParsedElement(
                        id=node_id,
                        name=name,
                        type="frame",
                        styles=resolve_styles(node, is_container=True),
                        bounds=bounds,
                        children=children,
                    )
                case NodeKind.DOCUMENT | NodeKind.PAGE | NodeKind.UNSUPPORTED:
                    ctx.warn(f"Unsupported node type '{node_type}' ({node_id}) rendered as frame")
                    if not children and _has_image_fill(node):
                        return ParsedElement(
                            id=node_id,
                            name=name,
                            type="image",
                            styles=resolve_styles(node),
                            bounds=bounds,
                        )
                    return ParsedElement(
                        id=node_id,
                        name=name,
                        type="frame",
                        styles=resolve_styles(node),
                        bounds=bounds,
                        children=children,
                    )
                case _:
                    assert_never(kind)
        except (TypeError, ValueError) as e:
            ctx.warn(f"Invalid style data on node {node_id}: {e}")
            return ParsedElement(
                id=node_id,
                name=name,
                type="frame",
                styles=ComputedStyles(),
                bounds=BoundingBox(),
                children=children,
            )

    def _parse_styles(
        self,
        styles: Mapping[str, Any] | None,
        ctx: ParseContext,
    ) -> tuple[ParsedStyle, ...]:
        if not isinstance(styles, Mapping):
            return ()
        parsed: list[ParsedStyle] = []
        for style_id, meta in styles.items():
            if not isinstance(meta, Mapping):
                continue
            style_type = STYLE_TYPES.get(str(meta.get("styleType", "")).upper())
            if style_type is None:
                ctx.warn(f"Unknown style type '{meta.get('styleType')}' for style {style_id}")
                continue
            properties = {
                key: meta[key]
                for key in ("key", "description", "remote")
                if meta.get(key) not in (None, "")
            }
            parsed.append(
                ParsedStyle(
                    id=str(style_id),
                    name=str(meta.get("name", "")),
                    type=style_type,
                    properties=properties,
                )
            )
        return tuple(parsed)


_default_parser = DocumentParser()


def parse_document(root: Any, styles: Mapping[str, Any] | None = None) -> ParsedDocument:
    """Parse with the default complexity policy; see :meth:`DocumentParser.parse_document`."""
    return _default_parser.parse_document(root, styles)


def count_nodes(root: Any) -> int:
    """Number of raw nodes in the tree, the root included."""
    count = 0
    stack = [root]
    while stack:
        node = stack.pop()
        count += 1
        stack.extend(_children(node))
    return count


def extract_image_nodes(document: ParsedDocument) -> dict[str, ParsedElement]:
    """Elements that need a rendered image (image fills or an ``image_url``), by id in document order."""
    found: dict[str, ParsedElement] = {}
    for frame in document.iter_frames():
        stack = list(reversed(frame.children))
        while stack:
            element = stack.pop()
            if element.type == "image" or element.image_url:
                found.setdefault(element.id, element)
            stack.extend(reversed(element.children or ()))
    return found
