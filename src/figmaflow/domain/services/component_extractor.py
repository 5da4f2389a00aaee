"""Catalog extraction of reusable components from a raw document tree."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..models.component import (
    ComponentProperty,
    ComponentVariant,
    ParsedComponent,
    PropertyType,
)

logger = logging.getLogger(__name__)

# Ordered: the first matching keyword group wins.
CATEGORY_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("button",), "Buttons"),
    (("input", "field"), "Forms"),
    (("card",), "Cards"),
    (("modal", "dialog"), "Overlays"),
    (("nav", "menu"), "Navigation"),
)
DEFAULT_CATEGORY = "General"

DECLARED_KINDS: dict[str, PropertyType] = {
    "BOOLEAN": "boolean",
    "TEXT": "text",
    "VARIANT": "variant",
    "INSTANCE_SWAP": "instance",
}


def categorize_component(name: str) -> str:
    """Infer a category from the lower-cased component name."""
    lowered = name.lower()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def infer_property_type(definition: Mapping[str, Any]) -> PropertyType:
    """
    Infer a property's value type.

    The declared kind (``BOOLEAN``, ``TEXT``, ``VARIANT``, ``INSTANCE_SWAP``)
    wins; otherwise the Python type of the default value decides, and
    anything else is treated as text.
    """
    declared = DECLARED_KINDS.get(str(definition.get("type", "")).upper())
    if declared is not None:
        return declared
    default = _default_value(definition)
    if isinstance(default, bool):
        return "boolean"
    return "text"


def _default_value(definition: Mapping[str, Any]) -> Any:
    if "defaultValue" in definition:
        return definition["defaultValue"]
    return definition.get("value")


def extract_component_properties(node: Mapping[str, Any]) -> tuple[ComponentProperty, ...]:
    """Read the component property map; nodes without one yield no properties."""
    definitions = node.get("componentPropertyDefinitions") or node.get("componentProperties")
    if not isinstance(definitions, Mapping):
        return ()

    props: list[ComponentProperty] = []
    for key, definition in definitions.items():
        if not isinstance(definition, Mapping):
            continue
        description = definition.get("description")
        props.append(
            ComponentProperty(
                name=str(key),
                type=infer_property_type(definition),
                default_value=_default_value(definition),
                description=str(description) if description else None,
            )
        )
    return tuple(props)


def parse_variant_name(name: str) -> dict[str, str]:
    """Parse ``"Size=Large, State=Hover"`` into ``{"Size": "Large", "State": "Hover"}``."""
    properties: dict[str, str] = {}
    for part in name.split(","):
        key, sep, value = part.partition("=")
        if sep and key.strip():
            properties[key.strip()] = value.strip()
    return properties


def _variants_of(component_set: Mapping[str, Any]) -> tuple[ComponentVariant, ...]:
    variants = []
    for child in component_set.get("children") or ():
        if isinstance(child, Mapping) and child.get("type") == "COMPONENT":
            name = str(child.get("name", ""))
            variants.append(
                ComponentVariant(
                    name=name,
                    properties=parse_variant_name(name),
                    node_id=str(child.get("id", "")),
                )
            )
    return tuple(variants)


def extract_components(root: Mapping[str, Any]) -> list[ParsedComponent]:
    """
    Collect every ``COMPONENT`` node in the tree, in document order.

    Components that are children of a ``COMPONENT_SET`` carry the set's
    variant list. Extraction is best-effort: missing metadata yields empty
    descriptions and property lists rather than errors.
    """
    components: list[ParsedComponent] = []
    stack: list[tuple[Any, tuple[ComponentVariant, ...]]] = [(root, ())]

    while stack:
        node, inherited_variants = stack.pop()
        if not isinstance(node, Mapping):
            continue

        node_type = node.get("type")
        if node_type == "COMPONENT":
            name = str(node.get("name", ""))
            components.append(
                ParsedComponent(
                    id=str(node.get("id", "")),
                    name=name,
                    description=str(node.get("description") or ""),
                    category=categorize_component(name),
                    props=extract_component_properties(node),
                    variants=inherited_variants,
                )
            )

        child_variants = _variants_of(node) if node_type == "COMPONENT_SET" else ()
        children = node.get("children")
        if isinstance(children, list):
            for child in reversed(children):
                stack.append((child, child_variants))

    logger.debug(f"Extracted {len(components)} components")
    return components
