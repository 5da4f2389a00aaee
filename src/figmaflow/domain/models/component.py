"""Reusable component catalog entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

PropertyType = Literal["text", "boolean", "variant", "instance"]


@dataclass(frozen=True)
class ComponentProperty:
    """
    A configurable property declared on a component.

    Fields:
        name: Property name as declared in the design file
        type: Inferred value type (text, boolean, variant, instance)
        default_value: Declared default (or current value for instances)
        description: Optional property description
    """

    name: str
    type: PropertyType
    default_value: Any = None
    description: str | None = None


@dataclass(frozen=True)
class ComponentVariant:
    """One member of a component set, e.g. ``Size=Large, State=Hover``."""

    name: str
    properties: dict[str, str]
    node_id: str


@dataclass(frozen=True)
class ParsedComponent:
    """
    A reusable design element definition.

    Fields:
        id: Component node id
        name: Component name
        description: Free-text description (empty when absent)
        category: Inferred category (Buttons, Forms, Cards, Overlays, Navigation, General)
        props: Declared component properties
        variants: Sibling variants when the component belongs to a component set
    """

    id: str
    name: str
    description: str
    category: str
    props: tuple[ComponentProperty, ...] = ()
    variants: tuple[ComponentVariant, ...] = field(default_factory=tuple)
