"""Heuristic analysis of catalog components (category, complexity, reusability)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..models.analysis import (
    ComplexityFactor,
    ComponentAnalysis,
    ComponentCategory,
    ComponentComplexity,
    ComponentVariantAnalysis,
    DesignPattern,
    OptimizationSuggestion,
    ReusabilityScore,
)
from ..models.component import ComponentVariant, ParsedComponent
from ..models.document import ParsedDocument, ParsedElement, ParsedFrame

logger = logging.getLogger(__name__)

COMPLEXITY_WEIGHTS = {
    "child_count": 0.1,
    "nesting_depth": 0.2,
    "unique_styles": 0.15,
    "variants": 0.3,
}

# (name, keywords, weight)
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...], float], ...] = (
    ("buttons", ("button", "btn", "cta", "action", "submit"), 1.0),
    ("forms", ("input", "field", "form", "select", "checkbox", "radio"), 1.0),
    ("navigation", ("nav", "menu", "tab", "breadcrumb", "pagination"), 1.0),
    ("cards", ("card", "tile", "panel", "item"), 1.0),
    ("overlays", ("modal", "dialog", "popup", "tooltip", "dropdown"), 1.0),
    ("layout", ("container", "wrapper", "grid", "flex", "section"), 0.8),
    ("media", ("image", "video", "avatar", "icon", "logo"), 0.8),
    ("feedback", ("alert", "notification", "toast", "badge", "status"), 0.9),
    ("data", ("table", "list", "chart", "graph", "data"), 0.9),
)


@dataclass(frozen=True)
class PatternDefinition:
    name: str
    keywords: tuple[str, ...]
    structure: tuple[str, ...]


PATTERN_LIBRARY: tuple[PatternDefinition, ...] = (
    PatternDefinition("Card Pattern", ("card", "tile", "panel"), ("container", "header", "content", "footer")),
    PatternDefinition("Button Pattern", ("button", "btn", "cta", "action"), ("text", "icon")),
    PatternDefinition("Form Pattern", ("form", "input", "field", "select"), ("label", "input", "validation")),
    PatternDefinition("Navigation Pattern", ("nav", "menu", "tab", "breadcrumb"), ("items", "links", "indicators")),
    PatternDefinition(
        "Modal Pattern",
        ("modal", "dialog", "popup", "overlay"),
        ("backdrop", "container", "header", "content", "actions"),
    ),
)

ACCESSIBILITY_PROPS = ("aria-label", "role", "tabindex", "alt")
LARGE_ASSET_AREA = 1920 * 1080
_PASCAL_CASE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")


@dataclass(frozen=True)
class SubtreeMetrics:
    """Structural measurements of a component's parsed subtree."""

    child_count: int
    nesting_depth: int
    unique_styles: int
    has_large_assets: bool = False

    @classmethod
    def estimate(cls, component: ParsedComponent) -> SubtreeMetrics:
        """Fallback when the component's subtree is not part of the parsed document."""
        props = len(component.props)
        return cls(
            child_count=props * 2 + 5,
            nesting_depth=min(props + 2, 8),
            unique_styles=props * 3 + 10,
        )


def _find_node(document: ParsedDocument, node_id: str) -> ParsedFrame | ParsedElement | None:
    stack: list[ParsedFrame | ParsedElement] = list(document.iter_frames())
    while stack:
        node = stack.pop()
        if node.id == node_id:
            return node
        stack.extend(node.children or ())
    return None


def measure_subtree(node: ParsedFrame | ParsedElement) -> SubtreeMetrics:
    """Count descendants, the deepest nesting level and distinct style values."""
    child_count = 0
    max_depth = 0
    styles: set[tuple[str, str]] = set()
    large_assets = False

    stack: list[tuple[ParsedFrame | ParsedElement, int]] = [(node, 0)]
    while stack:
        current, depth = stack.pop()
        max_depth = max(max_depth, depth)
        styles.update((key, repr(value)) for key, value in current.styles.present().items())
        if isinstance(current, ParsedElement) and current.type == "image":
            if current.bounds.width * current.bounds.height > LARGE_ASSET_AREA:
                large_assets = True
        for child in current.children or ():
            child_count += 1
            stack.append((child, depth + 1))

    return SubtreeMetrics(
        child_count=child_count,
        nesting_depth=max_depth,
        unique_styles=len(styles),
        has_large_assets=large_assets,
    )


def categorize(component: ParsedComponent) -> ComponentCategory:
    """Weighted keyword match over name and description; ties keep declaration order."""
    text = f"{component.name.lower()} {component.description.lower()}"
    scores = [
        (name, sum(1 for keyword in keywords if keyword in text) * weight)
        for name, keywords, weight in CATEGORY_KEYWORDS
    ]
    scores.sort(key=lambda item: item[1], reverse=True)

    best_name, best_score = scores[0]
    primary = best_name if best_score > 0 else "general"
    secondary = tuple(name for name, score in scores[1:3] if score > 0)
    confidence = 0.3 if primary == "general" else min(best_score / 3, 1.0)
    return ComponentCategory(primary=primary, secondary=secondary, confidence=confidence)


def assess_complexity(component: ParsedComponent, metrics: SubtreeMetrics) -> ComponentComplexity:
    factors = (
        ComplexityFactor(
            factor="Child Elements",
            impact=min(metrics.child_count / 10, 1.0) * COMPLEXITY_WEIGHTS["child_count"],
            description=f"Component has {metrics.child_count} child elements",
        ),
        ComplexityFactor(
            factor="Nesting Depth",
            impact=min(metrics.nesting_depth / 5, 1.0) * COMPLEXITY_WEIGHTS["nesting_depth"],
            description=f"Maximum nesting depth of {metrics.nesting_depth} levels",
        ),
        ComplexityFactor(
            factor="Unique Styles",
            impact=min(metrics.unique_styles / 20, 1.0) * COMPLEXITY_WEIGHTS["unique_styles"],
            description=f"Uses {metrics.unique_styles} unique style properties",
        ),
        ComplexityFactor(
            factor="Variants",
            impact=min(len(component.variants) / 5, 1.0) * COMPLEXITY_WEIGHTS["variants"],
            description=f"Has {len(component.variants)} variants",
        ),
    )
    score = min(sum(f.impact for f in factors), 1.0)
    if score < 0.3:
        level = "simple"
    elif score < 0.7:
        level = "medium"
    else:
        level = "complex"
    return ComponentComplexity(score=score, level=level, factors=factors)


def has_good_naming(name: str) -> bool:
    """PascalCase and longer than three characters."""
    return bool(_PASCAL_CASE.match(name)) and len(name) > 3


def assess_reusability(
    component: ParsedComponent,
    complexity: ComponentComplexity,
) -> ReusabilityScore:
    reasons: list[str] = []
    score = 0.5

    if component.props:
        score += 0.2
        reasons.append(f"Has {len(component.props)} configurable properties")
    if len(component.variants) > 1:
        score += 0.15
        reasons.append(f"Supports {len(component.variants)} variants")
    if has_good_naming(component.name):
        score += 0.1
        reasons.append("Follows good naming conventions")
    if len(component.description) > 10:
        score += 0.05
        reasons.append("Has documentation")
    if complexity.level == "complex":
        score -= 0.2
        reasons.append("High complexity may limit reusability")

    score = max(0.0, min(1.0, score))
    if score < 0.4:
        level = "low"
    elif score < 0.7:
        level = "medium"
    else:
        level = "high"
    return ReusabilityScore(score=score, level=level, reasons=tuple(reasons))


def identify_patterns(component: ParsedComponent) -> tuple[DesignPattern, ...]:
    name = component.name.lower()
    description = component.description.lower()
    patterns = []
    for pattern in PATTERN_LIBRARY:
        matches = sum(1 for kw in pattern.keywords if kw in name or kw in description)
        if matches:
            patterns.append(
                DesignPattern(
                    name=pattern.name,
                    confidence=min(matches / len(pattern.keywords), 1.0),
                    description=f"Matches {matches} pattern keywords",
                    examples=pattern.structure,
                )
            )
    patterns.sort(key=lambda p: p.confidence, reverse=True)
    return tuple(patterns)


def _has_accessibility_props(component: ParsedComponent) -> bool:
    return any(
        marker in prop.name.lower() for prop in component.props for marker in ACCESSIBILITY_PROPS
    )


def generate_suggestions(
    component: ParsedComponent,
    complexity: ComponentComplexity,
    patterns: tuple[DesignPattern, ...],
    metrics: SubtreeMetrics,
) -> tuple[OptimizationSuggestion, ...]:
    suggestions = []
    if complexity.level == "complex":
        suggestions.append(
            OptimizationSuggestion(
                type="maintainability",
                priority="high",
                title="Consider Breaking Down Complex Component",
                description=(
                    "This component has high complexity. Consider splitting it into "
                    "smaller, more focused components."
                ),
                impact="Improved maintainability and reusability",
            )
        )
    if not _has_accessibility_props(component):
        suggestions.append(
            OptimizationSuggestion(
                type="accessibility",
                priority="medium",
                title="Add Accessibility Properties",
                description="Consider adding ARIA labels, roles, and other accessibility properties.",
                impact="Better accessibility for users with disabilities",
            )
        )
    if metrics.has_large_assets:
        suggestions.append(
            OptimizationSuggestion(
                type="performance",
                priority="medium",
                title="Optimize Large Assets",
                description=(
                    "Some assets in this component are large. Consider optimization or lazy loading."
                ),
                impact="Faster loading times and better performance",
            )
        )
    if not patterns:
        suggestions.append(
            OptimizationSuggestion(
                type="design",
                priority="low",
                title="Consider Design System Patterns",
                description=(
                    "This component doesn't match common design patterns. "
                    "Consider aligning with established patterns."
                ),
                impact="Better consistency and user experience",
            )
        )
    return tuple(suggestions)


def analyze_variant(variant: ComponentVariant) -> ComponentVariantAnalysis:
    return ComponentVariantAnalysis(
        name=variant.name,
        properties=dict(variant.properties),
        complexity=round(len(variant.properties) * 0.1, 4),
    )


def analyze_component(component: ParsedComponent, document: ParsedDocument) -> ComponentAnalysis:
    node = _find_node(document, component.id)
    metrics = measure_subtree(node) if node is not None else SubtreeMetrics.estimate(component)

    complexity = assess_complexity(component, metrics)
    patterns = identify_patterns(component)
    return ComponentAnalysis(
        id=component.id,
        name=component.name,
        category=categorize(component),
        complexity=complexity,
        reusability=assess_reusability(component, complexity),
        patterns=patterns,
        suggestions=generate_suggestions(component, complexity, patterns, metrics),
        variants=tuple(analyze_variant(v) for v in component.variants),
    )


def analyze_components(document: ParsedDocument) -> list[ComponentAnalysis]:
    """Analyze every component of the document, in catalog order."""
    logger.info(f"Analyzing {len(document.components)} components", extra={"document_id": document.id})
    analyses = [analyze_component(component, document) for component in document.components]
    logger.debug("Component analysis complete")
    return analyses
