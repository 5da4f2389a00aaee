"""Component analysis records produced by the analysis stage."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

Level = Literal["simple", "medium", "complex"]
ReusabilityLevel = Literal["low", "medium", "high"]
SuggestionType = Literal["performance", "accessibility", "maintainability", "design"]
Priority = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class ComponentCategory:
    primary: str
    secondary: tuple[str, ...]
    confidence: float


@dataclass(frozen=True)
class ComplexityFactor:
    factor: str
    impact: float
    description: str


@dataclass(frozen=True)
class ComponentComplexity:
    score: float
    level: Level
    factors: tuple[ComplexityFactor, ...]


@dataclass(frozen=True)
class ReusabilityScore:
    score: float
    level: ReusabilityLevel
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class DesignPattern:
    name: str
    confidence: float
    description: str
    examples: tuple[str, ...]


@dataclass(frozen=True)
class OptimizationSuggestion:
    type: SuggestionType
    priority: Priority
    title: str
    description: str
    impact: str


@dataclass(frozen=True)
class ComponentVariantAnalysis:
    name: str
    properties: dict[str, str]
    complexity: float


@dataclass(frozen=True)
class ComponentAnalysis:
    """Heuristic assessment of one catalog component."""

    id: str
    name: str
    category: ComponentCategory
    complexity: ComponentComplexity
    reusability: ReusabilityScore
    patterns: tuple[DesignPattern, ...]
    suggestions: tuple[OptimizationSuggestion, ...]
    variants: tuple[ComponentVariantAnalysis, ...]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
