"""Domain models for parsed design documents and pipeline results."""

from .analysis import ComponentAnalysis
from .component import ComponentProperty, ComponentVariant, ParsedComponent
from .document import (
    BorderStyle,
    BoundingBox,
    ComputedStyles,
    DocumentMetadata,
    LayoutProperties,
    ParsedDocument,
    ParsedElement,
    ParsedFrame,
    ParsedPage,
    ParsedStyle,
    Spacing,
)
from .image import ImageMap, OptimizedImage, OptimizedImageMap
from .processing import (
    BatchError,
    BatchProcessingResult,
    PerformanceMetrics,
    ProcessingMetadata,
    StageMetadata,
)

__all__ = [
    "BatchError",
    "BatchProcessingResult",
    "BorderStyle",
    "BoundingBox",
    "ComponentAnalysis",
    "ComponentProperty",
    "ComponentVariant",
    "ComputedStyles",
    "DocumentMetadata",
    "ImageMap",
    "LayoutProperties",
    "OptimizedImage",
    "OptimizedImageMap",
    "ParsedComponent",
    "ParsedDocument",
    "ParsedElement",
    "ParsedFrame",
    "ParsedPage",
    "ParsedStyle",
    "PerformanceMetrics",
    "ProcessingMetadata",
    "StageMetadata",
    "Spacing",
]
