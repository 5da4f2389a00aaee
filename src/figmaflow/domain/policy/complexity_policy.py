"""Policy for bucketing a document into a complexity category."""

from dataclasses import dataclass

from ..models.document import Complexity


@dataclass(frozen=True)
class ComplexityPolicy:
    """
    Score-based complexity buckets.

    ``score = total_nodes + total_components * component_weight``; scores
    below ``simple_below`` are simple, below ``medium_below`` medium,
    everything else complex.
    """

    component_weight: int = 5
    simple_below: int = 50
    medium_below: int = 200

    def __post_init__(self) -> None:
        """Validate complexity policy."""
        if self.component_weight < 0:
            raise ValueError(f"component_weight must be >= 0, got {self.component_weight}")
        if not (0 < self.simple_below <= self.medium_below):
            raise ValueError(
                f"thresholds must satisfy 0 < simple_below ({self.simple_below}) "
                f"<= medium_below ({self.medium_below})"
            )

    def score(self, total_nodes: int, total_components: int) -> int:
        return total_nodes + total_components * self.component_weight

    def classify(self, total_nodes: int, total_components: int) -> Complexity:
        score = self.score(total_nodes, total_components)
        if score < self.simple_below:
            return "simple"
        if score < self.medium_below:
            return "medium"
        return "complex"


DEFAULT_COMPLEXITY_POLICY = ComplexityPolicy()


def calculate_complexity(total_nodes: int, total_components: int) -> Complexity:
    """Classify using the default thresholds (simple < 50 <= medium < 200 <= complex)."""
    return DEFAULT_COMPLEXITY_POLICY.classify(total_nodes, total_components)
