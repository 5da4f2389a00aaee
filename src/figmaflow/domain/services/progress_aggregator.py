"""Weighted aggregation of per-stage progress into one 0-100 value."""

from __future__ import annotations

from typing import Iterable, Mapping

from ..policy.stage_weights import STAGE_WEIGHTS
from ..types import Stage


def weighted_progress(
    completed: Iterable[Stage],
    current: Stage | None = None,
    local: float = 0.0,
    weights: Mapping[Stage, float] = STAGE_WEIGHTS,
) -> float:
    """
    Cumulative progress in percent.

    ``sum(weights of completed stages) + weight(current) * local``, scaled to
    0-100 and clamped. Stages without a weight contribute nothing.
    """
    done = set(completed)
    total = sum(weights.get(stage, 0.0) for stage in done)
    if current is not None and current not in done:
        local = min(max(local, 0.0), 1.0)
        total += weights.get(current, 0.0) * local
    return min(max(total * 100.0, 0.0), 100.0)


class ProgressAggregator:
    """
    Tracks one pipeline run's progress.

    Skipped stages count as completed. The reported value never decreases
    within a run, and :meth:`finish` always reports exactly 100.
    """

    def __init__(self, weights: Mapping[Stage, float] = STAGE_WEIGHTS) -> None:
        total = sum(weights.values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Stage weights must sum to 1.0, got {total}")
        self._weights = weights
        self.reset()

    def reset(self) -> None:
        self._completed: set[Stage] = set()
        self._current: Stage | None = None
        self._local = 0.0
        self._percent = 0.0

    @property
    def percent(self) -> float:
        return self._percent

    @property
    def completed(self) -> frozenset[Stage]:
        return frozenset(self._completed)

    def start_stage(self, stage: Stage) -> float:
        self._current = stage
        self._local = 0.0
        return self._recompute()

    def update(self, stage: Stage, local: float) -> float:
        """Record fractional progress (0..1) within ``stage``."""
        self._current = stage
        self._local = local
        return self._recompute()

    def complete_stage(self, stage: Stage) -> float:
        self._completed.add(stage)
        if self._current == stage:
            self._current = None
            self._local = 0.0
        return self._recompute()

    def skip_stage(self, stage: Stage) -> float:
        """A stage that was not requested is treated as immediately complete."""
        return self.complete_stage(stage)

    def finish(self) -> float:
        self._completed.update(self._weights)
        self._current = None
        self._percent = 100.0
        return self._percent

    def _recompute(self) -> float:
        value = weighted_progress(self._completed, self._current, self._local, self._weights)
        self._percent = max(self._percent, value)
        return self._percent
