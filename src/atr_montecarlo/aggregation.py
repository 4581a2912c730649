r"""
Fold per-path outcomes into a :class:`~atr_montecarlo.core.SimulationResult`.

Each worker (or the sequential loop) owns one :class:`PathAccumulator`.
Accumulators merge by concatenation and count addition, so partial results
from independent blocks combine into the same aggregate as a single pass,
provided they are merged in block order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from .core import Bounds, PathOutcome, SimulationResult
from .stats_engine import percentage

logger = logging.getLogger(__name__)

__all__ = ["PathAccumulator", "combine_results"]


@dataclass
class PathAccumulator:
    """Running counts, day lists and paths for a contiguous run of paths."""

    success_paths_upper: int = 0
    success_paths_lower: int = 0
    success_paths_combined: int = 0
    early_stops: int = 0
    paths: list[tuple[float, ...]] = field(default_factory=list)
    days_to_target_upper: list[int] = field(default_factory=list)
    days_to_target_lower: list[int] = field(default_factory=list)

    @property
    def n_paths(self) -> int:
        return len(self.paths)

    def add(self, path: Sequence[float], outcome: PathOutcome) -> None:
        """Record one simulated path."""
        self.paths.append(tuple(path))
        if outcome.upper_reached:
            self.success_paths_upper += 1
            self.days_to_target_upper.append(outcome.day_upper_reached)
        if outcome.lower_reached:
            self.success_paths_lower += 1
            self.days_to_target_lower.append(outcome.day_lower_reached)
        if outcome.counted_combined:
            self.success_paths_combined += 1
        if outcome.both_reached:
            self.early_stops += 1

    def merge(self, other: "PathAccumulator") -> "PathAccumulator":
        """Append ``other`` after the paths already held; returns ``self``."""
        self.success_paths_upper += other.success_paths_upper
        self.success_paths_lower += other.success_paths_lower
        self.success_paths_combined += other.success_paths_combined
        self.early_stops += other.early_stops
        self.paths.extend(other.paths)
        self.days_to_target_upper.extend(other.days_to_target_upper)
        self.days_to_target_lower.extend(other.days_to_target_lower)
        return self

    def to_result(
        self,
        bounds: Bounds,
        *,
        execution_time: float = 0.0,
        metadata: Optional[dict[str, Any]] = None,
    ) -> SimulationResult:
        r"""
        Freeze the accumulated state into a :class:`SimulationResult`.

        Probabilities are computed against :attr:`n_paths`, which equals the
        requested iteration count once every block has been merged.
        """
        total = self.n_paths
        logger.debug(
            "Aggregated %d paths (%d stopped early after touching both bounds)",
            total, self.early_stops,
        )
        return SimulationResult(
            success_paths_upper=self.success_paths_upper,
            success_paths_lower=self.success_paths_lower,
            success_paths_combined=self.success_paths_combined,
            total_paths=total,
            probability_upper=percentage(self.success_paths_upper, total),
            probability_lower=percentage(self.success_paths_lower, total),
            probability_combined=percentage(self.success_paths_combined, total),
            paths=tuple(self.paths),
            days_to_target_upper=tuple(self.days_to_target_upper),
            days_to_target_lower=tuple(self.days_to_target_lower),
            upper_bound=bounds.upper,
            lower_bound=bounds.lower,
            execution_time=execution_time,
            metadata=dict(metadata) if metadata else {},
        )


def combine_results(*results: SimulationResult) -> SimulationResult:
    r"""
    Merge complete results produced by independent runs with the same bounds.

    Counts are summed, paths and day lists concatenated in argument order,
    and probabilities recomputed over the combined path count. Execution
    times are summed; metadata records how many results were merged.

    Raises
    ------
    ValueError
        If no results are given or their bounds differ.
    """
    if not results:
        raise ValueError("combine_results needs at least one result")
    first = results[0]
    acc = PathAccumulator()
    for r in results:
        if (r.upper_bound, r.lower_bound) != (first.upper_bound, first.lower_bound):
            raise ValueError(
                f"Cannot combine results with different bounds: "
                f"[{first.lower_bound}, {first.upper_bound}] vs [{r.lower_bound}, {r.upper_bound}]"
            )
        acc.merge(
            PathAccumulator(
                success_paths_upper=r.success_paths_upper,
                success_paths_lower=r.success_paths_lower,
                success_paths_combined=r.success_paths_combined,
                paths=list(r.paths),
                days_to_target_upper=list(r.days_to_target_upper),
                days_to_target_lower=list(r.days_to_target_lower),
            )
        )
    meta = dict(first.metadata)
    meta["combined_from"] = len(results)
    return acc.to_result(
        Bounds(upper=first.upper_bound, lower=first.lower_bound),
        execution_time=sum(r.execution_time for r in results),
        metadata=meta,
    )
