r"""

atr_montecarlo.core
===================

Core data model for ATR bound-touch Monte Carlo runs.

A run starts from a known price and adds one Gaussian move per day whose
standard deviation is the average true range (ATR). Each path is watched for
the first day it touches the band

.. math::

   [\,P_0 - R,\; P_0 + R\,]

where :math:`P_0` is the current price and :math:`R` the range half-width.

This module provides:

* :class:`~atr_montecarlo.core.SimulationParams` – validated, immutable run input.
* :class:`~atr_montecarlo.core.Bounds` – the derived upper/lower thresholds.
* :class:`~atr_montecarlo.core.PathOutcome` – per-path touch flags and days.
* :class:`~atr_montecarlo.core.SimulationResult` – aggregate handed to display code.
* :class:`~atr_montecarlo.core.SimulationError` and subclasses.

Hit probabilities
-----------------

Probabilities are reported as percentages of the simulated paths,

.. math::

   \hat p = 100 \cdot \frac{\#\{\text{paths touching the bound}\}}{N},

and are defined as ``0`` when :math:`N = 0`.
"""

from __future__ import annotations

import logging
import math
import numbers
import operator
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .stats_engine import TargetStats, ci_probability, target_stats

logger = logging.getLogger("atr_montecarlo")  # pragma: no cover
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class SimulationError(Exception):
    """Base class for errors raised by the simulation engine."""


class InvalidParametersError(SimulationError, ValueError):
    """Raised before any work is done when run parameters are unusable."""


class SimulationAborted(SimulationError):
    """Raised when a caller-supplied abort check stops a run in progress."""


def _as_real(name: str, value: Any, *, non_negative: bool = False) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidParametersError(f"{name} must be a number, got {value!r}") from e
    if isinstance(value, bool) or not math.isfinite(out):
        raise InvalidParametersError(f"{name} must be a finite number, got {value!r}")
    if non_negative and out < 0:
        raise InvalidParametersError(f"{name} must be non-negative, got {out}")
    return out


def _as_count(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidParametersError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, numbers.Integral):
        count = operator.index(value)
    else:
        try:
            as_float = float(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidParametersError(f"{name} must be an integer, got {value!r}") from e
        if not math.isfinite(as_float) or as_float != int(as_float):
            raise InvalidParametersError(f"{name} must be an integer, got {value!r}")
        count = int(as_float)
    if count < 0:
        raise InvalidParametersError(f"{name} must be non-negative, got {count}")
    return count


@dataclass(frozen=True, slots=True)
class Bounds:
    r"""
    Upper and lower price thresholds for one run.

    Attributes
    ----------
    upper : float
        :math:`P_0 + R`.
    lower : float
        :math:`P_0 - R`.
    """

    upper: float
    lower: float


@dataclass(frozen=True)
class SimulationParams:
    r"""
    Immutable input to one simulation run.

    Values are validated on construction; numeric fields are normalised to
    ``float`` and the counts to ``int``.

    Attributes
    ----------
    current_price : float
        Starting price :math:`P_0`; ``path[0]`` of every path.
    atr : float
        Standard deviation of one daily move. Must be non-negative.
    range_price : float
        Half-width :math:`R` of the target band. Must be non-negative.
    days : int
        Horizon in daily steps. ``0`` is accepted and yields one-point paths.
    iterations : int
        Number of paths. ``0`` is accepted and yields an all-zero result.

    Raises
    ------
    InvalidParametersError
        If a value is non-finite, negative where that is not allowed, or a
        count is not integral.

    Examples
    --------
    >>> p = SimulationParams(current_price=100, atr=5, range_price=15, days=15, iterations=1000)
    >>> p.bounds
    Bounds(upper=115.0, lower=85.0)
    """

    current_price: float
    atr: float
    range_price: float
    days: int
    iterations: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "current_price", _as_real("current_price", self.current_price))
        object.__setattr__(self, "atr", _as_real("atr", self.atr, non_negative=True))
        object.__setattr__(
            self, "range_price", _as_real("range_price", self.range_price, non_negative=True)
        )
        object.__setattr__(self, "days", _as_count("days", self.days))
        object.__setattr__(self, "iterations", _as_count("iterations", self.iterations))

    @property
    def bounds(self) -> Bounds:
        """Band edges derived from :attr:`current_price` and :attr:`range_price`."""
        return Bounds(
            upper=self.current_price + self.range_price,
            lower=self.current_price - self.range_price,
        )

    # Keys used by the form/display layer
    _MAPPING_ALIASES = {
        "currentPrice": "current_price",
        "rangePrice": "range_price",
    }

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SimulationParams":
        r"""
        Build parameters from a mapping with camelCase or snake_case keys.

        Parameters
        ----------
        values : mapping
            Must provide the price, ATR, range, days and iterations, e.g.
            ``{"currentPrice": 100, "atr": 5, "rangePrice": 15, "days": 15,
            "iterations": 100000}``.

        Raises
        ------
        InvalidParametersError
            If a field is missing or invalid.
        """
        kwargs = {cls._MAPPING_ALIASES.get(k, k): v for k, v in values.items()}
        required = ("current_price", "atr", "range_price", "days", "iterations")
        missing = [k for k in required if k not in kwargs]
        if missing:
            raise InvalidParametersError(f"Missing simulation parameters: {missing}")
        return cls(**{k: kwargs[k] for k in required})


@dataclass(frozen=True, slots=True)
class PathOutcome:
    """
    Touch flags for a single simulated path.

    Days are 1-indexed step counts; ``None`` when the bound was never touched.
    ``counted_combined`` is set once, on the first day either bound is touched.
    """

    upper_reached: bool = False
    day_upper_reached: Optional[int] = None
    lower_reached: bool = False
    day_lower_reached: Optional[int] = None
    counted_combined: bool = False

    @property
    def both_reached(self) -> bool:
        return self.upper_reached and self.lower_reached


_WHICH = ("upper", "lower", "combined")


@dataclass(frozen=True)
class SimulationResult:
    r"""
    Aggregate outcome of a bound-touch run.

    Attributes
    ----------
    success_paths_upper, success_paths_lower : int
        Paths that touched the upper / lower bound at least once.
    success_paths_combined : int
        Paths that touched either bound; a path touching both counts once.
    total_paths : int
        Number of simulated paths (the requested iterations).
    probability_upper, probability_lower, probability_combined : float
        The three counts as percentages of :attr:`total_paths`.
    paths : tuple of tuple of float
        Every generated path in generation order. A path that touched both
        bounds stops at the second touch and may be shorter than ``days + 1``.
    days_to_target_upper, days_to_target_lower : tuple of int
        First-touch day for each path that reached that bound, in
        generation order.
    upper_bound, lower_bound : float
        The band edges used for the run.
    execution_time : float
        Wall-clock seconds. Not part of equality.
    metadata : dict
        Freeform metadata (``"simulation_name"``, ``"backend"``,
        ``"seed_entropy"``, ...). Not part of equality.
    """

    success_paths_upper: int
    success_paths_lower: int
    success_paths_combined: int
    total_paths: int
    probability_upper: float
    probability_lower: float
    probability_combined: float
    paths: tuple[tuple[float, ...], ...]
    days_to_target_upper: tuple[int, ...]
    days_to_target_lower: tuple[int, ...]
    upper_bound: float
    lower_bound: float
    execution_time: float = field(default=0.0, compare=False)
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def upper_stats(self) -> TargetStats:
        """Time-to-target statistics for the upper bound."""
        return target_stats(self.days_to_target_upper)

    @property
    def lower_stats(self) -> TargetStats:
        """Time-to-target statistics for the lower bound."""
        return target_stats(self.days_to_target_lower)

    def probability_interval(self, which: str = "combined", confidence: float = 0.95) -> dict[str, float]:
        r"""
        Wilson score interval (in percent) for one of the hit probabilities.

        Parameters
        ----------
        which : {"upper", "lower", "combined"}, default ``"combined"``
            Which count to use.
        confidence : float, default ``0.95``
            Confidence level in :math:`(0, 1)`.

        Returns
        -------
        dict
            See :func:`~atr_montecarlo.stats_engine.ci_probability`.
        """
        if which not in _WHICH:
            raise ValueError(f"which must be one of {_WHICH}, got '{which}'")
        successes = getattr(self, f"success_paths_{which}")
        return ci_probability(successes, self.total_paths, confidence)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data export using the display layer's field names."""
        return {
            "probabilityUpper": self.probability_upper,
            "probabilityLower": self.probability_lower,
            "probabilityCombined": self.probability_combined,
            "paths": [list(p) for p in self.paths],
            "successPathsUpper": self.success_paths_upper,
            "successPathsLower": self.success_paths_lower,
            "successPathsCombined": self.success_paths_combined,
            "totalPaths": self.total_paths,
            "daysToTargetUpper": list(self.days_to_target_upper),
            "daysToTargetLower": list(self.days_to_target_lower),
            "upperBound": self.upper_bound,
            "lowerBound": self.lower_bound,
        }

    def result_to_string(self, confidence: float = 0.95) -> str:
        r"""
        Human-readable summary of the run.

        Parameters
        ----------
        confidence : float, default ``0.95``
            Confidence level for the displayed probability intervals.

        Returns
        -------
        str
            Multiline textual summary.
        """
        if simulation_name := self.metadata.get("simulation_name"):
            title = f"Results for simulation '{simulation_name}':"
        else:
            title = "Results for simulation:"
        lines = [
            "=" * 20 + " SIM RESULTS " + "=" * 20,
            title,
            f"  Paths simulated: {self.total_paths}",
            f"  Execution time: {self.execution_time:.2f} seconds",
            f"  Bounds: lower {self.lower_bound:.5f}, upper {self.upper_bound:.5f}",
        ]
        labels = {"upper": "Upper bound hit", "lower": "Lower bound hit", "combined": "Either bound hit"}
        for which in _WHICH:
            ci = self.probability_interval(which, confidence)
            count = getattr(self, f"success_paths_{which}")
            prob = getattr(self, f"probability_{which}")
            lines.append(
                f"  {labels[which]}: {count} paths ({prob:.2f}%, "
                f"{int(confidence * 100)}% CI: [{ci['low']:.2f}, {ci['high']:.2f}])"
            )
        for label, st in (("upper", self.upper_stats), ("lower", self.lower_stats)):
            lines.append(
                f"  Days to {label} target: min {st.min}, max {st.max}, "
                f"avg {st.avg:.2f}, median {st.median:.1f}"
            )
        if self.metadata:
            lines.append("Metadata:")
        for k, v in self.metadata.items():
            lines.append(f"    {k}: {v}")
        lines.append("=" * 20 + " END " + "=" * 20)
        return "\n".join(lines)


__all__ = [
    "Bounds",
    "SimulationParams",
    "PathOutcome",
    "SimulationResult",
    "SimulationError",
    "InvalidParametersError",
    "SimulationAborted",
]
