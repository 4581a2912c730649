r"""
atr_montecarlo.stats_engine
===========================
Summary statistics for bound-touch runs.

This module defines:

- :class:`TargetStats`: min / max / mean / median of a days-to-target list.
- :class:`FnMetric`: a frozen adapter that names a metric function.
- :class:`StatsEngine`: an orchestrator that evaluates one or more metrics.
- :func:`ci_probability`: a Wilson score interval for a hit probability.

Helpers :func:`percentage` and :func:`target_stats` are what the rest of the
package calls; the engine is exposed for callers that want extra metrics over
the same day lists.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

import numpy as np

from .utils import z_crit

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class TargetStats:
    r"""
    Descriptive statistics of first-touch days.

    Attributes
    ----------
    min, max : int
        Earliest and latest first-touch day.
    avg : float
        Arithmetic mean over the whole list.
    median : float
        Middle value of the sorted list; the mean of the two middle values
        for even lengths.

    Notes
    -----
    An empty list yields all zeros rather than an error.
    """

    min: int = 0
    max: int = 0
    avg: float = 0.0
    median: float = 0.0

    def as_dict(self) -> dict[str, float | int]:
        return {"min": self.min, "max": self.max, "avg": self.avg, "median": self.median}


@dataclass(frozen=True)
class FnMetric(Generic[T]):
    r"""
    Lightweight adapter that binds a human-readable ``name`` to a metric function.

    Parameters
    ----------
    name : str
        Key under which the metric result is stored in :meth:`StatsEngine.compute`.
    fn : callable
        Function with signature ``fn(x: ndarray) -> T``. ``x`` is sorted
        ascending and non-empty.
    doc : str, optional
        Short description displayed by UIs or docs.

    Examples
    --------
    >>> m = FnMetric("mean", lambda a: float(np.mean(a)))
    >>> m(np.array([1, 2, 3]))
    2.0
    """

    name: str
    fn: Callable[[np.ndarray], T]
    doc: str = ""

    def __call__(self, x: np.ndarray) -> T:
        return self.fn(x)


class StatsEngine:
    r"""
    Orchestrator that evaluates a set of metrics over a sample.

    Parameters
    ----------
    metrics : iterable of FnMetric
        Named metric callables.
    empty_value : Any, default ``0``
        Value reported for every metric when the sample is empty.

    Examples
    --------
    >>> eng = StatsEngine([FnMetric("max", lambda a: a[-1].item())])
    >>> eng.compute([3, 1, 2])
    {'max': 3}
    """

    def __init__(self, metrics: Iterable[FnMetric], empty_value: Any = 0):
        self._metrics = list(metrics)
        self.empty_value = empty_value

    def available(self) -> tuple[str, ...]:
        return tuple(m.name for m in self._metrics)

    def compute(self, x: Sequence[float], select: Sequence[str] | None = None) -> dict[str, Any]:
        r"""
        Evaluate registered metrics on ``x``.

        Parameters
        ----------
        x : sequence of numbers
            Sample values; sorted internally before the metrics run.
        select : sequence of str, optional
            If given, compute only the metrics with these names.

        Returns
        -------
        dict
            Mapping from metric name to computed value.
        """
        wanted = set(select) if select is not None else None
        metrics = [m for m in self._metrics if wanted is None or m.name in wanted]
        arr = np.sort(np.asarray(x))
        if arr.size == 0:
            logger.debug("Empty sample; reporting %r for %d metrics", self.empty_value, len(metrics))
            return {m.name: self.empty_value for m in metrics}
        return {m.name: m(arr) for m in metrics}


TARGET_ENGINE = StatsEngine(
    [
        FnMetric("min", lambda a: a[0].item(), "Earliest first-touch day"),
        FnMetric("max", lambda a: a[-1].item(), "Latest first-touch day"),
        FnMetric("avg", lambda a: float(np.mean(a)), "Mean first-touch day"),
        FnMetric("median", lambda a: float(np.median(a)), "Median first-touch day"),
    ]
)


def target_stats(days_to_target: Sequence[int]) -> TargetStats:
    r"""
    Min, max, mean and median of a days-to-target list.

    Parameters
    ----------
    days_to_target : sequence of int
        First-touch days, in any order. May be empty.

    Returns
    -------
    TargetStats

    Examples
    --------
    >>> target_stats([3, 1, 2])
    TargetStats(min=1, max=3, avg=2.0, median=2.0)
    >>> target_stats([1, 2, 3, 4]).median
    2.5
    >>> target_stats([])
    TargetStats(min=0, max=0, avg=0.0, median=0.0)
    """
    if len(days_to_target) == 0:
        return TargetStats()
    return TargetStats(**TARGET_ENGINE.compute(days_to_target))


def percentage(count: int, total: int) -> float:
    r"""
    ``100 * count / total``, or ``0.0`` when ``total == 0``.

    Examples
    --------
    >>> percentage(1, 4)
    25.0
    >>> percentage(0, 0)
    0.0
    """
    if total == 0:
        return 0.0
    return 100.0 * count / total


def ci_probability(successes: int, trials: int, confidence: float = 0.95) -> dict[str, float]:
    r"""
    Wilson score interval for a binomial proportion, in percent.

    With :math:`\hat p = k/n` and :math:`z = z_{1-\alpha/2}`,

    .. math::
       \frac{\hat p + \frac{z^2}{2n}}{1 + \frac{z^2}{n}}
       \pm \frac{z}{1 + \frac{z^2}{n}}\sqrt{\frac{\hat p(1-\hat p)}{n} + \frac{z^2}{4n^2}}.

    Parameters
    ----------
    successes : int
        Paths that touched the bound.
    trials : int
        Paths simulated.
    confidence : float, default ``0.95``
        Confidence level in :math:`(0, 1)`.

    Returns
    -------
    dict[str, float]
        ``confidence``, ``low``, ``high`` (percent), ``se`` (percent, the
        plain binomial standard error) and ``crit``. With zero trials the
        interval collapses to ``[0, 0]``.
    """
    crit = z_crit(confidence)
    if trials < 0 or not 0 <= successes <= trials:
        raise ValueError(f"need 0 <= successes <= trials, got {successes} / {trials}")
    if trials == 0:
        return {"confidence": confidence, "low": 0.0, "high": 0.0, "se": 0.0, "crit": crit}

    p = successes / trials
    z2 = crit * crit
    denom = 1.0 + z2 / trials
    center = (p + z2 / (2.0 * trials)) / denom
    half = crit * math.sqrt(p * (1.0 - p) / trials + z2 / (4.0 * trials * trials)) / denom
    return {
        "confidence": confidence,
        "low": 100.0 * max(0.0, center - half),
        "high": 100.0 * min(1.0, center + half),
        "se": 100.0 * math.sqrt(p * (1.0 - p) / trials),
        "crit": crit,
    }


__all__ = [
    "TargetStats",
    "FnMetric",
    "StatsEngine",
    "TARGET_ENGINE",
    "target_stats",
    "percentage",
    "ci_probability",
]
