r"""
Path simulation and run orchestration.

This module provides:

Classes
    :class:`BoundTouchSimulation` — Simulates ATR-scaled Gaussian price paths
    and times the first touch of each bound.

Functions
    :func:`run_simulation` — One-call entry point for display code.

The simulation class handles:
- Reproducible seeding via :class:`numpy.random.SeedSequence`
- Sequential and parallel execution (delegated to backends)
- Folding per-path outcomes into a :class:`~atr_montecarlo.core.SimulationResult`

Each path evolves as

.. math::
   P_{k+1} = P_k + \mathrm{ATR}\cdot Z_k, \qquad Z_k \sim \mathcal{N}(0, 1),

for :math:`k = 0, \dots, \text{days} - 1`. Day :math:`k + 1` is a touch of the
upper bound when :math:`P_{k+1} \ge P_0 + R` and of the lower bound when
:math:`P_{k+1} \le P_0 - R`. The starting price (day 0) is never checked.

Example
-------
>>> from atr_montecarlo import SimulationParams, run_simulation
>>> params = SimulationParams(current_price=100, atr=5, range_price=15, days=15, iterations=1_000)
>>> result = run_simulation(params, seed=42)
>>> 0.0 <= result.probability_combined <= 100.0
True

See Also
--------
atr_montecarlo.backends
    Execution backends for sequential and parallel execution.
atr_montecarlo.aggregation
    The per-path fold and result merging.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import time
from typing import Any, Callable, Mapping, Optional, Union

import numpy as np

from .aggregation import PathAccumulator
from .backends import ProcessBackend, SequentialBackend, ThreadBackend
from .core import PathOutcome, SimulationParams, SimulationResult
from .normal import NormalVariateGenerator, UniformSource

logger = logging.getLogger(__name__)

__all__ = ["BoundTouchSimulation", "run_simulation"]


class BoundTouchSimulation:
    r"""
    Monte Carlo estimate of the probability of touching a price band.

    Parameters
    ----------
    params : SimulationParams or mapping
        Run input. A mapping is converted with
        :meth:`SimulationParams.from_mapping`.
    name : str, default ``"ATR Bound Touch"``
        Label stored in result metadata.

    Attributes
    ----------
    rng : UniformSource
        Source used by sequential runs. A :class:`numpy.random.Generator` by
        default; see :meth:`set_seed` and :meth:`set_source`.
    seed_seq : numpy.random.SeedSequence or None
        Root sequence parallel backends spawn per-block streams from.
    backend : str
        Default backend for :meth:`run`.

    Notes
    -----
    **Early stop.** Once a path has touched both bounds no further days are
    generated for it, so such paths are shorter than ``days + 1``.

    **Reproducibility.** Sequential runs draw from :attr:`rng`; parallel runs
    draw from Philox streams spawned from :attr:`seed_seq`. A seeded run is
    repeatable for the same backend (and, for parallel backends, the same
    worker count), but sequential and parallel runs of the same seed differ.
    """

    # Minimum paths before "auto" considers a parallel backend
    _PARALLEL_THRESHOLD = 20_000
    _VALID_BACKENDS = ("auto", "sequential", "thread", "process")

    @staticmethod
    def _rng(
        rng: Optional[UniformSource],
        default: Optional[UniformSource] = None,
    ) -> UniformSource:
        """Pick the per-block stream when given, else the simulation's own source."""
        return rng if rng is not None else default  # type: ignore[return-value]

    def __init__(
        self,
        params: Union[SimulationParams, Mapping[str, Any]],
        name: str = "ATR Bound Touch",
    ):
        if not isinstance(params, SimulationParams):
            params = SimulationParams.from_mapping(params)
        self.params = params
        self.bounds = params.bounds
        self.name = name
        self.seed_seq: Optional[np.random.SeedSequence] = None
        self.rng: UniformSource = np.random.default_rng()
        self.backend: str = "auto"
        self._custom_source = False

    def __getstate__(self):
        """Avoid pickling the RNG."""
        state = self.__dict__.copy()
        state["rng"] = None
        state["_custom_source"] = False
        return state

    def __setstate__(self, state):
        """Recreate the RNG after unpickling."""
        self.__dict__.update(state)
        if self.seed_seq is not None:
            self.rng = np.random.default_rng(self.seed_seq)
        else:
            self.rng = np.random.default_rng()

    def set_seed(self, seed: int | None) -> None:
        r"""
        Set the random seed for reproducible runs.

        Parameters
        ----------
        seed : int or None
            Seed for :class:`numpy.random.SeedSequence`. :data:`None` chooses entropy
            from the OS.

        Notes
        -----
        Parallel backends spawn independent child sequences per block via
        :meth:`numpy.random.SeedSequence.spawn`.
        """
        self.seed_seq = np.random.SeedSequence(seed)
        self.rng = np.random.default_rng(self.seed_seq)
        self._custom_source = False

    def set_source(self, source: UniformSource) -> None:
        """Draw sequential runs from ``source`` (anything with ``random()``); clears any seed."""
        self.rng = source
        self._custom_source = True
        self.seed_seq = None

    def simulate_path(self, _rng: Optional[UniformSource] = None) -> tuple[list[float], PathOutcome]:
        r"""
        Simulate one price path and time its first touch of each bound.

        Parameters
        ----------
        _rng : UniformSource, optional
            Stream supplied by a backend; defaults to :attr:`rng`.

        Returns
        -------
        tuple[list of float, PathOutcome]
            The path (``path[0]`` is the current price) and its touch flags.
        """
        normal = NormalVariateGenerator(self._rng(_rng, self.rng))
        p = self.params
        upper, lower = self.bounds.upper, self.bounds.lower

        path = [p.current_price]
        upper_reached = lower_reached = counted = False
        day_upper: Optional[int] = None
        day_lower: Optional[int] = None

        for day in range(p.days):
            new_price = path[-1] + normal.draw() * p.atr
            path.append(new_price)

            if not upper_reached and new_price >= upper:
                upper_reached = True
                day_upper = day + 1
                counted = True
            if not lower_reached and new_price <= lower:
                lower_reached = True
                day_lower = day + 1
                counted = True

            if upper_reached and lower_reached:
                break

        return path, PathOutcome(
            upper_reached=upper_reached,
            day_upper_reached=day_upper,
            lower_reached=lower_reached,
            day_lower_reached=day_lower,
            counted_combined=counted,
        )

    def _validate_run_params(self, n_workers: int | None, backend: str) -> None:
        """Validate parameters for run() method."""
        if n_workers is not None and n_workers <= 0:
            raise ValueError("n_workers must be positive")
        if backend not in self._VALID_BACKENDS:
            raise ValueError(f"backend must be one of {self._VALID_BACKENDS}, got '{backend}'")
        if self._custom_source and backend in ("thread", "process"):
            raise ValueError("A custom uniform source can only drive sequential runs")

    def run(
        self,
        *,
        backend: str | None = None,
        n_workers: int | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
        abort_check: Callable[[], bool] | None = None,
    ) -> SimulationResult:
        r"""
        Simulate ``params.iterations`` paths and aggregate them.

        Parameters
        ----------
        backend : {"auto", "sequential", "thread", "process"}, optional
            Execution backend; defaults to :attr:`backend`.

            - ``"auto"`` — Sequential for small jobs, processes for large ones
            - ``"sequential"`` — Single-threaded execution
            - ``"thread"`` — Thread pool (keeps a caller responsive)
            - ``"process"`` — Process pool (CPU speed-up)

        n_workers : int, optional
            Worker count for parallel backends. Defaults to CPU count.
        progress_callback : callable, optional
            A function ``f(completed: int, total: int)`` called periodically.
        abort_check : callable, optional
            Zero-argument callable polled between paths; when it returns a
            truthy value the run stops with
            :class:`~atr_montecarlo.core.SimulationAborted`.

        Returns
        -------
        SimulationResult

        Raises
        ------
        ValueError
            For an unknown backend or a non-positive ``n_workers``.
        SimulationAborted
            When ``abort_check`` fires.
        """
        backend = backend or self.backend
        self._validate_run_params(n_workers, backend)

        t0 = time.time()
        acc, resolved, workers = self._execute_with_backend(
            backend, n_workers, progress_callback, abort_check
        )
        exec_time = time.time() - t0

        meta = {
            "simulation_name": self.name,
            "timestamp": time.time(),
            "backend": resolved,
            "n_workers": workers,
            "seed_entropy": self.seed_seq.entropy if self.seed_seq else None,
        }
        return acc.to_result(self.bounds, execution_time=exec_time, metadata=meta)

    def _create_backend(
        self, backend: str, n_workers: int | None
    ) -> SequentialBackend | ThreadBackend | ProcessBackend:
        r"""
        Create and instantiate the appropriate execution backend.

        Parameters
        ----------
        backend : str
            Backend type: ``"sequential"``, ``"thread"``, or ``"process"``.
        n_workers : int or None
            Number of workers for parallel backends.
        """
        if backend == "sequential":
            return SequentialBackend()

        if n_workers is None:
            n_workers = mp.cpu_count()  # pragma: no cover

        if backend == "thread":
            return ThreadBackend(n_workers=n_workers)
        return ProcessBackend(n_workers=n_workers)

    def _execute_with_backend(
        self,
        backend: str,
        n_workers: int | None,
        progress_callback: Callable[[int, int], None] | None,
        abort_check: Callable[[], bool] | None,
    ) -> tuple[PathAccumulator, str, int]:
        r"""
        Run all paths on the chosen backend.

        Returns
        -------
        tuple[PathAccumulator, str, int]
            Merged accumulator, the backend actually used, and its worker count.

        Notes
        -----
        ``"auto"`` runs sequentially below ``_PARALLEL_THRESHOLD`` paths, with a
        single worker, or when a custom source is installed. Otherwise it uses
        processes: stepping a path is pure Python and holds the GIL.
        """
        n_paths = self.params.iterations
        if n_paths == 0:
            logger.debug("No iterations requested; returning an empty result")
        elif self.params.days == 0:
            logger.debug("Zero-day horizon; paths hold only the starting price")

        if backend == "auto":
            if n_workers is None:
                n_workers = mp.cpu_count()  # pragma: no cover
            if self._custom_source or n_workers <= 1 or n_paths < self._PARALLEL_THRESHOLD:
                backend = "sequential"
            else:
                backend = "process"

        if backend == "sequential":
            workers = 1
            logger.info("Simulating %d paths sequentially...", n_paths)
        else:
            workers = n_workers if n_workers is not None else mp.cpu_count()
            logger.info(
                "Simulating %d paths in parallel using %s backend with %d workers...",
                n_paths, backend, workers,
            )

        backend_instance = self._create_backend(backend, workers)
        acc = backend_instance.run(
            self, n_paths, self.seed_seq, progress_callback, abort_check=abort_check
        )
        return acc, backend, workers


def run_simulation(
    params: Union[SimulationParams, Mapping[str, Any]],
    *,
    seed: int | None = None,
    source: Optional[UniformSource] = None,
    name: str = "ATR Bound Touch",
    **run_kwargs: Any,
) -> SimulationResult:
    r"""
    Run one bound-touch simulation.

    Parameters
    ----------
    params : SimulationParams or mapping
        Run input (validated before any path is simulated).
    seed : int, optional
        Makes the run reproducible. Without it (and without ``source``) the
        run draws fresh OS entropy.
    source : UniformSource, optional
        Custom uniform source, e.g. :class:`random.Random`. Forces sequential
        execution.
    name : str, default ``"ATR Bound Touch"``
        Label stored in result metadata.
    **run_kwargs :
        Forwarded to :meth:`BoundTouchSimulation.run` (``backend``,
        ``n_workers``, ``progress_callback``, ``abort_check``).

    Returns
    -------
    SimulationResult

    Raises
    ------
    InvalidParametersError
        If ``params`` is invalid.
    """
    sim = BoundTouchSimulation(params, name=name)
    if seed is not None:
        sim.set_seed(seed)
    if source is not None:
        sim.set_source(source)
    return sim.run(**run_kwargs)
