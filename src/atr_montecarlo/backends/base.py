r"""
Base classes and utilities for execution backends.

This module provides:

Protocol
    :class:`ExecutionBackend` — Interface for simulation execution strategies

Functions
    :func:`make_blocks` — Chunking helper for parallel work distribution
    :func:`simulate_block` — Simulate a run of paths into one accumulator
    :func:`worker_run_chunk` — Top-level worker for process-based parallelism
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional, Protocol

import numpy as np

from ..aggregation import PathAccumulator
from ..core import SimulationAborted

if TYPE_CHECKING:
    from ..normal import UniformSource
    from ..simulation import BoundTouchSimulation

__all__ = [
    "ExecutionBackend",
    "make_blocks",
    "simulate_block",
    "worker_run_chunk",
]


def make_blocks(n: int, block_size: int = 10_000) -> list[tuple[int, int]]:
    r"""
    Partition an integer range :math:`[0, n)` into half-open blocks :math:`(i, j)`.

    Parameters
    ----------
    n : int
        Total number of items.
    block_size : int, default: 10_000
        Target block length.

    Returns
    -------
    list of tuple[int, int]
        List of ``(i, j)`` index pairs covering ``[0, n)``.

    Examples
    --------
    >>> make_blocks(5, block_size=2)
    [(0, 2), (2, 4), (4, 5)]
    """
    blocks = []
    i = 0
    while i < n:
        j = min(i + block_size, n)
        blocks.append((i, j))
        i = j
    return blocks


def simulate_block(
    sim: "BoundTouchSimulation",
    n_paths: int,
    rng: Optional["UniformSource"] = None,
    abort_check: Optional[Callable[[], bool]] = None,
    on_path: Optional[Callable[[int], None]] = None,
) -> PathAccumulator:
    r"""
    Simulate ``n_paths`` consecutive paths into a fresh accumulator.

    Parameters
    ----------
    sim : BoundTouchSimulation
        Simulation whose :meth:`~BoundTouchSimulation.simulate_path` is called.
    n_paths : int
        Number of paths.
    rng : UniformSource, optional
        Stream for this block. ``None`` uses ``sim.rng``.
    abort_check : callable, optional
        Polled before every path; a truthy return raises :class:`SimulationAborted`.
    on_path : callable, optional
        Called with the number of paths done so far after each path.
    """
    acc = PathAccumulator()
    for k in range(n_paths):
        if abort_check is not None and abort_check():
            raise SimulationAborted(f"Simulation aborted after {k} of {n_paths} paths")
        path, outcome = sim.simulate_path(_rng=rng)
        acc.add(path, outcome)
        if on_path is not None:
            on_path(k + 1)
    return acc


def worker_run_chunk(
    sim: "BoundTouchSimulation",
    chunk_size: int,
    seed_seq: np.random.SeedSequence,
) -> PathAccumulator:
    r"""
    Simulate a batch of paths in a **separate worker**.

    Parameters
    ----------
    sim : BoundTouchSimulation
        Must be pickleable when used with a process backend.
    chunk_size : int
        Number of paths to compute in this worker.
    seed_seq : :class:`numpy.random.SeedSequence`
        Seed sequence for creating an **independent** RNG stream in the worker.

    Returns
    -------
    PathAccumulator
        Partial aggregate for the chunk.

    Notes
    -----
    Uses :class:`numpy.random.Philox` to spawn a deterministic, independent stream per
    worker chunk.
    """
    bitgen = np.random.Philox(seed_seq)
    local_rng = np.random.Generator(bitgen)
    return simulate_block(sim, chunk_size, rng=local_rng)


class ExecutionBackend(Protocol):
    r"""
    Protocol defining the interface for execution backends.

    Backends simulate the requested number of paths and return a single
    :class:`~atr_montecarlo.aggregation.PathAccumulator` whose paths are in a
    stable order for a given seed and backend configuration.
    """

    def run(
        self,
        sim: "BoundTouchSimulation",
        n_paths: int,
        seed_seq: np.random.SeedSequence | None,
        progress_callback: Callable[[int, int], None] | None,
        abort_check: Callable[[], bool] | None = None,
    ) -> PathAccumulator:
        r"""
        Simulate paths and return the merged accumulator.

        Parameters
        ----------
        sim : BoundTouchSimulation
            The simulation instance to run.
        n_paths : int
            Number of paths to simulate.
        seed_seq : SeedSequence or None
            Seed sequence for reproducible random streams.
        progress_callback : callable or None
            Optional callback ``f(completed, total)`` for progress reporting.
        abort_check : callable or None
            Optional zero-argument callable; truthy means stop.
        """
