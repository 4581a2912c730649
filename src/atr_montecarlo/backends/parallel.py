r"""
Parallel execution backends for bound-touch simulations.

This module provides:

Classes
    :class:`ThreadBackend` — Thread-based parallelism using ThreadPoolExecutor
    :class:`ProcessBackend` — Process-based parallelism using ProcessPoolExecutor

Both split ``[0, n_paths)`` into blocks, simulate each block on its own
:class:`numpy.random.Philox` stream spawned from the run's
:class:`~numpy.random.SeedSequence`, and merge the block accumulators in
block order. For a fixed seed and worker count the two backends therefore
produce identical results.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Callable

import numpy as np

from ..aggregation import PathAccumulator
from ..core import SimulationAborted
from .base import make_blocks, simulate_block, worker_run_chunk

if TYPE_CHECKING:
    from ..simulation import BoundTouchSimulation

logger = logging.getLogger(__name__)

__all__ = [
    "ThreadBackend",
    "ProcessBackend",
]

# Number of chunks per worker for load balancing
_CHUNKS_PER_WORKER = 8


def _fold(partials: list[PathAccumulator | None]) -> PathAccumulator:
    acc = PathAccumulator()
    for part in partials:
        acc.merge(part)
    return acc


class _BlockedBackend:
    def __init__(self, n_workers: int, chunks_per_worker: int = _CHUNKS_PER_WORKER):
        if n_workers <= 0:
            raise ValueError("n_workers must be positive")
        self.n_workers = n_workers
        self.chunks_per_worker = chunks_per_worker

    def _prepare_blocks(
        self, n_paths: int, seed_seq: np.random.SeedSequence | None
    ) -> tuple[list[tuple[int, int]], list[np.random.SeedSequence]]:
        """Prepare work blocks and independent random seeds."""
        block_size = max(1, n_paths // (self.n_workers * self.chunks_per_worker))
        blocks = make_blocks(n_paths, block_size)

        if seed_seq is not None:
            child_seqs = seed_seq.spawn(len(blocks))
        else:
            child_seqs = [np.random.SeedSequence() for _ in range(len(blocks))]

        return blocks, child_seqs


class ThreadBackend(_BlockedBackend):
    r"""
    Thread-based parallel execution backend.

    Uses :class:`concurrent.futures.ThreadPoolExecutor`. Path simulation is
    pure Python, so threads mainly help keep a caller responsive; use
    :class:`ProcessBackend` for CPU speed-up.

    Parameters
    ----------
    n_workers : int
        Number of worker threads to use.
    chunks_per_worker : int, default 8
        Number of work chunks per worker for load balancing.

    Examples
    --------
    >>> backend = ThreadBackend(n_workers=4)
    >>> acc = backend.run(sim, n_paths=100000, seed_seq=seed_seq, progress_callback=None)  # doctest: +SKIP
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
        Simulate paths in parallel using threads.

        ``abort_check`` is polled by every worker before each path.
        """
        blocks, child_seqs = self._prepare_blocks(n_paths, seed_seq)
        partials: list[PathAccumulator | None] = [None] * len(blocks)
        completed = 0
        max_workers = max(1, min(self.n_workers, len(blocks)))

        def _work(idx: int, a: int, b: int, ss: np.random.SeedSequence):
            rng = np.random.Generator(np.random.Philox(ss))
            return idx, simulate_block(sim, b - a, rng=rng, abort_check=abort_check)

        with ThreadPoolExecutor(max_workers=max_workers) as ex:
            futs = [
                ex.submit(_work, idx, a, b, ss)
                for idx, ((a, b), ss) in enumerate(zip(blocks, child_seqs))
            ]
            try:
                for f in as_completed(futs):
                    idx, part = f.result()
                    partials[idx] = part
                    completed += part.n_paths
                    if progress_callback:
                        progress_callback(completed, n_paths)
            except (KeyboardInterrupt, SimulationAborted):
                for f in futs:
                    f.cancel()
                raise

        return _fold(partials)


class ProcessBackend(_BlockedBackend):
    r"""
    Process-based parallel execution backend.

    Uses :class:`concurrent.futures.ProcessPoolExecutor` with spawn context.

    Parameters
    ----------
    n_workers : int
        Number of worker processes to use.
    chunks_per_worker : int, default 8
        Number of work chunks per worker for load balancing.

    Notes
    -----
    The simulation instance must be pickleable. ``abort_check`` is polled in
    the parent process each time a block finishes; pending blocks are then
    cancelled.

    Examples
    --------
    >>> backend = ProcessBackend(n_workers=4)
    >>> acc = backend.run(sim, n_paths=100000, seed_seq=seed_seq, progress_callback=None)  # doctest: +SKIP
    """

    def run(
        self,
        sim: "BoundTouchSimulation",
        n_paths: int,
        seed_seq: np.random.SeedSequence | None,
        progress_callback: Callable[[int, int], None] | None,
        abort_check: Callable[[], bool] | None = None,
    ) -> PathAccumulator:
        r"""Simulate paths in parallel using processes."""
        blocks, child_seqs = self._prepare_blocks(n_paths, seed_seq)
        partials: list[PathAccumulator | None] = [None] * len(blocks)
        completed = 0
        max_workers = max(1, min(self.n_workers, len(blocks)))

        with ProcessPoolExecutor(
            max_workers=max_workers,
            mp_context=mp.get_context("spawn"),
        ) as ex:
            futs = []
            for idx, ((i, j), ss) in enumerate(zip(blocks, child_seqs)):
                f = ex.submit(worker_run_chunk, sim, j - i, ss)
                f.blk_idx = idx  # type: ignore[attr-defined]
                futs.append(f)
            try:
                for f in as_completed(futs):
                    part = f.result()
                    partials[f.blk_idx] = part  # type: ignore[attr-defined]
                    completed += part.n_paths
                    if progress_callback:
                        progress_callback(completed, n_paths)
                    if abort_check is not None and completed < n_paths and abort_check():
                        raise SimulationAborted(f"Simulation aborted after {completed} of {n_paths} paths")
            except (KeyboardInterrupt, SimulationAborted):
                for f in futs:
                    f.cancel()
                raise

        return _fold(partials)
