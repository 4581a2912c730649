r"""
Sequential execution backend for bound-touch simulations.

This module provides a single-threaded execution strategy that simulates
paths one after another with optional progress reporting.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import numpy as np

from ..aggregation import PathAccumulator
from .base import simulate_block

if TYPE_CHECKING:
    from ..simulation import BoundTouchSimulation

__all__ = ["SequentialBackend"]


class SequentialBackend:
    r"""
    Sequential (single-threaded) execution backend.

    Draws every path from ``sim.rng`` on the calling thread, so a seeded
    simulation (or an injected uniform source) gives a reproducible run.

    Examples
    --------
    >>> backend = SequentialBackend()
    >>> acc = backend.run(sim, n_paths=1000, seed_seq=None, progress_callback=None)  # doctest: +SKIP
    """

    def run(
        self,
        sim: "BoundTouchSimulation",
        n_paths: int,
        _seed_seq: np.random.SeedSequence | None,
        progress_callback: Callable[[int, int], None] | None,
        abort_check: Callable[[], bool] | None = None,
    ) -> PathAccumulator:
        r"""
        Simulate paths sequentially on a single thread.

        Parameters
        ----------
        sim : BoundTouchSimulation
            The simulation instance to run.
        n_paths : int
            Number of paths to simulate.
        progress_callback : callable or None
            Optional callback ``f(completed, total)`` for progress reporting.
        abort_check : callable or None
            Polled before every path.

        Returns
        -------
        PathAccumulator
            Aggregate over all paths in generation order.
        """
        # Report progress every 1% of paths
        step = max(1, n_paths // 100)

        def _report(done: int) -> None:
            if (done % step == 0) or (done == n_paths):
                progress_callback(done, n_paths)

        return simulate_block(
            sim,
            n_paths,
            abort_check=abort_check,
            on_path=_report if progress_callback else None,
        )
