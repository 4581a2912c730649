"""atr_montecarlo package public API."""

from .aggregation import PathAccumulator, combine_results
from .core import (
    Bounds,
    InvalidParametersError,
    PathOutcome,
    SimulationAborted,
    SimulationError,
    SimulationParams,
    SimulationResult,
)
from .normal import NormalVariateGenerator, box_muller
from .simulation import BoundTouchSimulation, run_simulation
from .stats_engine import (
    TARGET_ENGINE,
    FnMetric,
    StatsEngine,
    TargetStats,
    ci_probability,
    target_stats,
)
from .utils import z_crit

__all__ = [
    "SimulationParams",
    "Bounds",
    "PathOutcome",
    "SimulationResult",
    "SimulationError",
    "InvalidParametersError",
    "SimulationAborted",
    "NormalVariateGenerator",
    "box_muller",
    "BoundTouchSimulation",
    "run_simulation",
    "PathAccumulator",
    "combine_results",
    "TargetStats",
    "target_stats",
    "ci_probability",
    "StatsEngine",
    "FnMetric",
    "TARGET_ENGINE",
    "z_crit",
]

__version__ = "0.1.0"
