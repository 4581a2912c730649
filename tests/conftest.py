import math
import multiprocessing as mp

import pytest

from atr_montecarlo import BoundTouchSimulation, SimulationParams

# (u1, u2) pairs giving Box-Muller draws of +1 and -1
UP = (math.exp(-0.5), 0.0)
DOWN = (math.exp(-0.5), 0.5)


class StubSource:
    """Uniform source replaying a fixed list of values, cycling when exhausted."""
    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def random(self):
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


def moves(*steps):
    """Flatten (u1, u2) pairs into a StubSource."""
    return StubSource([u for step in steps for u in step])


@pytest.fixture
def up_step():
    """Uniform pair whose draw is +1."""
    return UP


@pytest.fixture
def down_step():
    """Uniform pair whose draw is -1."""
    return DOWN


@pytest.fixture
def stub_source():
    """Factory for a uniform source replaying fixed values."""
    return StubSource


@pytest.fixture
def scripted_moves():
    """Factory turning (u1, u2) pairs into a scripted uniform source."""
    return moves


@pytest.fixture(scope="session", autouse=True)
def _set_spawn_start_method():
    try:
        mp.set_start_method("spawn")
    except RuntimeError:
        pass  # already set


@pytest.fixture
def default_params():
    """Form defaults, with fewer iterations for test speed."""
    return SimulationParams(current_price=100.0, atr=5.0, range_price=15.0, days=15, iterations=2_000)


@pytest.fixture
def seeded_simulation(default_params):
    sim = BoundTouchSimulation(default_params, name="TestSim")
    sim.set_seed(42)
    return sim


@pytest.fixture
def stepping_params():
    """Price 100, moves of +/-10 per unit draw, band [85, 115]."""
    return SimulationParams(current_price=100.0, atr=10.0, range_price=15.0, days=10, iterations=1)
