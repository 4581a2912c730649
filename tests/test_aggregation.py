import pytest

from atr_montecarlo import (
    Bounds,
    PathAccumulator,
    PathOutcome,
    SimulationParams,
    combine_results,
    run_simulation,
)

HIT_BOTH = PathOutcome(True, 2, True, 4, True)
HIT_UPPER = PathOutcome(True, 3, False, None, True)
MISS = PathOutcome()


class TestPathAccumulator:
    """Test the per-path fold"""

    def test_add(self):
        """Test counts, days and early stops after two paths"""
        acc = PathAccumulator()
        acc.add([100.0, 110.0, 120.0, 100.0, 80.0], HIT_BOTH)
        acc.add([100.0, 101.0], MISS)
        assert acc.n_paths == 2
        assert acc.success_paths_upper == 1
        assert acc.success_paths_lower == 1
        assert acc.success_paths_combined == 1
        assert acc.early_stops == 1
        assert acc.days_to_target_upper == [2]
        assert acc.days_to_target_lower == [4]
        assert acc.paths[1] == (100.0, 101.0)

    def test_merge_preserves_order(self):
        """Test merging appends paths in order"""
        left, right = PathAccumulator(), PathAccumulator()
        left.add([1.0], MISS)
        right.add([2.0], HIT_UPPER)
        right.add([3.0], HIT_BOTH)
        merged = left.merge(right)
        assert merged is left
        assert [p[0] for p in merged.paths] == [1.0, 2.0, 3.0]
        assert merged.days_to_target_upper == [3, 2]
        assert merged.success_paths_combined == 2

    def test_to_result(self):
        """Test freezing counts into percentages"""
        acc = PathAccumulator()
        for outcome in (HIT_BOTH, HIT_UPPER, MISS, MISS):
            acc.add([100.0], outcome)
        result = acc.to_result(Bounds(upper=115.0, lower=85.0), metadata={"k": 1})
        assert result.total_paths == 4
        assert result.probability_upper == 50.0
        assert result.probability_lower == 25.0
        assert result.probability_combined == 50.0
        assert result.upper_bound == 115.0
        assert result.metadata == {"k": 1}

    def test_empty_to_result(self):
        """Test an empty accumulator gives zero probabilities"""
        result = PathAccumulator().to_result(Bounds(upper=1.0, lower=-1.0))
        assert result.total_paths == 0
        assert result.probability_combined == 0.0


class TestCombineResults:
    """Merging whole results from independent runs"""

    @pytest.fixture
    def params(self):
        return SimulationParams(current_price=100, atr=5, range_price=10, days=10, iterations=300)

    def test_counts_sum_and_paths_concatenate(self, params):
        """Test counts add and paths concatenate across runs"""
        a = run_simulation(params, seed=1)
        b = run_simulation(params, seed=2)
        merged = combine_results(a, b)
        assert merged.total_paths == 600
        assert merged.success_paths_upper == a.success_paths_upper + b.success_paths_upper
        assert merged.success_paths_combined == a.success_paths_combined + b.success_paths_combined
        assert merged.paths == a.paths + b.paths
        assert merged.days_to_target_lower == a.days_to_target_lower + b.days_to_target_lower
        assert merged.probability_combined == pytest.approx(
            100 * merged.success_paths_combined / 600
        )
        assert merged.metadata["combined_from"] == 2

    def test_bounds_must_match(self, params):
        """Test results with different bounds are rejected"""
        other = SimulationParams(current_price=100, atr=5, range_price=20, days=10, iterations=10)
        with pytest.raises(ValueError, match="different bounds"):
            combine_results(run_simulation(params, seed=1), run_simulation(other, seed=1))

    def test_requires_input(self):
        """Test merging nothing is an error"""
        with pytest.raises(ValueError, match="at least one"):
            combine_results()
