import numpy as np
import pytest

from atr_montecarlo.stats_engine import (
    TARGET_ENGINE,
    FnMetric,
    StatsEngine,
    TargetStats,
    ci_probability,
    percentage,
    target_stats,
)
from atr_montecarlo.utils import z_crit


class TestTargetStats:
    """Test days-to-target summaries"""

    def test_empty(self):
        """Test an empty list gives zeros"""
        st = target_stats([])
        assert st == TargetStats(min=0, max=0, avg=0, median=0)
        assert st.as_dict() == {"min": 0, "max": 0, "avg": 0, "median": 0}

    def test_odd_length(self):
        """Test statistics for an odd-length list"""
        st = target_stats([3, 1, 2])
        assert (st.min, st.max, st.avg, st.median) == (1, 3, 2.0, 2)

    def test_even_length(self):
        """Test the median of an even-length list"""
        st = target_stats([1, 2, 3, 4])
        assert (st.min, st.max, st.avg, st.median) == (1, 4, 2.5, 2.5)

    def test_accepts_tuple_and_keeps_int_extremes(self):
        """Test tuples work and extremes stay int"""
        st = target_stats((5, 5, 9))
        assert isinstance(st.min, int)
        assert st.max == 9
        assert st.avg == pytest.approx(19 / 3)


class TestStatsEngine:
    """Test the metric registry"""

    def test_available(self):
        """Test metric names in registration order"""
        assert TARGET_ENGINE.available() == ("min", "max", "avg", "median")

    def test_select(self):
        """Test computing a subset of metrics"""
        out = TARGET_ENGINE.compute([4, 2, 8], select=["max", "median"])
        assert out == {"max": 8, "median": 4.0}

    def test_custom_metric(self):
        """Test a user-defined metric and empty value"""
        eng = StatsEngine([FnMetric("spread", lambda a: a[-1].item() - a[0].item())], empty_value=None)
        assert eng.compute([7, 2, 5]) == {"spread": 5}
        assert eng.compute([]) == {"spread": None}


class TestProbabilityHelpers:
    """Percentages and Wilson intervals"""

    def test_percentage(self):
        """Test percentages and the zero-total guard"""
        assert percentage(1, 4) == 25.0
        assert percentage(0, 0) == 0.0

    def test_z_crit(self):
        """Test normal critical values"""
        assert z_crit(0.95) == pytest.approx(1.959964, abs=1e-6)
        with pytest.raises(ValueError, match="confidence"):
            z_crit(1.0)

    def test_interval_contains_estimate(self):
        """Test the Wilson interval brackets the estimate"""
        ci = ci_probability(30, 100)
        assert ci["low"] < 30.0 < ci["high"]
        assert 0.0 <= ci["low"] and ci["high"] <= 100.0
        assert ci["se"] == pytest.approx(100 * np.sqrt(0.3 * 0.7 / 100))

    def test_interval_edges(self):
        """Test intervals at 0% and 100%"""
        none = ci_probability(0, 50)
        assert none["low"] == pytest.approx(0.0, abs=1e-9)
        assert none["high"] > 0.0
        every = ci_probability(50, 50)
        assert every["high"] == pytest.approx(100.0)
        assert every["low"] < 100.0

    def test_interval_zero_trials(self):
        """Test zero trials gives a zero interval"""
        ci = ci_probability(0, 0)
        assert (ci["low"], ci["high"], ci["se"]) == (0.0, 0.0, 0.0)

    def test_wider_at_higher_confidence(self):
        """Test higher confidence widens the interval"""
        narrow = ci_probability(40, 200, confidence=0.90)
        wide = ci_probability(40, 200, confidence=0.99)
        assert wide["high"] - wide["low"] > narrow["high"] - narrow["low"]

    def test_rejects_inconsistent_counts(self):
        """Test successes above trials are rejected"""
        with pytest.raises(ValueError, match="successes"):
            ci_probability(5, 3)
