import math
import random

import numpy as np
import pytest

from atr_montecarlo import NormalVariateGenerator, box_muller


class TestBoxMuller:
    """Test the cosine-branch transform"""

    def test_unit_draws(self, up_step, down_step):
        """Test the scripted pairs map to +1 and -1"""
        assert box_muller(*up_step) == pytest.approx(1.0)
        assert box_muller(*down_step) == pytest.approx(-1.0)

    def test_quarter_turn_is_zero(self):
        """Test cos(pi/2) gives a zero draw"""
        assert box_muller(0.3, 0.25) == pytest.approx(0.0, abs=1e-12)

    def test_u1_one_gives_zero(self):
        """Test u1 = 1 gives a zero radius"""
        assert box_muller(1.0, 0.1) == 0.0


class TestNormalVariateGenerator:
    """Test draws from an injected uniform source"""

    def test_consumes_two_uniforms_per_draw(self, stub_source, up_step, down_step):
        """Test each draw reads two uniforms"""
        src = stub_source([*up_step, *down_step])
        gen = NormalVariateGenerator(src)
        assert gen.draw() == pytest.approx(1.0)
        assert gen.draw() == pytest.approx(-1.0)
        assert src.calls == 4

    def test_zero_u1_is_redrawn(self, stub_source, up_step):
        """Test a zero first uniform is redrawn instead of taking log(0)"""
        src = stub_source([0.0, 0.0, *up_step])
        z = NormalVariateGenerator(src).draw()
        assert math.isfinite(z)
        assert z == pytest.approx(1.0)
        assert src.calls == 4

    def test_callable_alias(self, stub_source, down_step):
        """Test calling the generator draws"""
        gen = NormalVariateGenerator(stub_source(list(down_step)))
        assert gen() == pytest.approx(-1.0)

    def test_standard_normal_moments(self):
        """Test sample mean and std are close to 0 and 1"""
        gen = NormalVariateGenerator(np.random.default_rng(2024))
        draws = np.array([gen.draw() for _ in range(20_000)])
        assert abs(draws.mean()) < 0.05
        assert draws.std(ddof=1) == pytest.approx(1.0, abs=0.05)

    def test_accepts_stdlib_random(self):
        """Test random.Random works as a source"""
        a = NormalVariateGenerator(random.Random(7))
        b = NormalVariateGenerator(random.Random(7))
        assert [a.draw() for _ in range(5)] == [b.draw() for _ in range(5)]
