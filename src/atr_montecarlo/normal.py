r"""
Standard-normal draws via the Box-Muller transform.

For independent :math:`U_1, U_2 \sim \mathcal{U}(0, 1]`,

.. math::
   Z = \sqrt{-2 \ln U_1}\,\cos(2\pi U_2)

is standard normal. Only the cosine branch is used, so every normal draw
consumes two uniforms.
"""

from __future__ import annotations

import math
from typing import Protocol

__all__ = ["UniformSource", "NormalVariateGenerator", "box_muller"]

_TWO_PI = 2.0 * math.pi


class UniformSource(Protocol):
    """Anything with ``random() -> float`` in ``[0, 1)``.

    :class:`numpy.random.Generator` and :class:`random.Random` both qualify.
    """

    def random(self) -> float: ...


def box_muller(u1: float, u2: float) -> float:
    r"""
    Cosine branch of the Box-Muller transform.

    Parameters
    ----------
    u1 : float
        Uniform draw in :math:`(0, 1]`. Must not be ``0``.
    u2 : float
        Uniform draw in :math:`[0, 1)`.

    Examples
    --------
    >>> round(box_muller(math.exp(-0.5), 0.0), 12)
    1.0
    """
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(_TWO_PI * u2)


class NormalVariateGenerator:
    r"""
    I.i.d. :math:`\mathcal{N}(0, 1)` draws from an injected uniform source.

    Parameters
    ----------
    source : UniformSource
        Provider of uniforms in ``[0, 1)``. A first uniform of exactly ``0``
        is discarded and redrawn so that :math:`\ln 0` is never taken.

    Examples
    --------
    >>> import numpy as np
    >>> gen = NormalVariateGenerator(np.random.default_rng(0))
    >>> isinstance(gen.draw(), float)
    True
    """

    __slots__ = ("source",)

    def __init__(self, source: UniformSource):
        self.source = source

    def draw(self) -> float:
        u1 = self.source.random()
        while u1 <= 0.0:
            u1 = self.source.random()
        u2 = self.source.random()
        return box_muller(float(u1), float(u2))

    __call__ = draw
