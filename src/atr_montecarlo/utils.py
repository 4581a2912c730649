"""Small numerical helpers shared by the stats engine."""

from __future__ import annotations

from scipy.stats import norm

__all__ = ["z_crit"]


def z_crit(confidence: float) -> float:
    r"""
    Two-sided normal critical value :math:`z_{1-\alpha/2}`.

    Parameters
    ----------
    confidence : float
        Confidence level in :math:`(0, 1)`.

    Returns
    -------
    float

    Examples
    --------
    >>> round(z_crit(0.95), 4)
    1.96
    """
    if not 0.0 < confidence < 1.0:
        raise ValueError("confidence must be in the interval (0, 1)")
    return float(norm.ppf(1.0 - (1.0 - confidence) / 2.0))
