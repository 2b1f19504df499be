"""
Small numeric helpers shared by the water, growth and shadow calculations.
Everything here must stay well-defined at degenerate inputs (zero ranges, NaN).
"""

import math
import numpy as np


def clamp(value, lo, hi):
    # works for scalars and arrays alike
    return np.minimum(np.maximum(value, lo), hi)


def clamp01(value):
    return float(clamp(value, 0.0, 1.0))


def is_number(value):
    # None, bools, NaN and infinities are not usable model inputs
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def safe_ratio(numerator, denominator, default=0.0):
    if not is_number(numerator) or not is_number(denominator) or denominator <= 0:
        return default
    return numerator / denominator


def linear_ramp(value, lo, hi):
    """
    0 at/below ``lo``, 1 at/above ``hi``, linear in between.
    A collapsed range (lo >= hi) degenerates to a step at ``lo``.
    """
    if value <= lo:
        return 0.0
    if value >= hi:
        return 1.0
    return (value - lo) / max(1e-6, hi - lo)
