"""
Two-proportion z-test and sample-size estimation for experiments.
"""

import math
from typing import Optional, Tuple


def normal_cdf(x: float) -> float:
    """Standard normal CDF (Abramowitz & Stegun 26.2.17 polynomial approximation)."""
    t = 1 / (1 + 0.2316419 * abs(x))
    d = 0.3989423 * math.exp(-x * x / 2)
    prob = d * t * (0.3193815 + t * (-0.3565638 + t * (1.781478 + t * (-1.821256 + t * 1.330274))))
    return 1 - prob if x > 0 else prob


def two_proportion_z_test(p1: float, n1: int, p2: float, n2: int) -> Optional[Tuple[float, float]]:
    """
    Pooled two-proportion z-test of p2 against p1.
    Returns (z, two-tailed p-value), or None when the pooled variance is not
    positive (no variance, or proportions outside [0, 1]).
    """
    p_pool = (p1 * n1 + p2 * n2) / (n1 + n2)
    variance = p_pool * (1 - p_pool) * (1 / n1 + 1 / n2)
    if variance <= 0:
        return None
    se = math.sqrt(variance)
    z = (p2 - p1) / se
    p_value = min(1.0, 2 * (1 - normal_cdf(abs(z))))
    return z, p_value


def required_sample_size(p1: float, p2: float, z_alpha: float, z_beta: float) -> int:
    """Per-variant n for detecting p1 -> p2 with the given critical values."""
    p_bar = (p1 + p2) / 2
    numerator = (
        z_alpha * math.sqrt(2 * p_bar * (1 - p_bar))
        + z_beta * math.sqrt(p1 * (1 - p1) + p2 * (1 - p2))
    ) ** 2
    denominator = (p2 - p1) ** 2
    return math.ceil(numerator / denominator)
