"""Experimentation Engine: A/B and multivariate tests."""

from .bucketing import bucket_for, select_variant
from .engine import ExperimentEngine
from .statistics import normal_cdf, required_sample_size, two_proportion_z_test

__all__ = [
    "ExperimentEngine",
    "bucket_for",
    "select_variant",
    "normal_cdf",
    "required_sample_size",
    "two_proportion_z_test",
]
