"""Shared utilities for weighting, time, ids, and similarity."""

from .scores import (
    age_hours,
    generate_id,
    normalize_to_max,
    signal_type_weight,
    time_decay,
    utc_now,
)
from .similarity import cosine_similarity, jaccard_similarity

__all__ = [
    "age_hours",
    "generate_id",
    "normalize_to_max",
    "signal_type_weight",
    "time_decay",
    "utc_now",
    "cosine_similarity",
    "jaccard_similarity",
]
