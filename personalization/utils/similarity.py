"""Jaccard over item sets, cosine over sparse vectors."""

from typing import AbstractSet, Mapping

import numpy as np


def jaccard_similarity(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """|A ∩ B| / |A ∪ B|; 0.0 when both sets are empty."""
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union


def cosine_similarity(v1: Mapping[str, float], v2: Mapping[str, float]) -> float:
    """Cosine similarity between two sparse vectors keyed by dimension id."""
    if not v1 or not v2:
        return 0.0
    keys = sorted(set(v1) | set(v2))
    a = np.array([v1.get(k, 0.0) for k in keys], dtype=float)
    b = np.array([v2.get(k, 0.0) for k in keys], dtype=float)
    norm_product = np.linalg.norm(a) * np.linalg.norm(b)
    return float(np.dot(a, b) / norm_product) if norm_product > 0 else 0.0
