"""Similarity & Recommendation Engine."""

from .engine import RecommendationEngine
from .similarity import content_similarity, invert_matrix, similar_items, similar_users

__all__ = [
    "RecommendationEngine",
    "content_similarity",
    "invert_matrix",
    "similar_items",
    "similar_users",
]
