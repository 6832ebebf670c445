"""
Recommendation output and cached similarity edges.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Algorithm(str, Enum):
    COLLABORATIVE_USER = "collaborative_user_based"
    COLLABORATIVE_ITEM = "collaborative_item_based"
    CONTENT = "content_based"
    HYBRID = "hybrid"
    TRENDING = "trending"
    FREQUENTLY_BOUGHT_TOGETHER = "frequently_bought_together"
    SIMILAR_ITEMS = "similar_items"
    POPULARITY = "popularity"


class Recommendation(BaseModel):
    """One ranked item from any strategy."""

    item_id: str
    score: float
    algorithm: Algorithm
    confidence: float = 0.0
    support: Optional[float] = None
    rank: Optional[int] = None


class SimilarityKind(str, Enum):
    USER = "user"
    ITEM = "item"


class SimilarityEdge(BaseModel):
    """Pairwise similarity result; may be stale relative to computed_at."""

    a_id: str
    b_id: str
    kind: SimilarityKind
    score: float
    computed_at: datetime
