"""
Collaborative filtering: user-based and item-based candidate scoring.
"""

from typing import Callable, Dict, List, Tuple

from ..models.recommendation import Algorithm, Recommendation
from .similarity import Matrix


def _to_recommendations(scores: Dict[str, float], algorithm: Algorithm, limit: int) -> List[Recommendation]:
    ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [
        Recommendation(
            item_id=item_id,
            score=score,
            algorithm=algorithm,
            confidence=min(score / 100, 1.0),
        )
        for item_id, score in ranked
    ]


def user_based(
    user_id: str,
    matrix: Matrix,
    neighbours: List[Tuple[str, float]],
    limit: int,
) -> List[Recommendation]:
    """
    score(item) = sum over peers of similarity(user, peer) * peer's value for item,
    for items the user has not interacted with.
    """
    if not neighbours:
        return []
    own = matrix.get(user_id, {})
    scores: Dict[str, float] = {}
    for peer_id, similarity in neighbours:
        for item_id, value in matrix.get(peer_id, {}).items():
            if item_id in own:
                continue
            scores[item_id] = scores.get(item_id, 0.0) + similarity * value
    return _to_recommendations(scores, Algorithm.COLLABORATIVE_USER, limit)


def item_based(
    user_row: Dict[str, float],
    neighbours_of: Callable[[str], List[Tuple[str, float]]],
    limit: int,
) -> List[Recommendation]:
    """
    score(candidate) += user's value for a held item * similarity(held, candidate),
    over the top neighbours of every held item.
    """
    if not user_row:
        return []
    scores: Dict[str, float] = {}
    for item_id, value in user_row.items():
        for other_id, similarity in neighbours_of(item_id):
            if other_id in user_row:
                continue
            scores[other_id] = scores.get(other_id, 0.0) + value * similarity
    return _to_recommendations(scores, Algorithm.COLLABORATIVE_ITEM, limit)
