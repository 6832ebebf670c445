"""
Popularity strategies: trending items and frequently bought together.
"""

from datetime import datetime
from typing import Dict, List

from ..models.interaction import ItemInteraction
from ..models.recommendation import Algorithm, Recommendation
from ..models.signal import SignalType

History = Dict[str, Dict[str, ItemInteraction]]


def trending(history: History, cutoff: datetime, limit: int) -> List[Recommendation]:
    """Sum of weighted interaction values newer than cutoff; no decay inside the window."""
    scores: Dict[str, float] = {}
    for row in history.values():
        for item_id, entry in row.items():
            recent = sum(i.value for i in entry.interactions if i.timestamp > cutoff)
            if recent > 0:
                scores[item_id] = scores.get(item_id, 0.0) + recent
    ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [
        Recommendation(item_id=item_id, score=score, algorithm=Algorithm.TRENDING, confidence=1.0)
        for item_id, score in ranked
    ]


def frequently_bought_together(
    item_id: str,
    history: History,
    min_support: int,
    limit: int,
) -> List[Recommendation]:
    """
    Co-purchase counts among users who bought item_id.
    support = co-purchase count / number of purchasers of item_id.
    """
    purchasers = [
        user_id
        for user_id, row in history.items()
        if item_id in row and row[item_id].has_type(SignalType.PURCHASE)
    ]
    if not purchasers:
        return []
    counts: Dict[str, int] = {}
    for user_id in purchasers:
        for other_id, entry in history[user_id].items():
            if other_id == item_id or not entry.has_type(SignalType.PURCHASE):
                continue
            counts[other_id] = counts.get(other_id, 0) + 1
    ranked = sorted(
        ((other_id, n) for other_id, n in counts.items() if n >= min_support),
        key=lambda kv: kv[1],
        reverse=True,
    )[:limit]
    return [
        Recommendation(
            item_id=other_id,
            score=float(n),
            support=n / len(purchasers),
            confidence=n / len(purchasers),
            algorithm=Algorithm.FREQUENTLY_BOUGHT_TOGETHER,
        )
        for other_id, n in ranked
    ]
