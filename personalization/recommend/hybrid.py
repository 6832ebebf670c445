"""
Hybrid blending: weighted sum of per-strategy scores.
"""

from typing import Dict, List, Mapping, Optional

from ..errors import InvalidArgument
from ..models.recommendation import Algorithm, Recommendation

STRATEGIES = ("collab_user", "collab_item", "content")


def resolve_weights(defaults: Mapping[str, float], overrides: Optional[Mapping[str, float]]) -> Dict[str, float]:
    """Merge caller overrides over the default strategy weights."""
    weights = dict(defaults)
    for key, value in (overrides or {}).items():
        if key not in STRATEGIES:
            raise InvalidArgument(f"Unknown hybrid strategy weight: {key!r}")
        if value is None or value < 0:
            raise InvalidArgument(f"Hybrid weight for {key} must be non-negative")
        weights[key] = float(value)
    return weights


def blend(
    results: Mapping[str, List[Recommendation]],
    weights: Mapping[str, float],
    limit: int,
) -> List[Recommendation]:
    combined: Dict[str, float] = {}
    for strategy, recs in results.items():
        w = weights.get(strategy, 0.0)
        for rec in recs:
            combined[rec.item_id] = combined.get(rec.item_id, 0.0) + rec.score * w
    ranked = sorted(combined.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [
        Recommendation(
            item_id=item_id,
            score=score,
            algorithm=Algorithm.HYBRID,
            confidence=min(score / 50, 1.0),
        )
        for item_id, score in ranked
    ]
