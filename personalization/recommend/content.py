"""
Content-based filtering — match a user feature profile against the catalog.

The profile sums the features of items the user touched, weighted by the
interaction value, then divides by the total weight. Numeric features
multiply-accumulate; each matching tag adds its profile weight.
"""

from typing import Dict, List, Tuple

from ..models.item import ItemFeatures
from ..models.recommendation import Algorithm, Recommendation

FeatureKey = Tuple[str, str]


def build_feature_profile(
    user_row: Dict[str, float],
    catalog: Dict[str, ItemFeatures],
) -> Dict[FeatureKey, float]:
    profile: Dict[FeatureKey, float] = {}
    for item_id, value in user_row.items():
        features = catalog.get(item_id)
        if features is None:
            continue
        for name, number in features.numeric.items():
            key = ("num", name)
            profile[key] = profile.get(key, 0.0) + number * value
        for tags in features.tags.values():
            for tag in tags:
                key = ("tag", tag)
                profile[key] = profile.get(key, 0.0) + value
    total = sum(profile.values())
    if total > 0:
        profile = {k: v / total for k, v in profile.items()}
    return profile


def content_based(
    user_row: Dict[str, float],
    catalog: Dict[str, ItemFeatures],
    limit: int,
) -> List[Recommendation]:
    if not user_row:
        return []
    profile = build_feature_profile(user_row, catalog)
    if not profile:
        return []
    candidates = []
    for item_id, features in catalog.items():
        if item_id in user_row:
            continue
        score = 0.0
        matches = 0
        for name, number in features.numeric.items():
            weight = profile.get(("num", name))
            if weight is not None:
                score += number * weight
                matches += 1
        for tags in features.tags.values():
            for tag in tags:
                weight = profile.get(("tag", tag))
                if weight is not None:
                    score += weight
                    matches += 1
        if matches > 0:
            candidates.append(
                Recommendation(
                    item_id=item_id,
                    score=score,
                    algorithm=Algorithm.CONTENT,
                    confidence=min(matches / 10, 1.0),
                )
            )
    candidates.sort(key=lambda r: r.score, reverse=True)
    return candidates[:limit]
