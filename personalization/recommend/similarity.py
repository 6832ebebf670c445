"""
User-user (Jaccard over item sets) and item-item (cosine in user space)
similarity scans over a snapshot of the interaction matrix.
"""

from typing import Dict, List, Tuple

from ..models.item import ItemFeatures
from ..utils.similarity import cosine_similarity, jaccard_similarity

# user_id -> item_id -> total_weighted_value
Matrix = Dict[str, Dict[str, float]]


def invert_matrix(matrix: Matrix) -> Matrix:
    """item_id -> user_id -> total_weighted_value (item vectors in user space)."""
    by_item: Matrix = {}
    for user_id, row in matrix.items():
        for item_id, value in row.items():
            by_item.setdefault(item_id, {})[user_id] = value
    return by_item


def similar_users(user_id: str, matrix: Matrix, min_similarity: float) -> List[Tuple[str, float]]:
    """All other users at or above min_similarity, most similar first."""
    row = matrix.get(user_id)
    if not row:
        return []
    items = set(row)
    out = []
    for other_id, other_row in matrix.items():
        if other_id == user_id:
            continue
        sim = jaccard_similarity(items, set(other_row))
        if sim >= min_similarity:
            out.append((other_id, sim))
    out.sort(key=lambda pair: pair[1], reverse=True)
    return out


def similar_items(item_id: str, by_item: Matrix, min_similarity: float) -> List[Tuple[str, float]]:
    """All other items at or above min_similarity, most similar first."""
    vector = by_item.get(item_id)
    if not vector:
        return []
    out = []
    for other_id, other_vector in by_item.items():
        if other_id == item_id:
            continue
        sim = cosine_similarity(vector, other_vector)
        if sim >= min_similarity:
            out.append((other_id, sim))
    out.sort(key=lambda pair: pair[1], reverse=True)
    return out


def content_similarity(source: ItemFeatures, other: ItemFeatures) -> float:
    """
    Feature overlap averaged over the source item's features.
    Numeric and categorical features score 1 on equality; tag features score
    the fraction of the source's tags the other item shares.
    """
    total = source.feature_count()
    if total == 0:
        return 0.0
    overlap = 0.0
    for key, value in source.numeric.items():
        if key in other.numeric and other.numeric[key] == value:
            overlap += 1
    for key, value in source.categorical.items():
        if other.categorical.get(key) == value:
            overlap += 1
    for key, tags in source.tags.items():
        if tags and key in other.tags:
            shared = [t for t in tags if t in other.tags[key]]
            overlap += len(shared) / len(tags)
    return overlap / total
