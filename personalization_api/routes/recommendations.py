"""Recommendation endpoints. Every list endpoint returns {item_id, score, algorithm, confidence} items."""

from typing import List, Optional

from fastapi import APIRouter, Query

from personalization.models import Recommendation

from ..models import HybridRequest, ItemFeaturesRequest, RankItemsRequest
from ..state import get_state

router = APIRouter()


def _items(recs: List[Recommendation]) -> dict:
    return {"items": [r.model_dump(mode="json", exclude_none=True) for r in recs], "count": len(recs)}


@router.put("/items/{item_id}")
def set_item_features(item_id: str, request: ItemFeaturesRequest):
    features = get_state().recommendations.set_item_features(item_id, request.attributes)
    return features.model_dump(mode="json")


@router.get("/trending")
def trending(
    time_window_days: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
):
    return _items(get_state().recommendations.get_trending_items(time_window_days, limit=limit))


@router.get("/analytics")
def recommendation_analytics():
    return get_state().recommendations.get_recommendation_analytics()


@router.post("/rank")
def rank_items(request: RankItemsRequest):
    return _items(
        get_state().recommendations.rank_items(request.user_id, request.item_ids, algorithm=request.algorithm)
    )


@router.post("/similarity/invalidate")
def invalidate_similarity(kind: str = ""):
    get_state().recommendations.invalidate_similarity_cache(kind or None)
    return {"status": "ok"}


@router.get("/items/{item_id}/similar")
def similar_items(
    item_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    method: str = "collaborative",
):
    return _items(get_state().recommendations.get_similar_items(item_id, limit=limit, method=method))


@router.get("/items/{item_id}/bought-together")
def bought_together(
    item_id: str,
    limit: int = Query(default=5, ge=1, le=100),
    min_support: Optional[int] = Query(default=None, ge=1),
):
    return _items(
        get_state().recommendations.get_frequently_bought_together(item_id, limit=limit, min_support=min_support)
    )


@router.get("/users/{user_id}/similar")
def similar_users(
    user_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    min_similarity: Optional[float] = Query(default=None, ge=0, le=1),
):
    edges = get_state().recommendations.find_similar_users(
        user_id, limit=limit, min_similarity=min_similarity, use_cache=True
    )
    return {
        "user_id": user_id,
        "similar_users": [{"user_id": e.b_id, "similarity": e.score} for e in edges],
    }


@router.post("/users/{user_id}/hybrid")
def hybrid(user_id: str, request: HybridRequest):
    return _items(
        get_state().recommendations.hybrid_recommendation(user_id, limit=request.limit, weights=request.weights)
    )


@router.get("/users/{user_id}/collaborative/user-based")
def collaborative_user_based(user_id: str, limit: int = Query(default=10, ge=1, le=100)):
    return _items(get_state().recommendations.collaborative_filtering_user_based(user_id, limit=limit))


@router.get("/users/{user_id}/collaborative/item-based")
def collaborative_item_based(user_id: str, limit: int = Query(default=10, ge=1, le=100)):
    return _items(get_state().recommendations.collaborative_filtering_item_based(user_id, limit=limit))


@router.get("/users/{user_id}/content")
def content_based(user_id: str, limit: int = Query(default=10, ge=1, le=100)):
    return _items(get_state().recommendations.content_based_filtering(user_id, limit=limit))
