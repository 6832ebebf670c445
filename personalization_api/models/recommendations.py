"""Request models for recommendation endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ItemFeaturesRequest(BaseModel):
    """Raw item attributes; numbers become numeric features, strings categorical, lists tags."""

    attributes: Dict[str, Any] = Field(default_factory=dict)


class HybridRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)
    # Per-key overrides of collab_user / collab_item / content
    weights: Optional[Dict[str, float]] = None


class RankItemsRequest(BaseModel):
    user_id: str
    item_ids: List[str]
    algorithm: str = "hybrid"
