"""
User profile model — demographics, behavioral counters, derived interests,
affinities, segments, and lifecycle/tier.

lifecycle and tier are derived from the behavioral counters by the profile
engine; callers never set them directly.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Lifecycle(str, Enum):
    ANONYMOUS = "anonymous"
    VISITOR = "visitor"
    ENGAGED = "engaged"
    CUSTOMER = "customer"
    ADVOCATE = "advocate"
    CHURNED = "churned"
    INACTIVE = "inactive"


class Tier(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    LOYAL = "loyal"
    VIP = "vip"


class InterestKind(str, Enum):
    CATEGORY = "category"
    PRODUCT = "product"


class Interest(BaseModel):
    label: str
    score: float
    kind: InterestKind


class SegmentAssignment(BaseModel):
    segment_id: str
    segment_name: Optional[str] = None
    assigned_at: datetime
    auto: bool = True


class Demographics(BaseModel):
    model_config = ConfigDict(extra="allow")

    age: Optional[int] = None
    gender: Optional[str] = None
    location: Dict[str, Any] = Field(default_factory=dict)
    language: str = "en"
    timezone: str = "UTC"


class BehavioralCounters(BaseModel):
    page_views: int = 0
    sessions: int = 0
    purchases: int = 0
    first_seen: datetime
    last_active: datetime
    device_types: List[str] = Field(default_factory=list)
    browsers: List[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    demographics: Demographics = Field(default_factory=Demographics)
    behavioral: BehavioralCounters
    interests: List[Interest] = Field(default_factory=list)
    affinities: Dict[str, float] = Field(default_factory=dict)
    segments: List[SegmentAssignment] = Field(default_factory=list)
    preferences: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    lifecycle: Lifecycle = Lifecycle.ANONYMOUS
    tier: Tier = Tier.NEW
    completeness_score: int = 0
    created_at: datetime
    updated_at: datetime

    def has_segment(self, segment_id: str) -> bool:
        return any(s.segment_id == segment_id for s in self.segments)
