"""Request models for profile and signal endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class CreateProfileRequest(BaseModel):
    """Explicit profile creation (profiles are otherwise created on first signal)."""

    user_id: str
    email: Optional[str] = None
    demographics: Dict[str, Any] = Field(default_factory=dict)


class RecordSignalRequest(BaseModel):
    """One behavioral signal. payload shape depends on signal_type."""

    signal_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    weight: float = 1.0
    timestamp: Optional[datetime] = None  # historical backfill; defaults to now


class SetPreferenceRequest(BaseModel):
    category: str
    key: str
    value: Any = None


class SegmentRequest(BaseModel):
    segment_id: str
    segment_name: Optional[str] = None
    auto: bool = True


class MergeProfilesRequest(BaseModel):
    """Fold source_ids into target_id (user ids or profile ids)."""

    source_ids: List[str]
    target_id: str

    @model_validator(mode="after")
    def require_sources(self):
        if not self.source_ids:
            raise ValueError("source_ids cannot be empty")
        return self
