"""Profile endpoints: creation, signal ingestion, derived fields, merge, search."""

from typing import List, Optional

from fastapi import APIRouter, Query

from ..models import (
    CreateProfileRequest,
    MergeProfilesRequest,
    RecordSignalRequest,
    SegmentRequest,
    SetPreferenceRequest,
)
from ..state import get_state

router = APIRouter()


@router.post("")
def create_profile(request: CreateProfileRequest):
    profile = get_state().profiles.create_profile(
        request.user_id, email=request.email, demographics=request.demographics
    )
    return profile.model_dump(mode="json")


@router.get("/search")
def search_profiles(
    lifecycle: Optional[str] = None,
    tier: Optional[str] = None,
    min_score: int = 0,
    interests: Optional[List[str]] = Query(default=None),
    segments: Optional[List[str]] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
):
    profiles = get_state().profiles.search_profiles(
        lifecycle=lifecycle,
        tier=tier,
        min_score=min_score,
        interests=interests,
        segments=segments,
        limit=limit,
    )
    return {"profiles": [p.model_dump(mode="json") for p in profiles], "count": len(profiles)}


@router.get("/analytics")
def profile_analytics():
    return get_state().profiles.get_profile_analytics()


@router.post("/merge")
def merge_profiles(request: MergeProfilesRequest):
    """Fold the source profiles into the target; sources are deleted."""
    merged = get_state().profiles.merge_profiles(request.source_ids, request.target_id)
    return merged.model_dump(mode="json")


@router.post("/reindex")
def reindex():
    replayed = get_state().profiles.reindex()
    return {"status": "ok", "signals_replayed": replayed}


@router.get("/{user_id}")
def get_profile(user_id: str):
    return get_state().profiles.get_profile(user_id).model_dump(mode="json")


@router.post("/{user_id}/signals")
def record_signal(user_id: str, request: RecordSignalRequest):
    signal = get_state().profiles.record_signal(
        user_id,
        request.signal_type,
        request.payload,
        weight=request.weight,
        timestamp=request.timestamp,
    )
    return {"signal_id": signal.id, "signal": signal.model_dump(mode="json")}


@router.get("/{user_id}/interests")
def extract_interests(user_id: str, lookback_days: Optional[int] = Query(default=None, ge=1)):
    interests = get_state().profiles.extract_interests(user_id, lookback_days=lookback_days)
    return {"user_id": user_id, "interests": [i.model_dump(mode="json") for i in interests]}


@router.get("/{user_id}/affinities")
def calculate_affinities(user_id: str, lookback_days: Optional[int] = Query(default=None, ge=1)):
    affinities = get_state().profiles.calculate_affinity_scores(user_id, lookback_days=lookback_days)
    return {"user_id": user_id, "affinities": affinities}


@router.post("/{user_id}/lifecycle")
def update_lifecycle(user_id: str):
    state = get_state()
    lifecycle = state.profiles.update_lifecycle_stage(user_id)
    profile = state.profiles.get_profile(user_id)
    return {"user_id": user_id, "lifecycle": lifecycle.value, "tier": profile.tier.value}


@router.get("/{user_id}/score")
def profile_score(user_id: str):
    return {"user_id": user_id, "score": get_state().profiles.calculate_profile_score(user_id)}


@router.get("/{user_id}/preferences")
def get_preferences(user_id: str, category: Optional[str] = None):
    return get_state().profiles.get_preferences(user_id, category=category)


@router.put("/{user_id}/preferences")
def set_preference(user_id: str, request: SetPreferenceRequest):
    return get_state().profiles.set_preference(user_id, request.category, request.key, request.value)


@router.post("/{user_id}/segments")
def assign_segment(user_id: str, request: SegmentRequest):
    segments = get_state().profiles.assign_to_segment(
        user_id, request.segment_id, segment_name=request.segment_name, auto=request.auto
    )
    return {"user_id": user_id, "segments": [s.model_dump(mode="json") for s in segments]}


@router.get("/{user_id}/interest-graph")
def interest_graph(user_id: str):
    return {"user_id": user_id, "graph": get_state().profiles.build_interest_graph(user_id)}
