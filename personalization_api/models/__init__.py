"""Pydantic request/response models for the API."""

from .experiments import (
    AssignmentResponse,
    AssignRequest,
    CreateExperimentRequest,
    Factor,
    MultivariateRequest,
    SampleSizeRequest,
    TrackMetricRequest,
)
from .profiles import (
    CreateProfileRequest,
    MergeProfilesRequest,
    RecordSignalRequest,
    SegmentRequest,
    SetPreferenceRequest,
)
from .recommendations import HybridRequest, ItemFeaturesRequest, RankItemsRequest

__all__ = [
    "AssignmentResponse",
    "AssignRequest",
    "CreateExperimentRequest",
    "Factor",
    "MultivariateRequest",
    "SampleSizeRequest",
    "TrackMetricRequest",
    "CreateProfileRequest",
    "MergeProfilesRequest",
    "RecordSignalRequest",
    "SegmentRequest",
    "SetPreferenceRequest",
    "HybridRequest",
    "ItemFeaturesRequest",
    "RankItemsRequest",
]
