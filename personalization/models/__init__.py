"""Data models for the personalization core."""

from .config import DEFAULT_CONFIG, PersonalizationConfig, resolve_config
from .experiment import (
    Experiment,
    ExperimentReport,
    ExperimentResults,
    ExperimentStatus,
    ExperimentSummary,
    MetricName,
    PrimaryMetric,
    SampleSizeAssumptions,
    SampleSizeEstimate,
    SignificanceResult,
    StatisticalTest,
    Variant,
    VariantMetrics,
    VariantSpec,
    VariantSummary,
)
from .interaction import Interaction, ItemInteraction
from .item import ItemFeatures
from .profile import (
    BehavioralCounters,
    Demographics,
    Interest,
    InterestKind,
    Lifecycle,
    SegmentAssignment,
    Tier,
    UserProfile,
)
from .recommendation import Algorithm, Recommendation, SimilarityEdge, SimilarityKind
from .signal import (
    BehavioralSignal,
    ItemPayload,
    RatingPayload,
    SessionPayload,
    SignalPayload,
    SignalType,
    build_payload,
)

__all__ = [
    "DEFAULT_CONFIG",
    "PersonalizationConfig",
    "resolve_config",
    "Experiment",
    "ExperimentReport",
    "ExperimentResults",
    "ExperimentStatus",
    "ExperimentSummary",
    "MetricName",
    "PrimaryMetric",
    "SampleSizeAssumptions",
    "SampleSizeEstimate",
    "SignificanceResult",
    "StatisticalTest",
    "Variant",
    "VariantMetrics",
    "VariantSpec",
    "VariantSummary",
    "Interaction",
    "ItemInteraction",
    "ItemFeatures",
    "BehavioralCounters",
    "Demographics",
    "Interest",
    "InterestKind",
    "Lifecycle",
    "SegmentAssignment",
    "Tier",
    "UserProfile",
    "Algorithm",
    "Recommendation",
    "SimilarityEdge",
    "SimilarityKind",
    "BehavioralSignal",
    "ItemPayload",
    "RatingPayload",
    "SessionPayload",
    "SignalPayload",
    "SignalType",
    "build_payload",
]
