"""Request/response models for experiment endpoints."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from personalization.models import Variant, VariantSpec


class CreateExperimentRequest(BaseModel):
    name: str
    hypothesis: Optional[str] = None
    primary_metric: str = "conversion_rate"
    variants: List[VariantSpec]
    traffic_percent: float = 100.0


class Factor(BaseModel):
    name: str
    levels: List[Any]


class MultivariateRequest(BaseModel):
    name: str
    factors: List[Factor]


class AssignRequest(BaseModel):
    user_id: str


class AssignmentResponse(BaseModel):
    """variant is None when the user's bucket falls outside the experiment's traffic."""

    experiment_id: str
    user_id: str
    excluded: bool
    variant: Optional[Variant] = None


class TrackMetricRequest(BaseModel):
    user_id: str
    metric: str
    value: float = 1.0


class SampleSizeRequest(BaseModel):
    baseline_rate: float
    minimum_detectable_effect: float
    power: float = Field(default=0.8, gt=0, lt=1)
    alpha: float = Field(default=0.05, gt=0, lt=1)
