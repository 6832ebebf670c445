"""
Experiment models — experiments, variants, assignments, and the outputs of
the significance and sample-size calculations.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ExperimentStatus(str, Enum):
    DRAFT = "draft"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class PrimaryMetric(str, Enum):
    CONVERSION_RATE = "conversion_rate"
    CTR = "ctr"
    REVENUE = "revenue"
    ENGAGEMENT = "engagement"


class MetricName(str, Enum):
    CONVERSION = "conversion"
    CLICK = "click"
    REVENUE = "revenue"
    ENGAGEMENT = "engagement"


class VariantMetrics(BaseModel):
    users: int = 0
    conversions: float = 0.0
    conversion_rate: float = 0.0
    clicks: float = 0.0
    ctr: float = 0.0
    revenue: float = 0.0
    avg_revenue: float = 0.0
    engagement: float = 0.0

    def recompute_rates(self) -> None:
        """Derived rates; conversion_rate and ctr are percentages."""
        if self.users > 0:
            self.conversion_rate = self.conversions / self.users * 100
            self.ctr = self.clicks / self.users * 100
            self.avg_revenue = self.revenue / self.users


class VariantSpec(BaseModel):
    """Caller-supplied definition of one variant at experiment creation."""

    name: Optional[str] = None
    traffic: Optional[float] = None
    is_control: Optional[bool] = None
    config: Dict[str, Any] = Field(default_factory=dict)


class Variant(BaseModel):
    id: str
    experiment_id: str
    name: str
    is_control: bool = False
    traffic_allocation: float
    config: Dict[str, Any] = Field(default_factory=dict)
    metrics: VariantMetrics = Field(default_factory=VariantMetrics)


class ExperimentResults(BaseModel):
    total_users: int = 0
    winner: Optional[str] = None
    uplift: Optional[float] = 0.0
    confidence: float = 0.0


class Experiment(BaseModel):
    id: str
    name: str
    hypothesis: Optional[str] = None
    primary_metric: PrimaryMetric = PrimaryMetric.CONVERSION_RATE
    variants: List[str] = Field(default_factory=list)
    traffic_percent: float = 100.0
    status: ExperimentStatus = ExperimentStatus.DRAFT
    results: ExperimentResults = Field(default_factory=ExperimentResults)
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class SignificanceResult(BaseModel):
    """Outcome of one variant-vs-control comparison."""

    variant_id: str
    variant_name: str
    significant: bool
    confidence: float = 0.0
    p_value: float = 1.0
    uplift: Optional[float] = 0.0
    z_score: Optional[float] = None
    control_rate: Optional[float] = None
    variant_rate: Optional[float] = None
    note: Optional[str] = None


class StatisticalTest(BaseModel):
    experiment_id: str
    results: List[SignificanceResult]
    calculated_at: datetime


class SampleSizeAssumptions(BaseModel):
    baseline_rate: float
    target_rate: float
    minimum_detectable_effect: float
    power: float
    alpha: float
    daily_traffic: int


class SampleSizeEstimate(BaseModel):
    per_variant: int
    total: int
    estimated_days: int
    assumptions: SampleSizeAssumptions


class VariantSummary(BaseModel):
    id: str
    name: str
    is_control: bool
    users: int
    conversions: float
    conversion_rate: float
    clicks: float
    ctr: float
    revenue: float
    avg_revenue: float


class ExperimentSummary(BaseModel):
    id: str
    name: str
    status: ExperimentStatus
    total_users: int
    winner: Optional[str] = None
    uplift: Optional[float] = 0.0
    confidence: float = 0.0


class ExperimentReport(BaseModel):
    experiment: ExperimentSummary
    variants: List[VariantSummary]
    statistical: List[SignificanceResult] = Field(default_factory=list)
