"""
Experimentation Engine — experiment lifecycle, deterministic assignment,
metric tracking, and significance testing.

Status transitions: draft -> running <-> paused -> completed (running may also
complete directly). Only running experiments accept new assignments; tracking
works in any post-start state for users already assigned.
"""

import itertools
import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ..errors import InvalidArgument, NotFound, PreconditionFailed
from ..models.config import PersonalizationConfig, resolve_config
from ..models.experiment import (
    Experiment,
    ExperimentReport,
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
from ..stores.experiment_store import ExperimentStore
from ..utils.scores import generate_id, utc_now
from .bucketing import bucket_for, select_variant
from .statistics import required_sample_size, two_proportion_z_test

logger = logging.getLogger(__name__)

# Allocations must sum to 100 within this tolerance (equal splits are inexact floats).
ALLOCATION_TOLERANCE = 0.01


def _r(value: float, places: int = 2) -> float:
    return round(value, places)


class ExperimentEngine:
    """A/B and multivariate experiments over an ExperimentStore."""

    def __init__(
        self,
        store: ExperimentStore,
        config: Optional[PersonalizationConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.config = resolve_config(config)
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_experiment(
        self,
        name: str,
        variants: Sequence[Union[VariantSpec, Mapping[str, Any]]],
        hypothesis: Optional[str] = None,
        primary_metric: Union[str, PrimaryMetric] = PrimaryMetric.CONVERSION_RATE,
        traffic_percent: float = 100.0,
    ) -> Experiment:
        """
        Create a draft experiment. The first variant is the control unless one
        is flagged is_control; allocations default to an equal split and must
        sum to 100.
        """
        if not name:
            raise InvalidArgument("name is required")
        try:
            metric = PrimaryMetric(primary_metric)
            specs = [v if isinstance(v, VariantSpec) else VariantSpec.model_validate(v) for v in variants]
        except (ValueError, ValidationError) as e:
            raise InvalidArgument(str(e))
        if len(specs) < 2:
            raise InvalidArgument("An experiment needs at least two variants")
        if not 0 <= traffic_percent <= 100:
            raise InvalidArgument("traffic_percent must be between 0 and 100")

        equal_share = 100 / len(specs)
        allocations = [s.traffic if s.traffic is not None else equal_share for s in specs]
        if any(a < 0 for a in allocations):
            raise InvalidArgument("Variant traffic allocation cannot be negative")
        if abs(sum(allocations) - 100) > ALLOCATION_TOLERANCE:
            raise InvalidArgument(f"Variant traffic allocations must sum to 100, got {sum(allocations)}")

        flagged = [i for i, s in enumerate(specs) if s.is_control]
        if len(flagged) > 1:
            raise InvalidArgument("Exactly one variant may be the control")
        control_index = flagged[0] if flagged else 0

        now = self._clock()
        experiment = Experiment(
            id=generate_id("exp"),
            name=name,
            hypothesis=hypothesis,
            primary_metric=metric,
            traffic_percent=float(traffic_percent),
            created_at=now,
        )
        for index, (spec, allocation) in enumerate(zip(specs, allocations)):
            variant = Variant(
                id=generate_id("var"),
                experiment_id=experiment.id,
                name=spec.name or f"Variant {chr(65 + index)}",
                is_control=index == control_index,
                traffic_allocation=allocation,
                config=dict(spec.config),
            )
            self.store.save_variant(variant)
            experiment.variants.append(variant.id)
        self.store.save_experiment(experiment)
        logger.info("Created experiment %s (%s) with %d variants", experiment.id, name, len(specs))
        return experiment.model_copy(deep=True)

    def create_multivariate_test(self, name: str, factors: Sequence[Mapping[str, Any]]) -> Experiment:
        """Full-factorial test: one variant per combination of factor levels."""
        if not factors:
            raise InvalidArgument("At least one factor is required")
        names = []
        level_lists = []
        for factor in factors:
            if not factor.get("name") or not factor.get("levels"):
                raise InvalidArgument("Each factor needs a name and at least one level")
            names.append(factor["name"])
            level_lists.append(list(factor["levels"]))
        specs = [
            VariantSpec(name=f"Combination {i + 1}", config=dict(zip(names, combo)))
            for i, combo in enumerate(itertools.product(*level_lists))
        ]
        return self.create_experiment(
            name,
            specs,
            hypothesis=f"Multivariate test of {', '.join(names)}",
            primary_metric=PrimaryMetric.CONVERSION_RATE,
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _require(self, experiment_id: str) -> Experiment:
        experiment = self.store.get_experiment(experiment_id)
        if experiment is None:
            raise NotFound(f"Experiment not found: {experiment_id}")
        return experiment

    def _variant(self, variant_id: str) -> Variant:
        variant = self.store.get_variant(variant_id)
        if variant is None:
            raise NotFound(f"Variant not found: {variant_id}")
        return variant

    def get_experiment(self, experiment_id: str) -> Experiment:
        return self._require(experiment_id).model_copy(deep=True)

    def get_variants(self, experiment_id: str) -> List[Variant]:
        experiment = self._require(experiment_id)
        return [self._variant(vid).model_copy(deep=True) for vid in experiment.variants]

    def list_experiments(self, status: Optional[Union[str, ExperimentStatus]] = None) -> List[Experiment]:
        experiments = self.store.list_experiments()
        if status:
            try:
                wanted = ExperimentStatus(status)
            except ValueError as e:
                raise InvalidArgument(str(e))
            experiments = [e for e in experiments if e.status == wanted]
        return [e.model_copy(deep=True) for e in experiments]

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def _transition(
        self,
        experiment_id: str,
        allowed_from: Sequence[ExperimentStatus],
        to: ExperimentStatus,
    ) -> Experiment:
        with self.store.lock_for(experiment_id):
            experiment = self._require(experiment_id)
            if experiment.status not in allowed_from:
                raise PreconditionFailed(
                    f"Cannot move experiment {experiment_id} from {experiment.status.value} to {to.value}"
                )
            now = self._clock()
            if to == ExperimentStatus.RUNNING and experiment.started_at is None:
                experiment.started_at = now
            if to == ExperimentStatus.COMPLETED:
                experiment.completed_at = now
            logger.info("Experiment %s: %s -> %s", experiment_id, experiment.status.value, to.value)
            experiment.status = to
            self.store.save_experiment(experiment)
            return experiment.model_copy(deep=True)

    def start_experiment(self, experiment_id: str) -> Experiment:
        return self._transition(experiment_id, [ExperimentStatus.DRAFT], ExperimentStatus.RUNNING)

    def pause_experiment(self, experiment_id: str) -> Experiment:
        return self._transition(experiment_id, [ExperimentStatus.RUNNING], ExperimentStatus.PAUSED)

    def resume_experiment(self, experiment_id: str) -> Experiment:
        return self._transition(experiment_id, [ExperimentStatus.PAUSED], ExperimentStatus.RUNNING)

    def complete_experiment(self, experiment_id: str) -> Experiment:
        """Run a final significance pass, then mark completed."""
        with self.store.lock_for(experiment_id):
            experiment = self._require(experiment_id)
            if experiment.status not in (ExperimentStatus.RUNNING, ExperimentStatus.PAUSED):
                raise PreconditionFailed(
                    f"Cannot complete experiment {experiment_id} in status {experiment.status.value}"
                )
            self.calculate_significance(experiment_id)
            return self._transition(
                experiment_id,
                [ExperimentStatus.RUNNING, ExperimentStatus.PAUSED],
                ExperimentStatus.COMPLETED,
            )

    # ------------------------------------------------------------------
    # Assignment and tracking
    # ------------------------------------------------------------------

    def assign_user_to_variant(self, experiment_id: str, user_id: str) -> Optional[Variant]:
        """
        Deterministic, write-once assignment.

        Returns the stored variant when the user is already assigned, None when
        the user's bucket falls outside the experiment's traffic, otherwise the
        variant whose cumulative allocation first exceeds the bucket.
        """
        if not user_id:
            raise InvalidArgument("user_id is required")
        with self.store.lock_for(experiment_id):
            experiment = self._require(experiment_id)
            existing = self.store.get_assignment(experiment_id, user_id)
            if existing is not None:
                return self._variant(existing).model_copy(deep=True)
            if experiment.status != ExperimentStatus.RUNNING:
                raise PreconditionFailed(
                    f"Experiment {experiment_id} is {experiment.status.value}; assignments require running"
                )

            bucket = bucket_for(user_id)
            if bucket >= experiment.traffic_percent:
                return None

            variants = [self._variant(vid) for vid in experiment.variants]
            chosen_id = select_variant(bucket, [(v.id, v.traffic_allocation) for v in variants])
            if chosen_id is None:
                chosen_id = variants[-1].id
                logger.warning(
                    "Allocation of experiment %s did not cover bucket %d; using last variant",
                    experiment_id, bucket,
                )
            chosen = next(v for v in variants if v.id == chosen_id)

            self.store.set_assignment(experiment_id, user_id, chosen.id)
            chosen.metrics.users += 1
            chosen.metrics.recompute_rates()
            experiment.results.total_users += 1
            self.store.save_variant(chosen)
            self.store.save_experiment(experiment)
            return chosen.model_copy(deep=True)

    def get_assignment(self, experiment_id: str, user_id: str) -> Optional[Variant]:
        self._require(experiment_id)
        variant_id = self.store.get_assignment(experiment_id, user_id)
        return self._variant(variant_id).model_copy(deep=True) if variant_id else None

    def track_experiment_metric(
        self,
        experiment_id: str,
        user_id: str,
        metric: Union[str, MetricName],
        value: float = 1,
    ) -> VariantMetrics:
        try:
            name = MetricName(metric)
        except ValueError:
            raise InvalidArgument(f"Unknown metric: {metric!r}")
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidArgument("value must be a finite number")
        if value < 0:
            raise InvalidArgument("value cannot be negative")
        with self.store.lock_for(experiment_id):
            self._require(experiment_id)
            variant_id = self.store.get_assignment(experiment_id, user_id)
            if variant_id is None:
                raise PreconditionFailed(f"User {user_id} is not assigned to experiment {experiment_id}")
            variant = self._variant(variant_id)
            metrics = variant.metrics
            if name == MetricName.CONVERSION:
                metrics.conversions += value
            elif name == MetricName.CLICK:
                metrics.clicks += value
            elif name == MetricName.REVENUE:
                metrics.revenue += value
            elif name == MetricName.ENGAGEMENT:
                metrics.engagement += value
            metrics.recompute_rates()
            self.store.save_variant(variant)
            return metrics.model_copy()

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _compare(self, control: Variant, variant: Variant) -> SignificanceResult:
        cfg = self.config
        n1, n2 = control.metrics.users, variant.metrics.users
        if n1 < cfg.min_sample_size or n2 < cfg.min_sample_size:
            return SignificanceResult(
                variant_id=variant.id,
                variant_name=variant.name,
                significant=False,
                note=f"Insufficient sample size (need {cfg.min_sample_size}+ users per variant)",
            )
        # Repeat conversions can push a raw rate past 100%; the test needs proportions.
        p1 = min(control.metrics.conversions, n1) / n1
        p2 = min(variant.metrics.conversions, n2) / n2
        outcome = two_proportion_z_test(p1, n1, p2, n2)
        if outcome is None:
            return SignificanceResult(
                variant_id=variant.id,
                variant_name=variant.name,
                significant=False,
                note="No variance in data",
            )
        z, p_value = outcome
        note = None
        if p1 > 0:
            uplift: Optional[float] = _r((p2 - p1) / p1 * 100)
        else:
            uplift = None
            note = "Control conversion rate is zero; uplift undefined"
        return SignificanceResult(
            variant_id=variant.id,
            variant_name=variant.name,
            significant=p_value < cfg.significance_alpha,
            confidence=_r((1 - p_value) * 100),
            p_value=round(p_value, 3),
            z_score=_r(z),
            uplift=uplift,
            control_rate=_r(p1 * 100),
            variant_rate=_r(p2 * 100),
            note=note,
        )

    def calculate_significance(self, experiment_id: str) -> List[SignificanceResult]:
        """
        Two-proportion z-test of each non-control variant against the control.

        Arms under min_sample_size users are reported as not significant
        without a z-score. The first significant variant that beats the
        control becomes the experiment's winner.
        """
        with self.store.lock_for(experiment_id):
            experiment = self._require(experiment_id)
            variants = [self._variant(vid) for vid in experiment.variants]
            control = next((v for v in variants if v.is_control), None)
            if control is None:
                raise PreconditionFailed(f"Experiment {experiment_id} has no control variant")

            results = [self._compare(control, v) for v in variants if not v.is_control]
            self.store.save_test(
                StatisticalTest(experiment_id=experiment_id, results=results, calculated_at=self._clock())
            )

            for result in results:
                beats_control = (
                    result.uplift > 0
                    if result.uplift is not None
                    else (result.variant_rate or 0) > (result.control_rate or 0)
                )
                if result.significant and beats_control:
                    experiment.results.winner = result.variant_id
                    experiment.results.uplift = result.uplift
                    experiment.results.confidence = result.confidence
                    self.store.save_experiment(experiment)
                    logger.info(
                        "Experiment %s winner %s (uplift=%s, confidence=%s)",
                        experiment_id, result.variant_id, result.uplift, result.confidence,
                    )
                    break
            return [r.model_copy() for r in results]

    def calculate_sample_size(
        self,
        baseline_rate: float,
        minimum_detectable_effect: float,
        power: float = 0.8,
        alpha: float = 0.05,
    ) -> SampleSizeEstimate:
        """
        Per-variant sample size for a relative lift of minimum_detectable_effect.

        Critical values are fixed (z_alpha=1.96, z_beta=0.84); power and alpha
        are echoed in the assumptions. estimated_days assumes a constant daily
        traffic and is advisory only.
        """
        cfg = self.config
        if not 0 < baseline_rate < 1:
            raise InvalidArgument("baseline_rate must be between 0 and 1")
        if minimum_detectable_effect <= 0:
            raise InvalidArgument("minimum_detectable_effect must be positive")
        p2 = baseline_rate * (1 + minimum_detectable_effect)
        if p2 > 1:
            raise InvalidArgument("baseline_rate * (1 + minimum_detectable_effect) exceeds 1")
        per_variant = required_sample_size(baseline_rate, p2, cfg.z_alpha, cfg.z_beta)
        total = per_variant * 2
        return SampleSizeEstimate(
            per_variant=per_variant,
            total=total,
            estimated_days=math.ceil(total / cfg.daily_traffic),
            assumptions=SampleSizeAssumptions(
                baseline_rate=baseline_rate,
                target_rate=p2,
                minimum_detectable_effect=minimum_detectable_effect,
                power=power,
                alpha=alpha,
                daily_traffic=cfg.daily_traffic,
            ),
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_experiment_results(self, experiment_id: str) -> ExperimentReport:
        experiment = self._require(experiment_id)
        summaries = []
        for vid in experiment.variants:
            variant = self._variant(vid)
            m = variant.metrics
            summaries.append(
                VariantSummary(
                    id=variant.id,
                    name=variant.name,
                    is_control=variant.is_control,
                    users=m.users,
                    conversions=m.conversions,
                    conversion_rate=_r(m.conversion_rate),
                    clicks=m.clicks,
                    ctr=_r(m.ctr),
                    revenue=_r(m.revenue),
                    avg_revenue=_r(m.avg_revenue),
                )
            )
        test = self.store.get_test(experiment_id)
        return ExperimentReport(
            experiment=ExperimentSummary(
                id=experiment.id,
                name=experiment.name,
                status=experiment.status,
                total_users=experiment.results.total_users,
                winner=experiment.results.winner,
                uplift=experiment.results.uplift,
                confidence=experiment.results.confidence,
            ),
            variants=summaries,
            statistical=[r.model_copy() for r in test.results] if test else [],
        )

    def get_testing_analytics(self) -> Dict[str, Any]:
        experiments = self.store.list_experiments()
        by_status = {s.value: 0 for s in ExperimentStatus}
        for e in experiments:
            by_status[e.status.value] += 1
        completed = [e for e in experiments if e.status == ExperimentStatus.COMPLETED]
        with_winner = [e for e in completed if e.results.winner]
        uplifts = [e.results.uplift for e in with_winner if e.results.uplift is not None]
        return {
            "total_experiments": len(experiments),
            "by_status": by_status,
            "total_users": sum(e.results.total_users for e in experiments),
            "completed_tests": len(completed),
            "tests_with_winner": len(with_winner),
            "win_rate": len(with_winner) / len(completed) * 100 if completed else 0.0,
            "avg_uplift": sum(uplifts) / len(uplifts) if uplifts else 0.0,
            "total_variants": self.store.variant_count(),
        }
