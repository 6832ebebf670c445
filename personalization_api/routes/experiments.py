"""Experiment endpoints: lifecycle, assignment, tracking, statistics."""

from typing import Optional

from fastapi import APIRouter

from ..models import (
    AssignmentResponse,
    AssignRequest,
    CreateExperimentRequest,
    MultivariateRequest,
    SampleSizeRequest,
    TrackMetricRequest,
)
from ..state import get_state

router = APIRouter()


@router.post("")
def create_experiment(request: CreateExperimentRequest):
    experiment = get_state().experiments.create_experiment(
        request.name,
        request.variants,
        hypothesis=request.hypothesis,
        primary_metric=request.primary_metric,
        traffic_percent=request.traffic_percent,
    )
    return experiment.model_dump(mode="json")


@router.get("")
def list_experiments(status: Optional[str] = None):
    experiments = get_state().experiments.list_experiments(status=status)
    return {"experiments": [e.model_dump(mode="json") for e in experiments], "count": len(experiments)}


@router.post("/multivariate")
def create_multivariate(request: MultivariateRequest):
    experiment = get_state().experiments.create_multivariate_test(
        request.name, [f.model_dump() for f in request.factors]
    )
    return experiment.model_dump(mode="json")


@router.post("/sample-size")
def sample_size(request: SampleSizeRequest):
    estimate = get_state().experiments.calculate_sample_size(
        request.baseline_rate,
        request.minimum_detectable_effect,
        power=request.power,
        alpha=request.alpha,
    )
    return estimate.model_dump(mode="json")


@router.get("/analytics")
def testing_analytics():
    return get_state().experiments.get_testing_analytics()


@router.get("/{experiment_id}")
def get_experiment(experiment_id: str):
    engine = get_state().experiments
    return {
        "experiment": engine.get_experiment(experiment_id).model_dump(mode="json"),
        "variants": [v.model_dump(mode="json") for v in engine.get_variants(experiment_id)],
    }


@router.post("/{experiment_id}/start")
def start_experiment(experiment_id: str):
    return get_state().experiments.start_experiment(experiment_id).model_dump(mode="json")


@router.post("/{experiment_id}/pause")
def pause_experiment(experiment_id: str):
    return get_state().experiments.pause_experiment(experiment_id).model_dump(mode="json")


@router.post("/{experiment_id}/resume")
def resume_experiment(experiment_id: str):
    return get_state().experiments.resume_experiment(experiment_id).model_dump(mode="json")


@router.post("/{experiment_id}/complete")
def complete_experiment(experiment_id: str):
    return get_state().experiments.complete_experiment(experiment_id).model_dump(mode="json")


@router.post("/{experiment_id}/assign", response_model=AssignmentResponse)
def assign_user(experiment_id: str, request: AssignRequest):
    """Deterministic assignment; excluded=true when the user falls outside the experiment's traffic."""
    variant = get_state().experiments.assign_user_to_variant(experiment_id, request.user_id)
    return AssignmentResponse(
        experiment_id=experiment_id,
        user_id=request.user_id,
        excluded=variant is None,
        variant=variant,
    )


@router.post("/{experiment_id}/track")
def track_metric(experiment_id: str, request: TrackMetricRequest):
    metrics = get_state().experiments.track_experiment_metric(
        experiment_id, request.user_id, request.metric, value=request.value
    )
    return metrics.model_dump(mode="json")


@router.post("/{experiment_id}/significance")
def significance(experiment_id: str):
    results = get_state().experiments.calculate_significance(experiment_id)
    return {"experiment_id": experiment_id, "results": [r.model_dump(mode="json") for r in results]}


@router.get("/{experiment_id}/results")
def experiment_results(experiment_id: str):
    return get_state().experiments.get_experiment_results(experiment_id).model_dump(mode="json")


@router.get("/{experiment_id}/assignments/{user_id}", response_model=AssignmentResponse)
def get_assignment(experiment_id: str, user_id: str):
    """Existing assignment only; never assigns."""
    variant = get_state().experiments.get_assignment(experiment_id, user_id)
    return AssignmentResponse(
        experiment_id=experiment_id,
        user_id=user_id,
        excluded=variant is None,
        variant=variant,
    )
