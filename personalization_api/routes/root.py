"""Root and health endpoints."""

from fastapi import APIRouter

from personalization import __version__

from ..state import get_state

router = APIRouter()


@router.get("/")
def root():
    state = get_state()
    return {
        "name": "Personalization API",
        "version": __version__,
        "status": "ready",
        "counts": {
            "profiles": len(state.core.profile_store.list()),
            "signals": state.core.signal_store.count(),
            "items": len(state.core.catalog.all()),
            "experiments": len(state.core.experiment_store.list_experiments()),
        },
        "endpoints": {
            "profiles": ["/api/profiles", "/api/profiles/{user_id}/signals", "/api/profiles/merge"],
            "recommendations": [
                "/api/recommendations/users/{user_id}/hybrid",
                "/api/recommendations/trending",
                "/api/recommendations/rank",
            ],
            "experiments": [
                "/api/experiments",
                "/api/experiments/{id}/assign",
                "/api/experiments/{id}/results",
            ],
        },
    }


@router.get("/api/health")
def health():
    state = get_state()
    return {
        "status": "healthy",
        "config_path": str(state.config.personalization_config_path or ""),
    }
