"""
Personalization configuration — signal weighting, profile derivation,
similarity, blending, and experiment statistics.

PersonalizationConfig defaults are defined here. The server may pass a dict
(e.g. from a JSON file named by PERSONALIZATION_CONFIG_PATH); from_dict() merges
it with these defaults.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator


def _default_signal_weights() -> Dict[str, float]:
    return {
        "view": 1.0,
        "click": 2.0,
        "add_to_cart": 5.0,
        "purchase": 10.0,
        "session_start": 1.0,
    }


class PersonalizationConfig(BaseModel):
    """Configuration for the personalization core."""

    # -------------------------------------------------------------------------
    # Signal weighting
    # weighted_value = signal_weights[type] * signal.weight
    # rating is special: weight = rating_multiplier * rating value
    # -------------------------------------------------------------------------

    signal_weights: Dict[str, float] = Field(default_factory=_default_signal_weights)
    rating_multiplier: float = 2.0

    # -------------------------------------------------------------------------
    # Interests
    # -------------------------------------------------------------------------

    interest_lookback_days: int = 30
    # Entries below this accumulated weight are dropped.
    interest_min_occurrences: float = 3.0
    # Tags count at this fraction of a direct category hit.
    tag_weight_factor: float = 0.5
    max_category_interests: int = 20
    max_product_interests: int = 10

    # -------------------------------------------------------------------------
    # Affinities
    # decay = exp(-age_hours / affinity_decay_hours). 720 hours = "30 days";
    # this is an e-folding time, not a half-life.
    # -------------------------------------------------------------------------

    affinity_lookback_days: int = 90
    affinity_decay_hours: float = 24 * 30

    # -------------------------------------------------------------------------
    # Lifecycle overrides
    # -------------------------------------------------------------------------

    churn_after_days: int = 90
    inactive_after_days: int = 180

    # Signals further apart than this start a new session in the interest graph.
    session_gap_minutes: int = 30

    # -------------------------------------------------------------------------
    # Similarity & collaborative filtering
    # -------------------------------------------------------------------------

    min_similarity: float = 0.3
    similar_user_neighbours: int = 20
    similar_item_neighbours: int = 10

    # -------------------------------------------------------------------------
    # Hybrid blend weights (caller-overridable per request)
    # -------------------------------------------------------------------------

    weight_collab_user: float = 0.3
    weight_collab_item: float = 0.3
    weight_content: float = 0.4

    # -------------------------------------------------------------------------
    # Popularity
    # -------------------------------------------------------------------------

    trending_window_days: int = 7
    fbt_min_support: int = 2

    # -------------------------------------------------------------------------
    # Experiments
    # -------------------------------------------------------------------------

    # Below this many users in either arm no z-test is run.
    min_sample_size: int = 30
    significance_alpha: float = 0.05
    # Fixed critical values for a two-tailed 95% / 80% power design.
    z_alpha: float = 1.96
    z_beta: float = 0.84
    # Advisory only: used to turn a sample size into a day estimate.
    daily_traffic: int = 1000

    @model_validator(mode="after")
    def check_ranges(self):
        for name in ("weight_collab_user", "weight_collab_item", "weight_content"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        for name in (
            "interest_lookback_days",
            "affinity_lookback_days",
            "trending_window_days",
            "affinity_decay_hours",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        return self

    @property
    def hybrid_weights(self) -> Dict[str, float]:
        return {
            "collab_user": self.weight_collab_user,
            "collab_item": self.weight_collab_item,
            "content": self.weight_content,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict) -> "PersonalizationConfig":
        """Create config from a nested dictionary (e.g., loaded from JSON)."""
        flat = {}
        for section in ("profiles", "similarity", "trending", "experiments"):
            if section in config_dict:
                flat.update(config_dict[section])
        if "signals" in config_dict:
            sig = dict(config_dict["signals"])
            if "weights" in sig:
                weights = _default_signal_weights()
                weights.update(sig.pop("weights"))
                flat["signal_weights"] = weights
            flat.update(sig)
        if "hybrid_weights" in config_dict:
            hw = config_dict["hybrid_weights"]
            if "collab_user" in hw:
                flat["weight_collab_user"] = hw["collab_user"]
            if "collab_item" in hw:
                flat["weight_collab_item"] = hw["collab_item"]
            if "content" in hw:
                flat["weight_content"] = hw["content"]
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in flat.items() if k in allowed}
        return cls.model_validate(filtered)


DEFAULT_CONFIG = PersonalizationConfig()


def resolve_config(config: Optional["PersonalizationConfig"]) -> "PersonalizationConfig":
    """Return config or DEFAULT_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_CONFIG
