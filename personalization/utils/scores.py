"""
Score helpers: signal weighting, time decay, normalization, and ids.
"""

import math
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from ..models.config import PersonalizationConfig
from ..models.signal import SignalType


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id(prefix: str) -> str:
    """Opaque id such as 'sig_3f9a0c1b2d4e'."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def signal_type_weight(
    signal_type: SignalType,
    config: PersonalizationConfig,
    rating: Optional[float] = None,
) -> float:
    """
    Canonical weight of a signal type.
    view=1, click=2, add_to_cart=5, purchase=10, rating=2 x rating value.
    """
    if signal_type == SignalType.RATING:
        return config.rating_multiplier * (rating or 0.0)
    return config.signal_weights.get(signal_type.value, 1.0)


def age_hours(timestamp: datetime, now: datetime) -> float:
    return (now - timestamp).total_seconds() / 3600.0


def time_decay(hours_old: float, decay_hours: float = 24 * 30) -> float:
    """
    Exponential decay exp(-hours / decay_hours).
    The default 720h constant is the "30 day" decay: value falls to 1/e after
    30 days, not to one half.
    """
    return math.exp(-hours_old / decay_hours)


def normalize_to_max(scores: Dict[str, float], scale: float = 100.0) -> Dict[str, float]:
    """Scale values so the maximum maps exactly to `scale`; all-zero input stays zero."""
    if not scores:
        return {}
    peak = max(scores.values())
    if peak <= 0:
        return {k: 0.0 for k in scores}
    return {k: round(v / peak * scale, 2) for k, v in scores.items()}
