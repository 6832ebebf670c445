"""
Lifecycle ladder: derive lifecycle stage and tier from behavioral counters.

The ladder is evaluated top-down; the churn / inactivity override is applied
last and always wins over the ladder result (tier is left as the ladder set it).
"""

from datetime import datetime
from typing import Tuple

from ..models.config import DEFAULT_CONFIG, PersonalizationConfig
from ..models.profile import BehavioralCounters, Lifecycle, Tier


def days_since_active(counters: BehavioralCounters, now: datetime) -> float:
    return (now - counters.last_active).total_seconds() / 86400.0


def derive_lifecycle(
    counters: BehavioralCounters,
    now: datetime,
    config: PersonalizationConfig = DEFAULT_CONFIG,
) -> Tuple[Lifecycle, Tier]:
    purchases = counters.purchases
    if purchases >= 5:
        lifecycle, tier = Lifecycle.ADVOCATE, Tier.VIP
    elif purchases >= 2:
        lifecycle, tier = Lifecycle.CUSTOMER, Tier.LOYAL
    elif purchases == 1:
        lifecycle, tier = Lifecycle.CUSTOMER, Tier.ACTIVE
    elif counters.sessions >= 3 and counters.page_views >= 10:
        lifecycle, tier = Lifecycle.ENGAGED, Tier.ACTIVE
    elif counters.sessions >= 1:
        lifecycle, tier = Lifecycle.VISITOR, Tier.NEW
    else:
        lifecycle, tier = Lifecycle.ANONYMOUS, Tier.NEW

    idle_days = days_since_active(counters, now)
    if idle_days > config.churn_after_days and purchases > 0:
        lifecycle = Lifecycle.CHURNED
    elif idle_days > config.inactive_after_days:
        lifecycle = Lifecycle.INACTIVE
    return lifecycle, tier
