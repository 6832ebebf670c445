"""
One row of the sparse user-item matrix.

total_weighted_value only ever grows; it is rebuilt from scratch only by a
full reindex from the signal store.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .signal import SignalType


class Interaction(BaseModel):
    """A single weighted contribution to a (user, item) pair."""

    model_config = ConfigDict(frozen=True)

    signal_id: str
    type: SignalType
    weight: float
    value: float
    timestamp: datetime
    rating: Optional[float] = None


class ItemInteraction(BaseModel):
    """All interactions of one user with one item, plus their running total."""

    interactions: List[Interaction] = Field(default_factory=list)
    total_weighted_value: float = 0.0

    def has_type(self, signal_type: SignalType) -> bool:
        return any(i.type == signal_type for i in self.interactions)
