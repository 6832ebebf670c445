"""
One recorded user event (view, click, purchase, ...).

Payloads are a tagged union keyed by signal type: item events carry product
metadata, ratings add a rating value, session starts carry client details.
Unknown keys land in `attributes` so newer emitters do not break ingestion.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SignalType(str, Enum):
    VIEW = "view"
    CLICK = "click"
    ADD_TO_CART = "add_to_cart"
    PURCHASE = "purchase"
    RATING = "rating"
    SESSION_START = "session_start"


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True)

    device: Optional[str] = None
    browser: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def collect_attributes(cls, data: Any) -> Any:
        """Move keys the payload does not declare into the attributes bag."""
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields)
        extra = {k: v for k, v in data.items() if k not in known}
        if not extra:
            return data
        out = {k: v for k, v in data.items() if k in known}
        out["attributes"] = {**data.get("attributes", {}), **extra}
        return out


class ItemPayload(_Payload):
    """Payload for view / click / add_to_cart / purchase."""

    kind: Literal["item"] = "item"
    product_id: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    brand: Optional[str] = None
    product_type: Optional[str] = None


class RatingPayload(ItemPayload):
    """Payload for rating: an item event plus the rating value."""

    kind: Literal["rating"] = "rating"
    rating: float = 0.0


class SessionPayload(_Payload):
    """Payload for session_start."""

    kind: Literal["session"] = "session"
    referrer: Optional[str] = None


SignalPayload = Union[ItemPayload, RatingPayload, SessionPayload]

_PAYLOAD_BY_TYPE = {
    SignalType.VIEW: ItemPayload,
    SignalType.CLICK: ItemPayload,
    SignalType.ADD_TO_CART: ItemPayload,
    SignalType.PURCHASE: ItemPayload,
    SignalType.RATING: RatingPayload,
    SignalType.SESSION_START: SessionPayload,
}


def build_payload(signal_type: SignalType, data: Union[Dict[str, Any], SignalPayload, None]) -> SignalPayload:
    """Validate raw payload data into the payload class for this signal type."""
    payload_cls = _PAYLOAD_BY_TYPE[signal_type]
    if isinstance(data, payload_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude={"kind"})
    return payload_cls.model_validate(dict(data or {}))


class BehavioralSignal(BaseModel):
    """A single immutable behavioral event."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    signal_type: SignalType
    payload: SignalPayload = Field(discriminator="kind")
    weight: float = 1.0
    timestamp: datetime

    @property
    def item_id(self) -> Optional[str]:
        return getattr(self.payload, "product_id", None)

    @property
    def category(self) -> Optional[str]:
        return getattr(self.payload, "category", None)

    @property
    def tags(self) -> List[str]:
        return list(getattr(self.payload, "tags", None) or [])

    @property
    def affinity_entity(self) -> Optional[str]:
        """Entity credited for affinity: category, else brand, else product type."""
        return (
            getattr(self.payload, "category", None)
            or getattr(self.payload, "brand", None)
            or getattr(self.payload, "product_type", None)
        )
