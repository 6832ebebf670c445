"""
Item feature model: catalog attributes used by content-based filtering.

Supplied by the catalog collaborator; read-only to the recommendation engine.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ItemFeatures(BaseModel):
    item_id: str
    numeric: Dict[str, float] = Field(default_factory=dict)
    categorical: Dict[str, str] = Field(default_factory=dict)
    tags: Dict[str, List[str]] = Field(default_factory=dict)

    @classmethod
    def from_attributes(cls, item_id: str, attributes: Dict[str, Any]) -> "ItemFeatures":
        """Classify a raw attribute dict: numbers, strings, and lists of tags."""
        numeric: Dict[str, float] = {}
        categorical: Dict[str, str] = {}
        tags: Dict[str, List[str]] = {}
        for key, value in attributes.items():
            if key in ("item_id", "updated_at"):
                continue
            if isinstance(value, bool):
                categorical[key] = str(value).lower()
            elif isinstance(value, (int, float)):
                numeric[key] = float(value)
            elif isinstance(value, str):
                categorical[key] = value
            elif isinstance(value, (list, tuple, set)):
                tags[key] = [str(v) for v in value]
        return cls(item_id=item_id, numeric=numeric, categorical=categorical, tags=tags)

    def feature_count(self) -> int:
        return len(self.numeric) + len(self.categorical) + len(self.tags)
