"""
ItemFeatures by item id, supplied by the catalog collaborator.
"""

import threading
from typing import Dict, Optional, Protocol

from ..models.item import ItemFeatures


class ItemCatalog(Protocol):
    def set(self, features: ItemFeatures) -> None:
        ...

    def get(self, item_id: str) -> Optional[ItemFeatures]:
        ...

    def all(self) -> Dict[str, ItemFeatures]:
        ...


class InMemoryItemCatalog:
    def __init__(self):
        self._items: Dict[str, ItemFeatures] = {}
        self._lock = threading.Lock()

    def set(self, features: ItemFeatures) -> None:
        with self._lock:
            self._items[features.item_id] = features

    def get(self, item_id: str) -> Optional[ItemFeatures]:
        with self._lock:
            return self._items.get(item_id)

    def all(self) -> Dict[str, ItemFeatures]:
        with self._lock:
            return dict(self._items)
