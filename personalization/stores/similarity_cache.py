"""
Last computed similarity edges per (kind, source id).

No freshness guarantee: entries are replaced whenever a similarity scan runs
and otherwise live until invalidated.
"""

import threading
from typing import Dict, List, Optional, Protocol, Tuple

from ..models.recommendation import SimilarityEdge, SimilarityKind


class SimilarityCache(Protocol):
    def put(self, kind: SimilarityKind, source_id: str, edges: List[SimilarityEdge]) -> None:
        ...

    def get(self, kind: SimilarityKind, source_id: str) -> Optional[List[SimilarityEdge]]:
        ...

    def invalidate(self, kind: Optional[SimilarityKind] = None) -> None:
        ...


class InMemorySimilarityCache:
    def __init__(self):
        self._edges: Dict[Tuple[SimilarityKind, str], List[SimilarityEdge]] = {}
        self._lock = threading.Lock()

    def put(self, kind: SimilarityKind, source_id: str, edges: List[SimilarityEdge]) -> None:
        with self._lock:
            self._edges[(kind, source_id)] = list(edges)

    def get(self, kind: SimilarityKind, source_id: str) -> Optional[List[SimilarityEdge]]:
        with self._lock:
            edges = self._edges.get((kind, source_id))
            return list(edges) if edges is not None else None

    def invalidate(self, kind: Optional[SimilarityKind] = None) -> None:
        with self._lock:
            if kind is None:
                self._edges = {}
            else:
                self._edges = {k: v for k, v in self._edges.items() if k[0] != kind}
