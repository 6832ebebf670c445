"""
Recommendation Engine — similarity, collaborative, content, hybrid, and
popularity strategies over the interaction matrix and item catalog.

Every strategy reads a snapshot of the matrix taken under the store lock, so
scans may be stale but never see a half-applied (user, item) update.
Cold-start users get empty lists, not errors.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import InvalidArgument, NotFound
from ..models.config import PersonalizationConfig, resolve_config
from ..models.item import ItemFeatures
from ..models.recommendation import Algorithm, Recommendation, SimilarityEdge, SimilarityKind
from ..stores.catalog import ItemCatalog
from ..stores.interaction_store import InteractionStore
from ..stores.similarity_cache import InMemorySimilarityCache, SimilarityCache
from ..utils.scores import utc_now
from . import collaborative, content, hybrid, popularity
from .similarity import Matrix, content_similarity, invert_matrix, similar_items, similar_users

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Recommendation operations; all return lists of Recommendation."""

    def __init__(
        self,
        interactions: InteractionStore,
        catalog: ItemCatalog,
        similarity_cache: Optional[SimilarityCache] = None,
        config: Optional[PersonalizationConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.interactions = interactions
        self.catalog = catalog
        self.similarity_cache = similarity_cache if similarity_cache is not None else InMemorySimilarityCache()
        self.config = resolve_config(config)
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def set_item_features(self, item_id: str, attributes: Union[Mapping[str, Any], ItemFeatures]) -> ItemFeatures:
        if not item_id:
            raise InvalidArgument("item_id is required")
        if isinstance(attributes, ItemFeatures):
            features = attributes.model_copy(update={"item_id": item_id})
        else:
            features = ItemFeatures.from_attributes(item_id, dict(attributes))
        self.catalog.set(features)
        return features

    # ------------------------------------------------------------------
    # Similarity
    # ------------------------------------------------------------------

    def _edges(
        self,
        kind: SimilarityKind,
        source_id: str,
        pairs: List[Tuple[str, float]],
    ) -> List[SimilarityEdge]:
        now = self._clock()
        edges = [
            SimilarityEdge(a_id=source_id, b_id=other, kind=kind, score=score, computed_at=now)
            for other, score in pairs
        ]
        self.similarity_cache.put(kind, source_id, edges)
        return edges

    @staticmethod
    def _filtered(edges: List[SimilarityEdge], min_similarity: float, limit: int) -> List[SimilarityEdge]:
        return [e for e in edges if e.score >= min_similarity][:limit]

    def find_similar_users(
        self,
        user_id: str,
        limit: int = 10,
        min_similarity: Optional[float] = None,
        use_cache: bool = False,
        matrix: Optional[Matrix] = None,
    ) -> List[SimilarityEdge]:
        """Jaccard neighbours of user_id. Filtered by min_similarity before truncation."""
        threshold = self.config.min_similarity if min_similarity is None else min_similarity
        if use_cache:
            cached = self.similarity_cache.get(SimilarityKind.USER, user_id)
            if cached is not None:
                return self._filtered(cached, threshold, limit)
        matrix = matrix if matrix is not None else self.interactions.snapshot()
        if not matrix.get(user_id):
            return []
        # Cache every neighbour; thresholds apply on read.
        pairs = similar_users(user_id, matrix, 0.0)
        return self._filtered(self._edges(SimilarityKind.USER, user_id, pairs), threshold, limit)

    def find_similar_items(
        self,
        item_id: str,
        limit: int = 10,
        min_similarity: Optional[float] = None,
        use_cache: bool = False,
        by_item: Optional[Matrix] = None,
    ) -> List[SimilarityEdge]:
        """Cosine neighbours of item_id in user space. Items with no interactions have none."""
        threshold = self.config.min_similarity if min_similarity is None else min_similarity
        if use_cache:
            cached = self.similarity_cache.get(SimilarityKind.ITEM, item_id)
            if cached is not None:
                return self._filtered(cached, threshold, limit)
        by_item = by_item if by_item is not None else invert_matrix(self.interactions.snapshot())
        if item_id not in by_item:
            return []
        pairs = similar_items(item_id, by_item, 0.0)
        return self._filtered(self._edges(SimilarityKind.ITEM, item_id, pairs), threshold, limit)

    def invalidate_similarity_cache(self, kind: Optional[Union[str, SimilarityKind]] = None) -> None:
        """Drop cached neighbour lists (all, or one kind) so the next lookup recomputes."""
        try:
            resolved = SimilarityKind(kind) if kind else None
        except ValueError:
            raise InvalidArgument(f"Unknown similarity kind: {kind!r}")
        self.similarity_cache.invalidate(resolved)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def collaborative_filtering_user_based(
        self,
        user_id: str,
        limit: int = 10,
        matrix: Optional[Matrix] = None,
    ) -> List[Recommendation]:
        matrix = matrix if matrix is not None else self.interactions.snapshot()
        neighbours = self.find_similar_users(
            user_id, limit=self.config.similar_user_neighbours, matrix=matrix
        )
        pairs = [(e.b_id, e.score) for e in neighbours]
        return collaborative.user_based(user_id, matrix, pairs, limit)

    def collaborative_filtering_item_based(
        self,
        user_id: str,
        limit: int = 10,
        matrix: Optional[Matrix] = None,
    ) -> List[Recommendation]:
        matrix = matrix if matrix is not None else self.interactions.snapshot()
        row = matrix.get(user_id, {})
        if not row:
            return []
        by_item = invert_matrix(matrix)

        def neighbours_of(item_id: str) -> List[Tuple[str, float]]:
            edges = self.find_similar_items(
                item_id, limit=self.config.similar_item_neighbours, by_item=by_item
            )
            return [(e.b_id, e.score) for e in edges]

        return collaborative.item_based(row, neighbours_of, limit)

    def content_based_filtering(
        self,
        user_id: str,
        limit: int = 10,
        matrix: Optional[Matrix] = None,
    ) -> List[Recommendation]:
        row = matrix.get(user_id, {}) if matrix is not None else self.interactions.items_for(user_id)
        return content.content_based(row, self.catalog.all(), limit)

    def hybrid_recommendation(
        self,
        user_id: str,
        limit: int = 10,
        weights: Optional[Mapping[str, float]] = None,
    ) -> List[Recommendation]:
        """
        Weighted blend of user-based, item-based, and content-based results.
        Each strategy runs at limit * 2; weights override the configured defaults
        per key (collab_user, collab_item, content).
        """
        resolved = hybrid.resolve_weights(self.config.hybrid_weights, weights)
        matrix = self.interactions.snapshot()
        if not matrix.get(user_id):
            return []
        depth = limit * 2
        results = {
            "collab_user": self.collaborative_filtering_user_based(user_id, depth, matrix=matrix),
            "collab_item": self.collaborative_filtering_item_based(user_id, depth, matrix=matrix),
            "content": self.content_based_filtering(user_id, depth, matrix=matrix),
        }
        logger.debug(
            "Hybrid candidates for %s: %s", user_id, {k: len(v) for k, v in results.items()}
        )
        return hybrid.blend(results, resolved, limit)

    def get_trending_items(self, time_window_days: Optional[int] = None, limit: int = 10) -> List[Recommendation]:
        days = self.config.trending_window_days if time_window_days is None else time_window_days
        if days <= 0:
            raise InvalidArgument("time_window_days must be positive")
        cutoff = self._clock() - timedelta(days=days)
        return popularity.trending(self.interactions.history_snapshot(), cutoff, limit)

    def get_frequently_bought_together(
        self,
        item_id: str,
        limit: int = 5,
        min_support: Optional[int] = None,
    ) -> List[Recommendation]:
        support = self.config.fbt_min_support if min_support is None else min_support
        return popularity.frequently_bought_together(
            item_id, self.interactions.history_snapshot(), support, limit
        )

    def get_similar_items(self, item_id: str, limit: int = 10, method: str = "collaborative") -> List[Recommendation]:
        if method == "collaborative":
            by_item = invert_matrix(self.interactions.snapshot())
            if item_id not in by_item and self.catalog.get(item_id) is None:
                raise NotFound(f"Item not found: {item_id}")
            edges = self.find_similar_items(item_id, limit=limit, by_item=by_item)
            return [
                Recommendation(
                    item_id=e.b_id, score=e.score, algorithm=Algorithm.SIMILAR_ITEMS, confidence=e.score
                )
                for e in edges
            ]
        if method == "content":
            source = self.catalog.get(item_id)
            if source is None:
                raise NotFound(f"Item not found in catalog: {item_id}")
            scored = []
            for other_id, features in self.catalog.all().items():
                if other_id == item_id:
                    continue
                sim = content_similarity(source, features)
                if sim > 0:
                    scored.append((other_id, sim))
            scored.sort(key=lambda kv: kv[1], reverse=True)
            return [
                Recommendation(item_id=i, score=s, algorithm=Algorithm.SIMILAR_ITEMS, confidence=s)
                for i, s in scored[:limit]
            ]
        raise InvalidArgument(f"Unknown similarity method: {method!r}")

    def rank_items(self, user_id: str, item_ids: Sequence[str], algorithm: str = "hybrid") -> List[Recommendation]:
        """
        Personalized ordering of a caller-supplied item list. Items the user
        already interacted with score 0; ranks run 1..n.
        """
        if algorithm not in ("hybrid", "popularity"):
            raise InvalidArgument(f"Unknown ranking algorithm: {algorithm!r}")
        matrix = self.interactions.snapshot()
        own = matrix.get(user_id, {})
        if algorithm == "popularity":
            totals: Dict[str, float] = {}
            for row in matrix.values():
                for item_id, value in row.items():
                    totals[item_id] = totals.get(item_id, 0.0) + value
            lookup = {i: (s, min(s / 100, 1.0)) for i, s in totals.items()}
            algo = Algorithm.POPULARITY
        else:
            recs = self.hybrid_recommendation(user_id, limit=100)
            lookup = {r.item_id: (r.score, r.confidence) for r in recs}
            algo = Algorithm.HYBRID

        ranked = []
        for item_id in item_ids:
            score, confidence = (0.0, 0.0) if item_id in own else lookup.get(item_id, (0.0, 0.0))
            ranked.append(Recommendation(item_id=item_id, score=score, algorithm=algo, confidence=confidence))
        ranked.sort(key=lambda r: r.score, reverse=True)
        for index, rec in enumerate(ranked):
            rec.rank = index + 1
        return ranked

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def get_recommendation_analytics(self) -> Dict[str, float]:
        matrix = self.interactions.snapshot()
        catalog = self.catalog.all()
        total_pairs = sum(len(row) for row in matrix.values())
        touched = {item_id for row in matrix.values() for item_id in row}
        return {
            "total_users": len(matrix),
            "total_items": len(catalog),
            "total_interactions": total_pairs,
            "avg_interactions_per_user": total_pairs / len(matrix) if matrix else 0.0,
            "coverage_rate": len(touched & set(catalog)) / len(catalog) * 100 if catalog else 0.0,
        }
