"""
Recommendation Engine Tests

Similarity symmetry, collaborative / content / hybrid strategies, cold start,
the trending window cutoff, frequently-bought-together support, and ranking.

Run:
----
    pytest tests/test_recommendations.py -v
"""

import pytest

from personalization import InvalidArgument, NotFound
from personalization.models import Algorithm
from personalization.utils import cosine_similarity, jaccard_similarity


def _purchase(profiles, user_id, *item_ids):
    for item_id in item_ids:
        profiles.record_signal(user_id, "purchase", {"product_id": item_id})


@pytest.fixture
def shoppers(profiles):
    """alice bought a, b; bob bought a, b, c; carol bought x."""
    _purchase(profiles, "alice", "a", "b")
    _purchase(profiles, "bob", "a", "b", "c")
    _purchase(profiles, "carol", "x")
    return profiles


class TestSimilarity:
    """Jaccard between users, cosine between items; both symmetric."""

    def test_jaccard_symmetry(self):
        a, b = {"p1", "p2"}, {"p2", "p3"}
        assert jaccard_similarity(a, b) == jaccard_similarity(b, a) == pytest.approx(1 / 3)
        assert jaccard_similarity(set(), set()) == 0.0

    def test_cosine_symmetry(self):
        v1 = {"u1": 10.0, "u2": 1.0}
        v2 = {"u1": 2.0, "u3": 5.0}
        assert cosine_similarity(v1, v2) == pytest.approx(cosine_similarity(v2, v1))
        assert cosine_similarity(v1, {}) == 0.0
        assert cosine_similarity({"u1": 3.0}, {"u1": 7.0}) == pytest.approx(1.0)

    def test_similar_users_symmetric(self, shoppers, recommender):
        from_alice = recommender.find_similar_users("alice")
        from_bob = recommender.find_similar_users("bob")

        assert [(e.b_id, round(e.score, 4)) for e in from_alice] == [("bob", 0.6667)]
        assert from_bob[0].b_id == "alice"
        assert from_bob[0].score == from_alice[0].score

    def test_similar_items_symmetric(self, shoppers, recommender):
        a_to_c = {e.b_id: e.score for e in recommender.find_similar_items("a")}
        c_to_a = {e.b_id: e.score for e in recommender.find_similar_items("c")}
        assert a_to_c["b"] == pytest.approx(1.0)
        assert a_to_c["c"] == pytest.approx(c_to_a["a"])
        assert "x" not in a_to_c

    def test_unknown_user_has_no_neighbours(self, shoppers, recommender):
        assert recommender.find_similar_users("nobody") == []

    def test_cache_until_invalidated(self, shoppers, recommender):
        assert [e.b_id for e in recommender.find_similar_users("alice", use_cache=True)] == ["bob"]
        _purchase(shoppers, "dave", "a", "b")
        assert [e.b_id for e in recommender.find_similar_users("alice", use_cache=True)] == ["bob"]

        recommender.invalidate_similarity_cache("user")
        assert [e.b_id for e in recommender.find_similar_users("alice", use_cache=True)] == ["dave", "bob"]

    def test_cached_lookup_honours_lower_threshold(self, shoppers, recommender):
        # dan shares only "a" with alice: Jaccard 1/5
        _purchase(shoppers, "dan", "a", "d", "e", "f")
        assert [e.b_id for e in recommender.find_similar_users("alice", min_similarity=0.5)] == ["bob"]

        cached = recommender.find_similar_users("alice", min_similarity=0.1, use_cache=True)
        fresh = recommender.find_similar_users("alice", min_similarity=0.1)
        assert [e.b_id for e in cached] == [e.b_id for e in fresh] == ["bob", "dan"]

    def test_cached_item_lookup_honours_lower_threshold(self, shoppers, recommender):
        assert [e.b_id for e in recommender.find_similar_items("a", min_similarity=0.9)] == ["b"]
        cached = recommender.find_similar_items("a", min_similarity=0.1, use_cache=True)
        assert {e.b_id for e in cached} == {"b", "c"}

    def test_threshold_applies_before_limit(self, shoppers, recommender):
        _purchase(shoppers, "dan", "a", "d", "e", "f")

        neighbours = recommender.find_similar_users("alice", limit=10, min_similarity=0.1)
        assert [e.b_id for e in neighbours] == ["bob", "dan"]
        assert all(e.score >= 0.1 for e in neighbours)
        assert [e.b_id for e in recommender.find_similar_users("alice", limit=1, min_similarity=0.1)] == ["bob"]
        assert recommender.find_similar_users("alice", limit=10, min_similarity=0.9) == []


class TestCollaborative:
    """User-based and item-based collaborative filtering."""

    def test_user_based(self, shoppers, recommender):
        recs = recommender.collaborative_filtering_user_based("alice")
        assert [r.item_id for r in recs] == ["c"]
        assert recs[0].score == pytest.approx(10 * 2 / 3)
        assert recs[0].algorithm == Algorithm.COLLABORATIVE_USER

    def test_item_based(self, shoppers, recommender):
        recs = recommender.collaborative_filtering_item_based("alice")
        assert [r.item_id for r in recs] == ["c"]
        # a and b each contribute 10 * cos = 10 / sqrt(2)
        assert recs[0].score == pytest.approx(20 / 2 ** 0.5)
        assert recs[0].algorithm == Algorithm.COLLABORATIVE_ITEM

    def test_weak_peers_excluded_so_fewer_than_limit(self, shoppers, recommender):
        # dan (Jaccard 0.2 with alice) falls under the default 0.3 threshold
        _purchase(shoppers, "dan", "a", "d", "e", "f")
        recs = recommender.collaborative_filtering_user_based("alice", limit=10)
        assert [r.item_id for r in recs] == ["c"]
        assert recs[0].score == pytest.approx(10 * 2 / 3)

    def test_never_recommends_held_items(self, shoppers, recommender):
        recs = recommender.collaborative_filtering_user_based("bob")
        assert not {"a", "b", "c"} & {r.item_id for r in recs}


class TestContentBased:
    """Feature-profile matching against the catalog."""

    @pytest.fixture(autouse=True)
    def catalog(self, recommender):
        recommender.set_item_features("a", {"price": 10, "tags": ["running", "outdoor"], "color": "red"})
        recommender.set_item_features("c", {"price": 10, "tags": ["running"]})
        recommender.set_item_features("d", {"tags": ["formal"]})

    def test_feature_classification(self, core):
        features = core.catalog.get("a")
        assert features.numeric == {"price": 10.0}
        assert features.categorical == {"color": "red"}
        assert features.tags == {"tags": ["running", "outdoor"]}

    def test_content_based(self, profiles, recommender):
        _purchase(profiles, "alice", "a")
        recs = recommender.content_based_filtering("alice")

        assert [r.item_id for r in recs] == ["c"]
        assert recs[0].confidence == pytest.approx(0.2)
        assert recs[0].algorithm == Algorithm.CONTENT

    def test_similar_items_by_content(self, recommender):
        recommender.set_item_features("e", {"color": "red", "tags": ["running"]})
        recommender.set_item_features("f", {"color": "blue"})
        recs = recommender.get_similar_items("e", method="content")
        # a shares the color and the tag; c only the tag
        assert [(r.item_id, r.score) for r in recs] == [("a", 1.0), ("c", 0.5)]


class TestHybrid:
    """Weighted blend; cold start returns an empty list."""

    def test_cold_start(self, recommender):
        assert recommender.hybrid_recommendation("new_user") == []

    def test_blend(self, shoppers, recommender):
        recs = recommender.hybrid_recommendation("alice")
        expected = 0.3 * (10 * 2 / 3) + 0.3 * (20 / 2 ** 0.5)
        assert [r.item_id for r in recs] == ["c"]
        assert recs[0].score == pytest.approx(expected)
        assert recs[0].algorithm == Algorithm.HYBRID

    def test_weight_override(self, shoppers, recommender):
        recs = recommender.hybrid_recommendation("alice", weights={"collab_item": 0})
        assert recs[0].score == pytest.approx(0.3 * (10 * 2 / 3))

    def test_rejects_bad_weights(self, shoppers, recommender):
        with pytest.raises(InvalidArgument):
            recommender.hybrid_recommendation("alice", weights={"content": -1})
        with pytest.raises(InvalidArgument):
            recommender.hybrid_recommendation("alice", weights={"magic": 1})


class TestPopularity:
    """Trending window and frequently bought together."""

    def test_trending_window(self, profiles, recommender, clock):
        for _ in range(9):
            profiles.record_signal("viewer", "view", {"product_id": "old"})
        clock.advance(days=10)
        profiles.record_signal("buyer", "purchase", {"product_id": "new"})

        recent = recommender.get_trending_items(time_window_days=7)
        assert [(r.item_id, r.score) for r in recent] == [("new", 10.0)]

        month = recommender.get_trending_items(time_window_days=30)
        assert [r.item_id for r in month] == ["new", "old"]

    def test_trending_rejects_bad_window(self, recommender):
        with pytest.raises(InvalidArgument):
            recommender.get_trending_items(time_window_days=0)

    def test_frequently_bought_together(self, profiles, recommender):
        _purchase(profiles, "u1", "x", "y")
        _purchase(profiles, "u2", "x", "y")
        _purchase(profiles, "u3", "x", "z")
        profiles.record_signal("u4", "view", {"product_id": "x"})

        recs = recommender.get_frequently_bought_together("x")
        assert [r.item_id for r in recs] == ["y"]
        assert recs[0].support == pytest.approx(2 / 3)

        loose = recommender.get_frequently_bought_together("x", min_support=1)
        assert [r.item_id for r in loose] == ["y", "z"]

    def test_fbt_without_purchasers(self, recommender):
        assert recommender.get_frequently_bought_together("nothing") == []


class TestSimilarItemsAndRanking:
    def test_similar_items_unknown(self, recommender):
        with pytest.raises(NotFound):
            recommender.get_similar_items("ghost")

    def test_similar_items_bad_method(self, shoppers, recommender):
        with pytest.raises(InvalidArgument):
            recommender.get_similar_items("a", method="magic")

    def test_similar_items_collaborative(self, shoppers, recommender):
        recs = recommender.get_similar_items("a")
        assert recs[0].item_id == "b"
        assert recs[0].algorithm == Algorithm.SIMILAR_ITEMS

    def test_rank_by_popularity(self, profiles, recommender):
        _purchase(profiles, "alice", "a")
        profiles.record_signal("bob", "view", {"product_id": "b"})
        _purchase(profiles, "bob", "c")

        ranked = recommender.rank_items("alice", ["a", "b", "c", "z"], algorithm="popularity")
        assert [r.item_id for r in ranked] == ["c", "b", "a", "z"]
        assert [r.rank for r in ranked] == [1, 2, 3, 4]
        assert ranked[2].score == 0

    def test_rank_rejects_unknown_algorithm(self, recommender):
        with pytest.raises(InvalidArgument):
            recommender.rank_items("alice", ["a"], algorithm="random")

    def test_analytics(self, shoppers, recommender):
        recommender.set_item_features("a", {"price": 1})
        recommender.set_item_features("q", {"price": 2})
        stats = recommender.get_recommendation_analytics()
        assert stats["total_users"] == 3
        assert stats["total_interactions"] == 6
        assert stats["coverage_rate"] == 50.0
