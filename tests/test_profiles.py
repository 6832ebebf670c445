"""
Profile Engine Tests

Signal ingestion, behavioral counters, the lifecycle ladder with its
churn/inactive override, interests, time-decayed affinities, completeness,
merges, and per-user serialization under concurrent ingestion.

Run:
----
    pytest tests/test_profiles.py -v
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from personalization import InvalidArgument, NotFound
from personalization.models import BehavioralCounters, Lifecycle, SignalType, Tier
from personalization.profiles import derive_lifecycle


def _record_many(profiles, user_id, signal_type, count, payload=None):
    for _ in range(count):
        profiles.record_signal(user_id, signal_type, payload or {})


class TestRecordSignal:
    """record_signal creates profiles and folds signals into counters and the matrix."""

    def test_first_signal_creates_profile(self, profiles, clock):
        signal = profiles.record_signal("alice", "view", {"product_id": "p1", "category": "shoes"})
        profile = profiles.get_profile("alice")

        assert signal.id.startswith("sig_")
        assert signal.item_id == "p1"
        assert profile.behavioral.page_views == 1
        assert profile.behavioral.first_seen == clock.now
        assert profile.lifecycle == Lifecycle.ANONYMOUS

    def test_profile_lookup_by_profile_id(self, profiles):
        profiles.record_signal("alice", "session_start", {"device": "mobile"})
        profile = profiles.get_profile("alice")
        assert profiles.get_profile(profile.id).user_id == "alice"

    def test_counters_and_devices(self, profiles):
        profiles.record_signal("alice", "session_start", {"device": "mobile", "browser": "safari"})
        profiles.record_signal("alice", "session_start", {"device": "desktop", "browser": "safari"})
        profiles.record_signal("alice", "purchase", {"product_id": "p1"})

        counters = profiles.get_profile("alice").behavioral
        assert counters.sessions == 2
        assert counters.purchases == 1
        assert counters.device_types == ["mobile", "desktop"]
        assert counters.browsers == ["safari"]

    def test_unknown_payload_keys_kept_as_attributes(self, profiles):
        signal = profiles.record_signal("alice", "click", {"product_id": "p1", "position": 3})
        assert signal.payload.attributes == {"position": 3}

    def test_rejects_unknown_type(self, profiles):
        with pytest.raises(InvalidArgument):
            profiles.record_signal("alice", "teleport", {})

    def test_rejects_missing_user(self, profiles):
        with pytest.raises(InvalidArgument):
            profiles.record_signal("", "view", {})

    def test_rejects_negative_weight(self, profiles):
        with pytest.raises(InvalidArgument):
            profiles.record_signal("alice", "view", {"product_id": "p1"}, weight=-1)

    def test_rejects_negative_rating(self, profiles):
        with pytest.raises(InvalidArgument):
            profiles.record_signal("alice", "rating", {"product_id": "p1", "rating": -2})

    def test_interaction_values_use_type_weights(self, core, profiles):
        profiles.record_signal("alice", "view", {"product_id": "p1"})
        profiles.record_signal("alice", "purchase", {"product_id": "p1"}, weight=2)
        profiles.record_signal("alice", "rating", {"product_id": "p2", "rating": 4})

        row = core.interaction_store.items_for("alice")
        assert row["p1"] == 1 + 10 * 2
        assert row["p2"] == 8

    def test_total_weighted_value_never_decreases(self, core, profiles):
        previous = 0.0
        for signal_type in ["view", "click", "add_to_cart", "purchase", "view", "rating"]:
            payload = {"product_id": "p1", "rating": 0} if signal_type == "rating" else {"product_id": "p1"}
            profiles.record_signal("alice", signal_type, payload)
            total = core.interaction_store.get("alice", "p1").total_weighted_value
            assert total >= previous
            previous = total

    def test_backfilled_timestamp_moves_first_seen(self, profiles, clock):
        profiles.record_signal("alice", "view", {"product_id": "p1"})
        earlier = clock.now - timedelta(days=3)
        profiles.record_signal("alice", "view", {"product_id": "p2"}, timestamp=earlier)

        counters = profiles.get_profile("alice").behavioral
        assert counters.first_seen == earlier
        assert counters.last_active == clock.now

    def test_reindex_rebuilds_matrix(self, core, profiles):
        profiles.record_signal("alice", "view", {"product_id": "p1"})
        profiles.record_signal("bob", "purchase", {"product_id": "p1"})
        profiles.record_signal("bob", "session_start", {})
        before = core.interaction_store.snapshot()

        assert profiles.reindex() == 2
        assert core.interaction_store.snapshot() == before

    def test_signal_recorded_during_reindex_counts_once(self, core, profiles, monkeypatch):
        profiles.record_signal("alice", "purchase", {"product_id": "p1"})
        history = core.signal_store.all

        def all_with_concurrent_write():
            profiles.record_signal("alice", "purchase", {"product_id": "p1"})
            return history()

        monkeypatch.setattr(core.signal_store, "all", all_with_concurrent_write)
        profiles.reindex()

        entry = core.interaction_store.get("alice", "p1")
        assert entry.total_weighted_value == 20.0
        assert len(entry.interactions) == 2

    def test_signal_recorded_after_snapshot_survives_reindex(self, core, profiles, monkeypatch):
        profiles.record_signal("alice", "purchase", {"product_id": "p1"})
        history = core.signal_store.all

        def all_then_write():
            signals = history()
            profiles.record_signal("alice", "purchase", {"product_id": "p1"})
            return signals

        monkeypatch.setattr(core.signal_store, "all", all_then_write)
        assert profiles.reindex() == 1
        assert core.interaction_store.get("alice", "p1").total_weighted_value == 20.0

    def test_reindex_under_concurrent_writes(self, core, profiles):
        def write(n):
            profiles.record_signal(f"user{n % 4}", "click", {"product_id": f"p{n % 3}"})

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(write, n) for n in range(200)]
            for _ in range(5):
                profiles.reindex()
            for future in futures:
                future.result()

        live = core.interaction_store.snapshot()
        profiles.reindex()
        assert core.interaction_store.snapshot() == live
        assert sum(sum(row.values()) for row in live.values()) == 200 * 2.0


class TestLifecycle:
    """Lifecycle ladder; the churn/inactive override is applied last."""

    def test_advocate_vip_then_churned(self, profiles, clock):
        _record_many(profiles, "alice", "session_start", 10)
        _record_many(profiles, "alice", "purchase", 6, {"product_id": "p1"})

        profile = profiles.get_profile("alice")
        assert (profile.lifecycle, profile.tier) == (Lifecycle.ADVOCATE, Tier.VIP)

        clock.advance(days=120)
        assert profiles.update_lifecycle_stage("alice") == Lifecycle.CHURNED
        assert profiles.get_profile("alice").tier == Tier.VIP

    @pytest.mark.parametrize(
        "purchases,sessions,page_views,expected",
        [
            (0, 0, 0, (Lifecycle.ANONYMOUS, Tier.NEW)),
            (0, 1, 0, (Lifecycle.VISITOR, Tier.NEW)),
            (0, 3, 10, (Lifecycle.ENGAGED, Tier.ACTIVE)),
            (0, 3, 9, (Lifecycle.VISITOR, Tier.NEW)),
            (1, 0, 0, (Lifecycle.CUSTOMER, Tier.ACTIVE)),
            (2, 0, 0, (Lifecycle.CUSTOMER, Tier.LOYAL)),
            (5, 0, 0, (Lifecycle.ADVOCATE, Tier.VIP)),
        ],
    )
    def test_ladder(self, clock, purchases, sessions, page_views, expected):
        counters = BehavioralCounters(
            purchases=purchases,
            sessions=sessions,
            page_views=page_views,
            first_seen=clock.now,
            last_active=clock.now,
        )
        assert derive_lifecycle(counters, clock.now) == expected

    def test_inactive_without_purchases(self, clock):
        counters = BehavioralCounters(sessions=4, first_seen=clock.now, last_active=clock.now)
        assert derive_lifecycle(counters, clock.now + timedelta(days=120))[0] == Lifecycle.VISITOR
        assert derive_lifecycle(counters, clock.now + timedelta(days=181))[0] == Lifecycle.INACTIVE

    def test_purchaser_idle_past_inactive_is_churned(self, clock):
        counters = BehavioralCounters(purchases=1, first_seen=clock.now, last_active=clock.now)
        assert derive_lifecycle(counters, clock.now + timedelta(days=200))[0] == Lifecycle.CHURNED

    def test_new_signal_reactivates(self, profiles, clock):
        profiles.record_signal("alice", "purchase", {"product_id": "p1"})
        clock.advance(days=100)
        assert profiles.update_lifecycle_stage("alice") == Lifecycle.CHURNED
        profiles.record_signal("alice", "view", {"product_id": "p2"})
        assert profiles.get_profile("alice").lifecycle == Lifecycle.CUSTOMER


class TestInterestsAndAffinities:
    """Interest extraction thresholds and the affinity bound."""

    def test_interest_threshold_and_tag_weight(self, profiles):
        _record_many(profiles, "alice", "view", 3, {"product_id": "p1", "category": "shoes", "tags": ["running"]})
        _record_many(profiles, "alice", "view", 6, {"product_id": "p2", "category": "hats", "tags": ["wool"]})

        interests = profiles.extract_interests("alice")
        labels = {(i.kind.value, i.label): i.score for i in interests}

        assert labels[("category", "shoes")] == 3
        assert labels[("category", "hats")] == 6
        assert labels[("category", "wool")] == 3
        assert ("category", "running") not in labels
        assert labels[("product", "p2")] == 6
        assert interests[0].label == "hats"

    def test_interest_lookback(self, profiles, clock):
        _record_many(profiles, "alice", "view", 5, {"category": "shoes"})
        clock.advance(days=31)
        assert profiles.extract_interests("alice") == []

    def test_affinity_bound(self, profiles, clock):
        profiles.record_signal("alice", "purchase", {"product_id": "p1", "category": "shoes"})
        profiles.record_signal("alice", "view", {"product_id": "p2", "brand": "acme"})
        clock.advance(days=10)
        profiles.record_signal("alice", "add_to_cart", {"product_id": "p3", "product_type": "gadget"})

        affinities = profiles.calculate_affinity_scores("alice")
        assert set(affinities) == {"shoes", "acme", "gadget"}
        assert all(0 <= score <= 100 for score in affinities.values())
        assert max(affinities.values()) == 100

    def test_affinity_decays_with_age(self, profiles, clock):
        profiles.record_signal("alice", "view", {"category": "old"})
        clock.advance(days=30)
        profiles.record_signal("alice", "view", {"category": "new"})

        affinities = profiles.calculate_affinity_scores("alice")
        assert affinities["new"] == 100
        # exp(-720 / 720)
        assert affinities["old"] == pytest.approx(36.79, abs=0.01)

    def test_no_signals_no_affinities(self, profiles):
        profiles.create_profile("alice")
        assert profiles.calculate_affinity_scores("alice") == {}

    def test_unknown_profile(self, profiles):
        with pytest.raises(NotFound):
            profiles.calculate_affinity_scores("nobody")


class TestProfileDetails:
    """Creation, preferences, segments, completeness, interest graph, search."""

    def test_create_profile_twice(self, profiles):
        profiles.create_profile("alice", email="a@example.com")
        with pytest.raises(InvalidArgument):
            profiles.create_profile("alice")

    def test_completeness_score(self, profiles):
        profiles.create_profile(
            "alice",
            email="a@example.com",
            demographics={"age": 30, "gender": "f", "location": {"city": "Oslo", "country": "NO"}},
        )
        assert profiles.calculate_profile_score("alice") == 30
        profiles.set_preference("alice", "notifications", "email", True)
        profiles.record_signal("alice", "purchase", {"product_id": "p1", "category": "shoes"})
        profiles.calculate_affinity_scores("alice")
        assert profiles.calculate_profile_score("alice") == 70

    def test_preferences(self, profiles):
        profiles.create_profile("alice")
        profiles.set_preference("alice", "ui", "theme", "dark")
        profiles.set_preference("alice", "ui", "density", "compact")
        assert profiles.get_preferences("alice", "ui") == {"theme": "dark", "density": "compact"}
        assert profiles.get_preferences("alice", "missing") == {}

    def test_segment_assignment_is_idempotent(self, profiles):
        profiles.create_profile("alice")
        profiles.assign_to_segment("alice", "seg_1", "Big spenders")
        segments = profiles.assign_to_segment("alice", "seg_1")
        assert [s.segment_id for s in segments] == ["seg_1"]

    def test_interest_graph_splits_sessions(self, profiles, clock):
        profiles.record_signal("alice", "view", {"category": "shoes"})
        clock.advance(minutes=10)
        profiles.record_signal("alice", "view", {"category": "socks"})
        clock.advance(minutes=45)
        profiles.record_signal("alice", "view", {"category": "hats"})

        graph = profiles.build_interest_graph("alice")
        assert graph == {"shoes": {"socks": 1}, "socks": {"shoes": 1}}

    def test_search_profiles(self, profiles):
        _record_many(profiles, "alice", "purchase", 5, {"product_id": "p1"})
        profiles.record_signal("bob", "session_start", {})
        profiles.assign_to_segment("bob", "seg_1")

        assert [p.user_id for p in profiles.search_profiles(lifecycle="advocate")] == ["alice"]
        assert [p.user_id for p in profiles.search_profiles(segments=["seg_1"])] == ["bob"]
        with pytest.raises(InvalidArgument):
            profiles.search_profiles(tier="platinum")

    def test_get_profile_returns_copy(self, profiles):
        profiles.record_signal("alice", "view", {})
        profile = profiles.get_profile("alice")
        profile.behavioral.page_views = 99
        assert profiles.get_profile("alice").behavioral.page_views == 1


class TestMerge:
    """Duplicate resolution folds sources into the target."""

    def test_merge_unions_and_deletes_sources(self, profiles, clock):
        profiles.record_signal("alice", "purchase", {"product_id": "p1", "category": "shoes"})
        profiles.calculate_affinity_scores("alice")
        clock.advance(days=1)
        _record_many(profiles, "alice2", "view", 4, {"product_id": "p2", "category": "hats", "device": "tablet"})
        profiles.calculate_affinity_scores("alice2")
        profiles.set_preference("alice2", "ui", "theme", "dark")
        profiles.assign_to_segment("alice2", "seg_1")

        merged = profiles.merge_profiles(["alice2"], "alice")

        assert merged.behavioral.purchases == 1
        assert merged.behavioral.page_views == 4
        assert merged.behavioral.last_active == clock.now
        assert merged.behavioral.device_types == ["tablet"]
        assert merged.affinities == {"shoes": 100, "hats": 100}
        assert merged.preferences == {"ui": {"theme": "dark"}}
        assert merged.has_segment("seg_1")
        assert merged.lifecycle == Lifecycle.CUSTOMER
        with pytest.raises(NotFound):
            profiles.get_profile("alice2")

    def test_merge_moves_history_to_target(self, core, profiles, clock):
        profiles.record_signal("alice", "purchase", {"product_id": "p1", "category": "shoes"})
        clock.advance(days=1)
        _record_many(profiles, "alice2", "view", 4, {"product_id": "p2", "category": "hats"})
        _record_many(profiles, "alice2", "view", 2, {"product_id": "p1", "category": "shoes"})

        profiles.merge_profiles(["alice2"], "alice")

        assert core.interaction_store.items_for("alice") == {"p1": 12.0, "p2": 4.0}
        assert core.interaction_store.items_for("alice2") == {}
        assert len(core.signal_store.for_user("alice")) == 7
        assert core.signal_store.for_user("alice2") == []

        affinities = profiles.calculate_affinity_scores("alice")
        assert set(affinities) == {"shoes", "hats"}
        assert affinities["shoes"] == 100
        assert 0 < affinities["hats"] < 100

        before = core.interaction_store.snapshot()
        profiles.reindex()
        assert core.interaction_store.snapshot() == before

    def test_merge_into_self_rejected(self, profiles):
        profiles.create_profile("alice")
        with pytest.raises(InvalidArgument):
            profiles.merge_profiles(["alice"], "alice")

    def test_merge_unknown_source(self, profiles):
        profiles.create_profile("alice")
        with pytest.raises(NotFound):
            profiles.merge_profiles(["ghost"], "alice")


class TestConcurrency:
    """Concurrent signals for one user must not lose counter or matrix updates."""

    def test_concurrent_signals_same_user(self, core, profiles):
        def worker(_):
            for _ in range(50):
                profiles.record_signal("alice", SignalType.VIEW, {"product_id": "p1"})

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(worker, range(8)))

        assert profiles.get_profile("alice").behavioral.page_views == 400
        entry = core.interaction_store.get("alice", "p1")
        assert entry.total_weighted_value == 400
        assert len(entry.interactions) == 400
        assert core.signal_store.count() == 400
