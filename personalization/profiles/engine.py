"""
Profile Engine — signal ingestion and per-user profile derivation.

record_signal appends to the signal store and, under the user's lock, updates
behavioral counters and the user-item matrix in one step. Interests,
affinities, and lifecycle are recomputed from the stored signals on demand.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..errors import InvalidArgument, NotFound
from ..models.config import PersonalizationConfig, resolve_config
from ..models.interaction import Interaction
from ..models.profile import (
    BehavioralCounters,
    Demographics,
    Interest,
    InterestKind,
    Lifecycle,
    SegmentAssignment,
    Tier,
    UserProfile,
)
from ..models.signal import BehavioralSignal, SignalPayload, SignalType, build_payload
from ..stores.interaction_store import InteractionStore
from ..stores.profile_store import ProfileStore
from ..stores.signal_store import SignalStore
from ..utils.scores import (
    age_hours,
    generate_id,
    normalize_to_max,
    signal_type_weight,
    time_decay,
    utc_now,
)
from .lifecycle import derive_lifecycle
from .scoring import completeness_score

logger = logging.getLogger(__name__)


def _as_utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


def _parse_signal_type(signal_type: Union[str, SignalType]) -> SignalType:
    try:
        return SignalType(signal_type)
    except ValueError:
        raise InvalidArgument(f"Unknown signal type: {signal_type!r}")


class ProfileEngine:
    """Per-user profile operations over the signal, profile, and interaction stores."""

    def __init__(
        self,
        profiles: ProfileStore,
        signals: SignalStore,
        interactions: InteractionStore,
        config: Optional[PersonalizationConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.profiles = profiles
        self.signals = signals
        self.interactions = interactions
        self.config = resolve_config(config)
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Lookup / creation
    # ------------------------------------------------------------------

    def _require(self, key: str) -> UserProfile:
        profile = self.profiles.get(key) if key else None
        if profile is None:
            raise NotFound(f"Profile not found: {key}")
        return profile

    def _new_profile(
        self,
        user_id: str,
        now: datetime,
        email: Optional[str] = None,
        demographics: Optional[Dict[str, Any]] = None,
        seen_at: Optional[datetime] = None,
    ) -> UserProfile:
        seen = seen_at or now
        return UserProfile(
            id=generate_id("prof"),
            user_id=user_id,
            email=email,
            demographics=Demographics.model_validate(demographics or {}),
            behavioral=BehavioralCounters(first_seen=seen, last_active=seen),
            created_at=now,
            updated_at=now,
        )

    def create_profile(
        self,
        user_id: str,
        email: Optional[str] = None,
        demographics: Optional[Dict[str, Any]] = None,
    ) -> UserProfile:
        if not user_id:
            raise InvalidArgument("user_id is required")
        with self.profiles.locked(user_id):
            if self.profiles.get(user_id) is not None:
                raise InvalidArgument(f"Profile already exists for user {user_id}")
            try:
                profile = self._new_profile(user_id, self._clock(), email, demographics)
            except ValidationError as e:
                raise InvalidArgument(str(e))
            self.profiles.save(profile)
            return profile.model_copy(deep=True)

    def get_profile(self, key: str) -> UserProfile:
        """Profile by user id or profile id (a copy; engine methods mutate)."""
        return self._require(key).model_copy(deep=True)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def record_signal(
        self,
        user_id: str,
        signal_type: Union[str, SignalType],
        payload: Union[Dict[str, Any], SignalPayload, None] = None,
        weight: float = 1.0,
        timestamp: Optional[datetime] = None,
    ) -> BehavioralSignal:
        """
        Append a signal and fold it into the user's profile and interaction row.

        The profile is created on the first signal for a user. Counters,
        lifecycle, and the (user, item) total are updated under the user lock.
        """
        if not user_id:
            raise InvalidArgument("user_id is required")
        stype = _parse_signal_type(signal_type)
        if not isinstance(weight, (int, float)) or not math.isfinite(weight) or weight < 0:
            raise InvalidArgument(f"weight must be a non-negative number, got {weight!r}")
        try:
            typed_payload = build_payload(stype, payload)
        except ValidationError as e:
            raise InvalidArgument(f"Invalid {stype.value} payload: {e}")
        rating = getattr(typed_payload, "rating", None)
        if rating is not None and rating < 0:
            raise InvalidArgument("rating must be non-negative")

        now = self._clock()
        at = _as_utc(timestamp) if timestamp is not None else now
        signal = BehavioralSignal(
            id=generate_id("sig"),
            user_id=user_id,
            signal_type=stype,
            payload=typed_payload,
            weight=float(weight),
            timestamp=at,
        )

        with self.profiles.locked(user_id):
            profile = self.profiles.get(user_id)
            if profile is None:
                profile = self._new_profile(user_id, now, seen_at=at)
                self.profiles.save(profile)
            self.signals.append(signal)
            self._apply_counters(profile, signal)
            if signal.item_id:
                self.interactions.record(user_id, signal.item_id, self._interaction(signal))
            self._refresh_lifecycle(profile, now)
            profile.updated_at = now
            self.profiles.save(profile)
        return signal

    def _apply_counters(self, profile: UserProfile, signal: BehavioralSignal) -> None:
        counters = profile.behavioral
        if signal.signal_type == SignalType.VIEW:
            counters.page_views += 1
        elif signal.signal_type == SignalType.SESSION_START:
            counters.sessions += 1
        elif signal.signal_type == SignalType.PURCHASE:
            counters.purchases += 1
        counters.last_active = max(counters.last_active, signal.timestamp)
        counters.first_seen = min(counters.first_seen, signal.timestamp)
        device = signal.payload.device
        if device and device not in counters.device_types:
            counters.device_types.append(device)
        browser = signal.payload.browser
        if browser and browser not in counters.browsers:
            counters.browsers.append(browser)

    def _interaction(self, signal: BehavioralSignal) -> Interaction:
        rating = getattr(signal.payload, "rating", None)
        return Interaction(
            signal_id=signal.id,
            type=signal.signal_type,
            weight=signal.weight,
            value=signal_type_weight(signal.signal_type, self.config, rating) * signal.weight,
            timestamp=signal.timestamp,
            rating=rating,
        )

    def _replay(self) -> Iterator[Tuple[str, str, Interaction]]:
        for signal in self.signals.all():
            if signal.item_id:
                yield signal.user_id, signal.item_id, self._interaction(signal)

    def reindex(self) -> int:
        """
        Rebuild the user-item matrix from the full signal history. Returns signals replayed.

        The snapshot and the swap happen inside the store's rebuild, so a signal
        recorded concurrently is counted exactly once.
        """
        replayed = self.interactions.rebuild(self._replay)
        logger.info("Reindexed interaction matrix from %d item signals", replayed)
        return replayed

    # ------------------------------------------------------------------
    # Derived profile fields
    # ------------------------------------------------------------------

    def extract_interests(
        self,
        user_id: str,
        lookback_days: Optional[int] = None,
        min_occurrences: Optional[float] = None,
    ) -> List[Interest]:
        """
        Top category/tag and product interests from recent signals.

        Categories count the signal weight, tags half of it. Entries under
        min_occurrences are dropped; up to 20 category and 10 product interests
        replace profile.interests.
        """
        cfg = self.config
        lookback = lookback_days if lookback_days is not None else cfg.interest_lookback_days
        threshold = min_occurrences if min_occurrences is not None else cfg.interest_min_occurrences
        with self.profiles.locked(self._require(user_id).user_id):
            profile = self._require(user_id)
            now = self._clock()
            signals = self.signals.for_user(profile.user_id, since=now - timedelta(days=lookback))

            category_count: Counter = Counter()
            product_count: Counter = Counter()
            for signal in signals:
                if signal.category:
                    category_count[signal.category] += signal.weight
                for tag in signal.tags:
                    category_count[tag] += signal.weight * cfg.tag_weight_factor
                if signal.item_id:
                    product_count[signal.item_id] += signal.weight

            categories = sorted(
                ((label, score) for label, score in category_count.items() if score >= threshold),
                key=lambda kv: kv[1],
                reverse=True,
            )
            products = sorted(
                ((label, score) for label, score in product_count.items() if score >= threshold),
                key=lambda kv: kv[1],
                reverse=True,
            )
            profile.interests = [
                Interest(label=label, score=score, kind=InterestKind.CATEGORY)
                for label, score in categories[: cfg.max_category_interests]
            ] + [
                Interest(label=label, score=score, kind=InterestKind.PRODUCT)
                for label, score in products[: cfg.max_product_interests]
            ]
            profile.updated_at = now
            self.profiles.save(profile)
            return [i.model_copy() for i in profile.interests]

    def calculate_affinity_scores(
        self,
        user_id: str,
        lookback_days: Optional[int] = None,
    ) -> Dict[str, float]:
        """
        Time-decayed affinity per category/brand/product type, scaled to 0-100.

        weight = type_weight * signal.weight * exp(-age_hours / 720); the
        strongest entity scores exactly 100. Overwrites profile.affinities.
        """
        cfg = self.config
        lookback = lookback_days if lookback_days is not None else cfg.affinity_lookback_days
        with self.profiles.locked(self._require(user_id).user_id):
            profile = self._require(user_id)
            now = self._clock()
            signals = self.signals.for_user(profile.user_id, since=now - timedelta(days=lookback))

            raw: Dict[str, float] = {}
            for signal in signals:
                entity = signal.affinity_entity
                if not entity:
                    continue
                decay = time_decay(age_hours(signal.timestamp, now), cfg.affinity_decay_hours)
                rating = getattr(signal.payload, "rating", None)
                weight = signal_type_weight(signal.signal_type, cfg, rating) * signal.weight * decay
                raw[entity] = raw.get(entity, 0.0) + weight

            profile.affinities = normalize_to_max(raw)
            profile.updated_at = now
            self.profiles.save(profile)
            return dict(profile.affinities)

    def _refresh_lifecycle(self, profile: UserProfile, now: datetime) -> Lifecycle:
        lifecycle, tier = derive_lifecycle(profile.behavioral, now, self.config)
        if lifecycle != profile.lifecycle or tier != profile.tier:
            logger.info(
                "Lifecycle change user=%s %s/%s -> %s/%s",
                profile.user_id, profile.lifecycle.value, profile.tier.value, lifecycle.value, tier.value,
            )
        profile.lifecycle = lifecycle
        profile.tier = tier
        return lifecycle

    def update_lifecycle_stage(self, user_id: str) -> Lifecycle:
        with self.profiles.locked(self._require(user_id).user_id):
            profile = self._require(user_id)
            now = self._clock()
            lifecycle = self._refresh_lifecycle(profile, now)
            profile.updated_at = now
            self.profiles.save(profile)
            return lifecycle

    def calculate_profile_score(self, user_id: str) -> int:
        with self.profiles.locked(self._require(user_id).user_id):
            profile = self._require(user_id)
            profile.completeness_score = completeness_score(profile)
            profile.updated_at = self._clock()
            self.profiles.save(profile)
            return profile.completeness_score

    # ------------------------------------------------------------------
    # Preferences and segments
    # ------------------------------------------------------------------

    def set_preference(self, user_id: str, category: str, key: str, value: Any) -> Dict[str, Dict[str, Any]]:
        if not category or not key:
            raise InvalidArgument("category and key are required")
        with self.profiles.locked(self._require(user_id).user_id):
            profile = self._require(user_id)
            profile.preferences.setdefault(category, {})[key] = value
            profile.updated_at = self._clock()
            self.profiles.save(profile)
            return {c: dict(p) for c, p in profile.preferences.items()}

    def get_preferences(self, user_id: str, category: Optional[str] = None) -> Dict[str, Any]:
        profile = self._require(user_id)
        if category:
            return dict(profile.preferences.get(category, {}))
        return {c: dict(p) for c, p in profile.preferences.items()}

    def assign_to_segment(
        self,
        user_id: str,
        segment_id: str,
        segment_name: Optional[str] = None,
        auto: bool = True,
    ) -> List[SegmentAssignment]:
        if not segment_id:
            raise InvalidArgument("segment_id is required")
        with self.profiles.locked(self._require(user_id).user_id):
            profile = self._require(user_id)
            now = self._clock()
            if not profile.has_segment(segment_id):
                profile.segments.append(
                    SegmentAssignment(
                        segment_id=segment_id, segment_name=segment_name, assigned_at=now, auto=auto
                    )
                )
            profile.updated_at = now
            self.profiles.save(profile)
            return [s.model_copy() for s in profile.segments]

    # ------------------------------------------------------------------
    # Interest graph
    # ------------------------------------------------------------------

    def build_interest_graph(self, user_id: str) -> Dict[str, Dict[str, int]]:
        """
        Category co-occurrence counts within sessions.

        Signals are split into sessions wherever consecutive signals are more
        than session_gap_minutes apart.
        """
        profile = self._require(user_id)
        gap = timedelta(minutes=self.config.session_gap_minutes)
        sessions: List[List[BehavioralSignal]] = []
        last: Optional[datetime] = None
        for signal in self.signals.for_user(profile.user_id):
            if last is None or signal.timestamp - last > gap:
                sessions.append([])
            sessions[-1].append(signal)
            last = signal.timestamp

        graph: Dict[str, Dict[str, int]] = {}
        for session in sessions:
            categories = [s.category for s in session if s.category]
            for i, a in enumerate(categories):
                for b in categories[i + 1:]:
                    graph.setdefault(a, {})
                    graph.setdefault(b, {})
                    graph[a][b] = graph[a].get(b, 0) + 1
                    graph[b][a] = graph[b].get(a, 0) + 1
        return graph

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge_profiles(self, source_ids: Sequence[str], target_id: str) -> UserProfile:
        """
        Fold duplicate profiles into the target and delete them.

        Counters are summed (earliest first_seen, latest last_active); interests
        and affinities are unioned keeping the max score; segments are unioned;
        source preferences win on conflict. The sources' signals and matrix rows
        move to the target, so later interest and affinity passes see the merged
        history. All involved users are locked for the duration so concurrent
        signals cannot interleave.
        """
        target = self._require(target_id)
        sources = [self._require(sid) for sid in source_ids]
        if any(s.id == target.id for s in sources):
            raise InvalidArgument("Target profile cannot be in its own source list")

        user_ids = [target.user_id] + [s.user_id for s in sources]
        with self.profiles.locked(*user_ids):
            # Re-resolve under lock in case a concurrent merge removed one.
            target = self._require(target.user_id)
            sources = [self._require(s.user_id) for s in sources]
            seen = set()
            for source in sources:
                if source.id in seen:
                    continue
                seen.add(source.id)
                self._merge_into(target, source)
                moved = self.signals.reassign(source.user_id, target.user_id)
                self.interactions.reassign(source.user_id, target.user_id)
                logger.debug("Moved %d signal(s) from %s to %s", moved, source.user_id, target.user_id)
                self.profiles.delete(source.user_id)
            now = self._clock()
            target.completeness_score = completeness_score(target)
            self._refresh_lifecycle(target, now)
            target.updated_at = now
            self.profiles.save(target)
            logger.info("Merged %d profile(s) into %s", len(seen), target.id)
            return target.model_copy(deep=True)

    @staticmethod
    def _merge_into(target: UserProfile, source: UserProfile) -> None:
        tc, sc = target.behavioral, source.behavioral
        tc.page_views += sc.page_views
        tc.sessions += sc.sessions
        tc.purchases += sc.purchases
        tc.first_seen = min(tc.first_seen, sc.first_seen)
        tc.last_active = max(tc.last_active, sc.last_active)
        for device in sc.device_types:
            if device not in tc.device_types:
                tc.device_types.append(device)
        for browser in sc.browsers:
            if browser not in tc.browsers:
                tc.browsers.append(browser)

        by_key = {(i.kind, i.label): i for i in target.interests}
        for interest in source.interests:
            existing = by_key.get((interest.kind, interest.label))
            if existing is not None:
                existing.score = max(existing.score, interest.score)
            else:
                copied = interest.model_copy()
                target.interests.append(copied)
                by_key[(copied.kind, copied.label)] = copied

        for entity, score in source.affinities.items():
            target.affinities[entity] = max(target.affinities.get(entity, 0.0), score)

        for category, prefs in source.preferences.items():
            target.preferences.setdefault(category, {}).update(prefs)

        for segment in source.segments:
            if not target.has_segment(segment.segment_id):
                target.segments.append(segment.model_copy())

    # ------------------------------------------------------------------
    # Search / analytics
    # ------------------------------------------------------------------

    def search_profiles(
        self,
        lifecycle: Optional[Union[str, Lifecycle]] = None,
        tier: Optional[Union[str, Tier]] = None,
        min_score: int = 0,
        interests: Optional[Sequence[str]] = None,
        segments: Optional[Sequence[str]] = None,
        limit: int = 50,
    ) -> List[UserProfile]:
        try:
            lifecycle = Lifecycle(lifecycle) if lifecycle else None
            tier = Tier(tier) if tier else None
        except ValueError as e:
            raise InvalidArgument(str(e))
        results = self.profiles.list()
        if lifecycle:
            results = [p for p in results if p.lifecycle == lifecycle]
        if tier:
            results = [p for p in results if p.tier == tier]
        if min_score > 0:
            results = [p for p in results if p.completeness_score >= min_score]
        if interests:
            wanted = set(interests)
            results = [p for p in results if any(i.label in wanted for i in p.interests)]
        if segments:
            wanted_segments = set(segments)
            results = [p for p in results if any(s.segment_id in wanted_segments for s in p.segments)]
        return [p.model_copy(deep=True) for p in results[:limit]]

    def get_profile_analytics(self) -> Dict[str, Any]:
        profiles = self.profiles.list()
        by_lifecycle: Counter = Counter(p.lifecycle.value for p in profiles)
        by_tier: Counter = Counter(p.tier.value for p in profiles)
        top_interests: Counter = Counter(i.label for p in profiles for i in p.interests)
        top_affinities: Counter = Counter(e for p in profiles for e in p.affinities)
        avg = round(sum(p.completeness_score for p in profiles) / len(profiles)) if profiles else 0
        return {
            "total": len(profiles),
            "by_lifecycle": dict(by_lifecycle),
            "by_tier": dict(by_tier),
            "avg_score": avg,
            "top_interests": dict(top_interests.most_common()),
            "top_affinities": dict(top_affinities.most_common()),
            "total_signals": self.signals.count(),
        }
