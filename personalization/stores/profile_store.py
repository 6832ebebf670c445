"""
Profile Store abstraction.

Profiles are keyed by user id with a secondary index by profile id. Mutation
of a profile is serialized per user through lock_for()/locked(); the store
hands out the live object so callers must hold the user lock while writing.
"""

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator, List, Optional, Protocol

from ..models.profile import UserProfile


class ProfileStore(Protocol):
    """Protocol for profile persistence with per-user write serialization."""

    def get(self, key: str) -> Optional[UserProfile]:
        """Return the profile for a user id or a profile id, else None."""
        ...

    def save(self, profile: UserProfile) -> None:
        ...

    def delete(self, user_id: str) -> bool:
        ...

    def list(self) -> List[UserProfile]:
        ...

    def locked(self, *user_ids: str):
        """Context manager holding the write locks of every given user."""
        ...


class InMemoryProfileStore:
    """Profile store backed by dicts in process memory."""

    def __init__(self):
        self._profiles: Dict[str, UserProfile] = {}
        self._user_by_profile_id: Dict[str, str] = {}
        self._user_locks: Dict[str, threading.RLock] = {}
        self._lock = threading.RLock()

    def lock_for(self, user_id: str) -> threading.RLock:
        with self._lock:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = self._user_locks[user_id] = threading.RLock()
            return lock

    @contextmanager
    def locked(self, *user_ids: str) -> Iterator[None]:
        # Sorted acquisition so concurrent merges over overlapping users cannot deadlock.
        with ExitStack() as stack:
            for uid in sorted(set(user_ids)):
                stack.enter_context(self.lock_for(uid))
            yield

    def get(self, key: str) -> Optional[UserProfile]:
        with self._lock:
            if key in self._profiles:
                return self._profiles[key]
            user_id = self._user_by_profile_id.get(key)
            return self._profiles.get(user_id) if user_id else None

    def save(self, profile: UserProfile) -> None:
        with self._lock:
            self._profiles[profile.user_id] = profile
            self._user_by_profile_id[profile.id] = profile.user_id

    def delete(self, user_id: str) -> bool:
        with self._lock:
            profile = self._profiles.pop(user_id, None)
            if profile is None:
                return False
            self._user_by_profile_id.pop(profile.id, None)
            return True

    def list(self) -> List[UserProfile]:
        with self._lock:
            return list(self._profiles.values())
