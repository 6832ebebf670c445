"""
Signal Store abstraction.

Append-only log of behavioral signals. The in-memory implementation is the
default; a persistent backend only needs to satisfy SignalStore.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from ..models.signal import BehavioralSignal


class SignalStore(Protocol):
    """Protocol for signal persistence. Signals are never mutated once appended."""

    def append(self, signal: BehavioralSignal) -> None:
        ...

    def for_user(self, user_id: str, since: Optional[datetime] = None) -> List[BehavioralSignal]:
        """Signals for the user, oldest first; only those strictly newer than `since` when given."""
        ...

    def all(self) -> List[BehavioralSignal]:
        ...

    def count(self) -> int:
        ...

    def reassign(self, from_user: str, to_user: str) -> int:
        """Move every signal of from_user to to_user. Returns signals moved."""
        ...


class InMemorySignalStore:
    """Signal store backed by per-user lists in process memory."""

    def __init__(self):
        self._by_user: Dict[str, List[BehavioralSignal]] = {}
        self._lock = threading.Lock()
        self._count = 0

    def append(self, signal: BehavioralSignal) -> None:
        with self._lock:
            self._by_user.setdefault(signal.user_id, []).append(signal)
            self._count += 1

    def for_user(self, user_id: str, since: Optional[datetime] = None) -> List[BehavioralSignal]:
        with self._lock:
            signals = list(self._by_user.get(user_id, []))
        if since is not None:
            signals = [s for s in signals if s.timestamp > since]
        return sorted(signals, key=lambda s: s.timestamp)

    def all(self) -> List[BehavioralSignal]:
        with self._lock:
            out = [s for signals in self._by_user.values() for s in signals]
        return sorted(out, key=lambda s: s.timestamp)

    def count(self) -> int:
        with self._lock:
            return self._count

    def reassign(self, from_user: str, to_user: str) -> int:
        with self._lock:
            moved = [s.model_copy(update={"user_id": to_user}) for s in self._by_user.pop(from_user, [])]
            if moved:
                self._by_user.setdefault(to_user, []).extend(moved)
            return len(moved)
