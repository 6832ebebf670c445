"""
Interaction Store abstraction (the sparse user-item matrix).

Each (user, item) update appends the interaction and grows the running total
under one lock, so scans never observe a half-applied update. Interactions are
keyed by signal id; recording the same signal twice is a no-op.
"""

import threading
from typing import Callable, Dict, Iterable, Optional, Protocol, Set, Tuple

from ..models.interaction import Interaction, ItemInteraction


class InteractionStore(Protocol):
    """Protocol for the user-item interaction matrix."""

    def record(self, user_id: str, item_id: str, interaction: Interaction) -> float:
        """Append one interaction and return the pair's new total weighted value."""
        ...

    def get(self, user_id: str, item_id: str) -> Optional[ItemInteraction]:
        ...

    def items_for(self, user_id: str) -> Dict[str, float]:
        """item_id -> total_weighted_value for one user (empty for unknown users)."""
        ...

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        """Consistent copy of user_id -> item_id -> total_weighted_value."""
        ...

    def history_snapshot(self) -> Dict[str, Dict[str, ItemInteraction]]:
        """Consistent copy of the matrix including interaction histories."""
        ...

    def clear(self) -> None:
        ...

    def rebuild(self, source: Callable[[], Iterable[Tuple[str, str, Interaction]]]) -> int:
        """
        Replace the matrix with the (user_id, item_id, interaction) triples from
        `source`, atomically with respect to record(). Returns triples consumed.
        """
        ...

    def reassign(self, from_user: str, to_user: str) -> None:
        """Fold from_user's row into to_user's, summing totals per item."""
        ...


class InMemoryInteractionStore:
    """Interaction matrix held in nested dicts in process memory."""

    def __init__(self):
        self._matrix: Dict[str, Dict[str, ItemInteraction]] = {}
        self._signal_ids: Set[str] = set()
        # Reentrant so a rebuild source may record on the same thread.
        self._lock = threading.RLock()

    def _add(self, user_id: str, item_id: str, interaction: Interaction) -> ItemInteraction:
        row = self._matrix.setdefault(user_id, {})
        entry = row.get(item_id)
        if entry is None:
            entry = row[item_id] = ItemInteraction()
        if interaction.signal_id not in self._signal_ids:
            self._signal_ids.add(interaction.signal_id)
            entry.interactions.append(interaction)
            entry.total_weighted_value += interaction.value
        return entry

    def record(self, user_id: str, item_id: str, interaction: Interaction) -> float:
        with self._lock:
            return self._add(user_id, item_id, interaction).total_weighted_value

    def get(self, user_id: str, item_id: str) -> Optional[ItemInteraction]:
        with self._lock:
            entry = self._matrix.get(user_id, {}).get(item_id)
            return _copy(entry) if entry is not None else None

    def items_for(self, user_id: str) -> Dict[str, float]:
        with self._lock:
            return {
                item_id: entry.total_weighted_value
                for item_id, entry in self._matrix.get(user_id, {}).items()
            }

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {
                user_id: {item_id: e.total_weighted_value for item_id, e in row.items()}
                for user_id, row in self._matrix.items()
            }

    def history_snapshot(self) -> Dict[str, Dict[str, ItemInteraction]]:
        with self._lock:
            return {
                user_id: {item_id: _copy(e) for item_id, e in row.items()}
                for user_id, row in self._matrix.items()
            }

    def clear(self) -> None:
        with self._lock:
            self._matrix = {}
            self._signal_ids = set()

    def rebuild(self, source: Callable[[], Iterable[Tuple[str, str, Interaction]]]) -> int:
        with self._lock:
            self.clear()
            consumed = 0
            for user_id, item_id, interaction in source():
                self._add(user_id, item_id, interaction)
                consumed += 1
            return consumed

    def reassign(self, from_user: str, to_user: str) -> None:
        with self._lock:
            source = self._matrix.pop(from_user, {})
            if not source:
                return
            row = self._matrix.setdefault(to_user, {})
            for item_id, moved in source.items():
                entry = row.get(item_id)
                if entry is None:
                    row[item_id] = moved
                    continue
                entry.interactions = sorted(entry.interactions + moved.interactions, key=lambda i: i.timestamp)
                entry.total_weighted_value += moved.total_weighted_value


def _copy(entry: ItemInteraction) -> ItemInteraction:
    # Interactions are frozen; a new list is enough.
    return ItemInteraction(
        interactions=list(entry.interactions),
        total_weighted_value=entry.total_weighted_value,
    )
