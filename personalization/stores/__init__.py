"""Pluggable key-indexed stores: signals, profiles, interactions, catalog, similarity, experiments."""

from .catalog import InMemoryItemCatalog, ItemCatalog
from .experiment_store import ExperimentStore, InMemoryExperimentStore
from .interaction_store import InMemoryInteractionStore, InteractionStore
from .profile_store import InMemoryProfileStore, ProfileStore
from .signal_store import InMemorySignalStore, SignalStore
from .similarity_cache import InMemorySimilarityCache, SimilarityCache

__all__ = [
    "InMemoryItemCatalog",
    "ItemCatalog",
    "ExperimentStore",
    "InMemoryExperimentStore",
    "InMemoryInteractionStore",
    "InteractionStore",
    "InMemoryProfileStore",
    "ProfileStore",
    "InMemorySignalStore",
    "SignalStore",
    "InMemorySimilarityCache",
    "SimilarityCache",
]
