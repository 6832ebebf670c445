"""
Wires the in-memory stores into the three engines.

The profile and recommendation engines share one interaction store, so signals
recorded through profiles are immediately visible to recommendation scans.
"""

from datetime import datetime
from typing import Callable, Optional

from .experiments import ExperimentEngine
from .models.config import PersonalizationConfig, resolve_config
from .profiles import ProfileEngine
from .recommend import RecommendationEngine
from .stores import (
    InMemoryExperimentStore,
    InMemoryInteractionStore,
    InMemoryItemCatalog,
    InMemoryProfileStore,
    InMemorySignalStore,
    InMemorySimilarityCache,
)


class PersonalizationCore:
    """Stores plus the profile, recommendation, and experiment engines."""

    def __init__(
        self,
        config: Optional[PersonalizationConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = resolve_config(config)

        self.signal_store = InMemorySignalStore()
        self.profile_store = InMemoryProfileStore()
        self.interaction_store = InMemoryInteractionStore()
        self.catalog = InMemoryItemCatalog()
        self.similarity_cache = InMemorySimilarityCache()
        self.experiment_store = InMemoryExperimentStore()

        self.profiles = ProfileEngine(
            self.profile_store,
            self.signal_store,
            self.interaction_store,
            config=self.config,
            clock=clock,
        )
        self.recommendations = RecommendationEngine(
            self.interaction_store,
            self.catalog,
            similarity_cache=self.similarity_cache,
            config=self.config,
            clock=clock,
        )
        self.experiments = ExperimentEngine(self.experiment_store, config=self.config, clock=clock)
