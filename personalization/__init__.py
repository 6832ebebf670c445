"""
Personalization & recommendation core.

Behavioral signal ingestion and user profiles, collaborative / content /
hybrid recommendations, and A/B experimentation over pluggable stores.
"""

from .core import PersonalizationCore
from .errors import InvalidArgument, NotFound, PersonalizationError, PreconditionFailed
from .experiments import ExperimentEngine
from .models import DEFAULT_CONFIG, PersonalizationConfig
from .profiles import ProfileEngine
from .recommend import RecommendationEngine

__version__ = "1.0.0"

__all__ = [
    "PersonalizationCore",
    "PersonalizationConfig",
    "DEFAULT_CONFIG",
    "ProfileEngine",
    "RecommendationEngine",
    "ExperimentEngine",
    "PersonalizationError",
    "NotFound",
    "InvalidArgument",
    "PreconditionFailed",
]
