"""Profile Engine: signal ingestion, interests, affinities, lifecycle, merge."""

from .engine import ProfileEngine
from .lifecycle import derive_lifecycle
from .scoring import completeness_score

__all__ = ["ProfileEngine", "derive_lifecycle", "completeness_score"]
