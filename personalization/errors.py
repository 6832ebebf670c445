"""
Error taxonomy for the personalization core.

Hard errors raise; soft outcomes (user outside experiment traffic, cold-start
empty lists, insufficient sample size) are ordinary return values.
"""


class PersonalizationError(Exception):
    """Base class for all errors raised by the core."""


class NotFound(PersonalizationError):
    """Unknown profile, experiment, variant, or item id."""


class InvalidArgument(PersonalizationError):
    """Malformed input (e.g. merge into self, unknown signal type)."""


class PreconditionFailed(PersonalizationError):
    """Operation not valid in the current state (e.g. tracking an unassigned user)."""
