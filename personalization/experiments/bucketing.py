"""
Deterministic traffic bucketing for experiment assignment.

bucket = sum of the user id's character codes mod 100. Users whose bucket is
at or above the experiment's traffic percent are outside the experiment.
"""

from typing import Optional, Sequence, Tuple


def bucket_for(user_id: str) -> int:
    return sum(ord(ch) for ch in user_id) % 100


def select_variant(bucket: int, allocations: Sequence[Tuple[str, float]]) -> Optional[str]:
    """First variant whose cumulative allocation exceeds the bucket, in definition order."""
    cumulative = 0.0
    for variant_id, allocation in allocations:
        cumulative += allocation
        if bucket < cumulative:
            return variant_id
    return None
