"""
Shared fixtures: a controllable clock and a fresh personalization core per test.
"""

from datetime import datetime, timedelta, timezone

import pytest

from personalization import PersonalizationCore
from personalization.experiments import bucket_for

START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    """Callable clock the engines read; tests move it forward explicitly."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def user_in_bucket(bucket: int, n: int = 0) -> str:
    """A distinct user id whose assignment bucket is `bucket`."""
    base = f"u{n:04d}-"
    pad = chr(100 + (bucket - sum(ord(ch) for ch in base)) % 100)
    user_id = base + pad
    assert bucket_for(user_id) == bucket
    return user_id


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def core(clock):
    return PersonalizationCore(clock=clock)


@pytest.fixture
def profiles(core):
    return core.profiles


@pytest.fixture
def recommender(core):
    return core.recommendations


@pytest.fixture
def experiments(core):
    return core.experiments


@pytest.fixture
def bucket_user():
    return user_in_bucket
