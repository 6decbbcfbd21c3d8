from __future__ import annotations

import random
from datetime import timedelta

import pytest

from src.attendance_notifier.attendance_notifier.common.backoff import BackoffPolicy


def test_delay_doubles_until_cap():
    policy = BackoffPolicy(base_seconds=60, cap_seconds=3600, jitter=0)
    assert [policy.delay(n).total_seconds() for n in range(1, 8)] == [120, 240, 480, 960, 1920, 3600, 3600]
    assert policy.delay(1000) == timedelta(seconds=3600)


def test_jitter_stays_within_bounds_and_cap():
    policy = BackoffPolicy(base_seconds=60, cap_seconds=3600, jitter=0.2)
    rng = random.Random(7)
    for _ in range(200):
        assert 96 <= policy.delay(1, rng=rng).total_seconds() <= 144
        assert policy.delay(10, rng=rng).total_seconds() <= 3600


def test_delays_are_non_decreasing_without_jitter():
    policy = BackoffPolicy(base_seconds=5, cap_seconds=100, jitter=0)
    delays = [policy.delay(n) for n in range(20)]
    assert delays == sorted(delays)


@pytest.mark.parametrize(
    "kwargs",
    [{"base_seconds": 0}, {"base_seconds": 10, "cap_seconds": 5}, {"jitter": 1.0}, {"jitter": -0.1}],
)
def test_invalid_policy(kwargs):
    with pytest.raises(ValueError):
        BackoffPolicy(**kwargs)
