from __future__ import annotations

import math

from pretackler.infrastructure.runtime import IdleLatencyEstimator


def test_p95_is_none_without_samples() -> None:
    estimator = IdleLatencyEstimator()

    assert estimator.p95() is None
    assert estimator.widen_idle_timeout(30.0) == 30.0


def test_p95_uses_nearest_rank() -> None:
    estimator = IdleLatencyEstimator()
    for gap in range(100, 200):
        estimator.observe(float(gap))

    estimate = estimator.p95()

    assert estimate is not None
    assert 100 <= estimate <= 200
    assert estimate == 194.0


def test_capacity_evicts_oldest_samples() -> None:
    estimator = IdleLatencyEstimator(capacity=4)
    for gap in (900.0, 1.0, 2.0, 3.0, 4.0):
        estimator.observe(gap)

    assert len(estimator) == 4
    assert estimator.capacity == 4
    assert estimator.p95() == 4.0


def test_negative_and_nan_gaps_are_ignored() -> None:
    estimator = IdleLatencyEstimator()
    estimator.observe(-1.0)
    estimator.observe(math.nan)

    assert len(estimator) == 0


def test_widen_idle_timeout_never_shrinks_the_base() -> None:
    estimator = IdleLatencyEstimator()
    for gap in range(100, 200):
        estimator.observe(float(gap))

    assert estimator.widen_idle_timeout(1.0) == 1.0


def test_widen_idle_timeout_covers_slow_streams() -> None:
    estimator = IdleLatencyEstimator()
    for _ in range(10):
        estimator.observe(2000.0)

    assert estimator.widen_idle_timeout(1.0) == 2.4
    assert estimator.widen_idle_timeout(1.0, factor=2.0) == 4.0


def test_unbounded_idle_timeout_stays_unbounded() -> None:
    estimator = IdleLatencyEstimator()
    estimator.observe(5000.0)

    assert estimator.widen_idle_timeout(0.0) == 0.0
