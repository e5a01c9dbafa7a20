"""Bounded histogram of stream inter-chunk gaps for adaptive idle timeouts."""

from __future__ import annotations

import math
import threading
from collections import deque

_DEFAULT_CAPACITY = 256
_PERCENTILE = 0.95


class IdleLatencyEstimator:
    """Keep the most recent inter-chunk gaps and expose their p95."""

    def __init__(self, capacity: int = _DEFAULT_CAPACITY) -> None:
        self._capacity = max(1, capacity)
        self._samples: deque[float] = deque(maxlen=self._capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def observe(self, gap_ms: float) -> None:
        """Record one gap in milliseconds, evicting the oldest when full."""

        if gap_ms < 0 or math.isnan(gap_ms):
            return
        with self._lock:
            self._samples.append(gap_ms)

    def p95(self) -> float | None:
        """Return the nearest-rank 95th percentile, or None without samples."""

        with self._lock:
            ordered = sorted(self._samples)
        if not ordered:
            return None
        rank = max(1, math.ceil(_PERCENTILE * len(ordered)))
        return ordered[rank - 1]

    def widen_idle_timeout(self, idle_timeout_seconds: float, factor: float = 1.2) -> float:
        """Widen a bounded idle timeout to cover `p95 * factor` when known."""

        if idle_timeout_seconds <= 0:
            return idle_timeout_seconds
        estimate = self.p95()
        if estimate is None:
            return idle_timeout_seconds
        adaptive_seconds = math.ceil(estimate * factor) / 1000.0
        return max(idle_timeout_seconds, adaptive_seconds)


__all__ = ["IdleLatencyEstimator"]
