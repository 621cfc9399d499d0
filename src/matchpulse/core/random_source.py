"""
Seedable random source for telemetry synthesis.

Every generator draws from a single TelemetryRandom so that a whole generation
run can be replayed from one seed. Production runs pass seed=None and get OS
entropy from numpy's default_rng.
"""

from __future__ import annotations

import math
import string
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import TypeVar

import numpy as np

T = TypeVar("T")

_TOKEN_ALPHABET = string.ascii_letters + string.digits + "_-"


class TelemetryRandom:
    """Thin wrapper over numpy.random.Generator with telemetry-shaped helpers."""

    def __init__(self, seed: int | None = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._rng.random())

    def uniform(self, low: float, high: float) -> float:
        """Uniform float in [low, high)."""
        return low + (high - low) * self.random()

    def integer(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both ends inclusive."""
        if high < low:
            raise ValueError(f"Invalid integer range: [{low}, {high}]")
        return int(self._rng.integers(low, high + 1))

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[int(self._rng.integers(0, len(items)))]

    def sample(self, items: Sequence[T], k: int) -> list[T]:
        """Draw k distinct items (by position) without replacement."""
        if k > len(items):
            raise ValueError(f"Cannot sample {k} items from a pool of {len(items)}")
        picks = self._rng.choice(len(items), size=k, replace=False)
        return [items[int(i)] for i in picks]

    def chance(self, probability: float) -> bool:
        """True with the given probability."""
        return self.random() < probability

    def gaussian(self, mean: float = 0.0, std_dev: float = 1.0) -> float:
        """
        Normal draw via the Box-Muller transform.

        u1 is taken from (0, 1] so the log never sees zero.
        """
        u1 = 1.0 - self.random()
        u2 = self.random()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return mean + z0 * std_dev

    def perturb(self, value: float, std_dev: float, floor: int | None = None) -> int:
        """Add Gaussian noise to value, round to an int and apply an optional floor."""
        noisy = round(self.gaussian(value, std_dev))
        if floor is not None:
            noisy = max(floor, noisy)
        return int(noisy)

    def instant_between(self, start: datetime, end: datetime) -> datetime:
        """Uniform instant in [start, end) at microsecond resolution."""
        span_us = _to_microseconds(end - start)
        if span_us <= 0:
            raise ValueError(f"Empty time window: {start.isoformat()} .. {end.isoformat()}")
        return start + timedelta(microseconds=int(self._rng.integers(0, span_us)))

    def token(self, length: int = 21) -> str:
        """URL-safe random identifier."""
        idx = self._rng.integers(0, len(_TOKEN_ALPHABET), size=length)
        return "".join(_TOKEN_ALPHABET[int(i)] for i in idx)


def _to_microseconds(delta: timedelta) -> int:
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
