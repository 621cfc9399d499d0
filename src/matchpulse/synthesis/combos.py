"""
Player combo statistics.

A combo is a duo or trio tracked as a unit with attempt/success counts for one
match. Two confidence intervals are available:

- fixed: [wr - delta, wr + delta], not clamped, so it can leave [0, 1] near
  the extremes. This is the default, kept for compatibility with existing data.
- wilson: the Wilson score interval, always inside [0, 1].
"""

from __future__ import annotations

import logging
import math

from matchpulse.core.config import ComboConfig
from matchpulse.core.constants import PLAYER_NAMES, ComboContext, IntervalMethod
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.core.schemas import ComboMetadata
from matchpulse.infra.database import TelemetryRepository

logger = logging.getLogger(__name__)

_CONTEXTS = tuple(ComboContext)


def combo_win_rate(successes: int, attempts: int) -> float:
    """successes / attempts, or 0.0 when nothing was attempted."""
    if attempts < 0 or not 0 <= successes <= max(attempts, 0):
        raise ValueError(f"Invalid combo counts: {successes}/{attempts}")
    if attempts == 0:
        return 0.0
    return successes / attempts


def wilson_interval(successes: int, attempts: int, z: float = 1.96) -> tuple[float, float]:
    """Wilson score interval for a binomial proportion."""
    if attempts == 0:
        return 0.0, 1.0
    p = successes / attempts
    z2 = z * z
    denom = 1 + z2 / attempts
    center = (p + z2 / (2 * attempts)) / denom
    half = z * math.sqrt(p * (1 - p) / attempts + z2 / (4 * attempts * attempts)) / denom
    # Float error can push the bounds a hair past the point estimate at p = 0 or 1
    return max(0.0, min(center - half, p)), min(1.0, max(center + half, p))


def confidence_interval(
    successes: int,
    attempts: int,
    method: str = IntervalMethod.FIXED,
    delta: float = 0.1,
    z: float = 1.96,
) -> tuple[float, float]:
    """Interval around the combo win rate using the chosen method."""
    if method == IntervalMethod.WILSON:
        return wilson_interval(successes, attempts, z)
    if method == IntervalMethod.FIXED:
        rate = combo_win_rate(successes, attempts)
        return rate - delta, rate + delta
    raise ValueError(f"Unknown interval method: {method}")


def synthesize_combos(
    repo: TelemetryRepository,
    match_id: int,
    config: ComboConfig,
    rng: TelemetryRandom,
) -> int:
    """Persist the match's combos and return how many were written."""
    count = rng.integer(config.min_combos, config.max_combos)

    for _ in range(count):
        size = rng.integer(2, 3)
        members = rng.sample(PLAYER_NAMES, size)
        attempts = rng.integer(config.min_attempts, config.max_attempts)
        successes = rng.integer(0, attempts)
        low, high = confidence_interval(
            successes,
            attempts,
            method=config.interval_method,
            delta=config.interval_delta,
            z=config.wilson_z,
        )

        repo.add_combo(
            match_id=match_id,
            members=members,
            context=str(rng.choice(_CONTEXTS)),
            attempts=attempts,
            successes=successes,
            win_rate=combo_win_rate(successes, attempts),
            confidence_interval_low=low,
            confidence_interval_high=high,
            metadata=ComboMetadata(
                synergy_score=rng.uniform(0, 5),
                communication_quality=rng.uniform(0, 5),
                combo_type="duo" if size == 2 else "trio",
                interval_method=str(config.interval_method),
            ),
        )

    logger.debug(f"Match {match_id}: {count} combos")
    return count
