"""
Phase segmentation.

Splits a match timeline into equal-length contiguous performance phases. The
slices are laid end to end so that together they cover [start, end) with no
gaps or overlaps, and every downstream generator (events, TTD samples, voice
turns) places its timestamps inside one of them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from matchpulse.core.config import GenerationConfig
from matchpulse.core.constants import PhaseType
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.core.schemas import PhaseMetadata
from matchpulse.infra.database import Phase, TelemetryRepository

logger = logging.getLogger(__name__)

_PHASE_TYPES = tuple(PhaseType)


def phase_boundaries(start: datetime, end: datetime, count: int) -> list[datetime]:
    """
    Return count + 1 instants splitting [start, end) into equal slices.

    The last boundary is exactly `end`; interior boundaries are rounded to the
    microsecond by timedelta arithmetic.
    """
    if end <= start:
        raise ValueError(
            f"Cannot segment a match that ends before it starts: {start.isoformat()} .. {end.isoformat()}"
        )
    if count < 1:
        raise ValueError(f"Phase count must be positive, got {count}")

    span = end - start
    if span < timedelta(microseconds=count):
        raise ValueError(f"Match too short to split into {count} phases")

    return [start + span * i / count for i in range(count)] + [end]


def segment_phases(
    repo: TelemetryRepository,
    match_id: int,
    start: datetime,
    end: datetime,
    config: GenerationConfig,
    rng: TelemetryRandom,
) -> list[Phase]:
    """Persist and return the ordered phases of one match."""
    count = rng.integer(config.min_phases, config.max_phases)
    bounds = phase_boundaries(start, end, count)

    phases = []
    for i in range(count):
        phase_type = rng.choice(_PHASE_TYPES)
        phase = repo.add_phase(
            phase_uid=rng.token(),
            match_id=match_id,
            phase_type=phase_type,
            start_ts=bounds[i],
            end_ts=bounds[i + 1],
            change_point_score=rng.uniform(0.0, 100.0),
            metadata=PhaseMetadata(
                description=f"{phase_type} phase during match",
                performance="good" if rng.chance(0.5) else "needs_improvement",
                index=i + 1,
                count=count,
            ),
        )
        phases.append(phase)

    logger.debug(f"Match {match_id}: {count} phases of {(end - start) / count}")
    return phases


def find_phase(phases: list[Phase], ts: datetime) -> Phase | None:
    """Phase whose half-open window contains ts."""
    for phase in phases:
        if phase.contains(ts):
            return phase
    return None
