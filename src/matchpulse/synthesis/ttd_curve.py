"""
Time-to-decision (TTD) curve model.

Reaction latency over a match follows a U shape: players start cold, settle
into their fastest decisions around 40% of the way through, then slow down
with fatigue. For round r of R:

    p   = (r - 1) / (R - 1)          (0 when R == 1)
    ttd = (B - 100) + A * ((p - m) / (1 - m)) ** 2

with base latency B, amplitude A and minimum point m. Samples add Gaussian
noise to the noiseless curve and are floored at a minimum latency; the curve
itself, not the noisy samples, carries the U-shape guarantee.

Each sample gets three ordered timestamps (stimulus, decision, action) with
action - stimulus equal to the sampled latency, placed inside the round's slice
of the match and inside the phase that slice falls in.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from matchpulse.core.config import GenerationConfig, TTDCurveConfig
from matchpulse.core.constants import Pressure, Situation
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.core.schemas import TTDMetadata
from matchpulse.infra.database import Match, Phase, TelemetryRepository
from matchpulse.synthesis.phases import find_phase

logger = logging.getLogger(__name__)

# The curve bottoms out this far below the base latency
PEAK_FORM_OFFSET_MS = 100

_EARLY_PRESSURE = (Pressure.LOW, Pressure.NORMAL, Pressure.HIGH)
_LATE_PRESSURE = (Pressure.HIGH, Pressure.CRITICAL)
_SITUATIONS = tuple(Situation)
_PHASE_SITUATIONS = (
    Situation.COMBAT,
    Situation.STRATEGIC,
    Situation.DEFENSIVE,
    Situation.OFFENSIVE,
)
_ONE_US = timedelta(microseconds=1)


def u_curve_ttd(round_number: int, total_rounds: int, config: TTDCurveConfig | None = None) -> float:
    """Noiseless TTD in milliseconds for a 1-based round."""
    cfg = config or TTDCurveConfig()
    if total_rounds < 1 or not 1 <= round_number <= total_rounds:
        raise ValueError(f"Round {round_number} outside 1..{total_rounds}")

    progress = 0.0 if total_rounds == 1 else (round_number - 1) / (total_rounds - 1)
    shifted = progress - cfg.min_point
    return (cfg.base_ttd_ms - PEAK_FORM_OFFSET_MS) + cfg.amplitude_ms * (shifted / (1 - cfg.min_point)) ** 2


def round_pressure(round_number: int, total_rounds: int, rng: TelemetryRandom, late_fraction: float = 0.7) -> Pressure:
    """Late rounds draw from the upper pressure categories."""
    if round_number > total_rounds * late_fraction:
        return rng.choice(_LATE_PRESSURE)
    return rng.choice(_EARLY_PRESSURE)


@dataclass
class RoundTTDResult:
    """Outcome of one match's round-level TTD generation."""

    match_id: int
    total_rounds: int
    samples: dict[int, list[int]] = field(default_factory=dict)

    @property
    def sample_count(self) -> int:
        return sum(len(v) for v in self.samples.values())

    @property
    def averages(self) -> dict[int, int]:
        return {r: round(sum(v) / len(v)) for r, v in self.samples.items() if v}

    def checkpoints(self) -> list[tuple[int, int]]:
        """Average TTD at the first, quarter, half, three-quarter and last rounds."""
        rounds = [
            1,
            math.floor(self.total_rounds * 0.25),
            math.floor(self.total_rounds * 0.5),
            math.floor(self.total_rounds * 0.75),
            self.total_rounds,
        ]
        averages = self.averages
        return [(r, averages[r]) for r in rounds if r in averages]


def _latest_start(phase: Phase, ttd_ms: int) -> datetime:
    """Last stimulus instant whose action still lands before the phase ends."""
    latest = phase.end_ts - timedelta(milliseconds=ttd_ms) - _ONE_US
    if latest < phase.start_ts:
        raise ValueError(f"Phase {phase.id} is shorter than a {ttd_ms}ms decision")
    return latest


def _round_window(match: Match, round_number: int, total_rounds: int) -> tuple[datetime, datetime]:
    span = match.end_ts - match.start_ts
    start = match.start_ts + span * (round_number - 1) / total_rounds
    end = match.end_ts if round_number == total_rounds else match.start_ts + span * round_number / total_rounds
    return start, end


def synthesize_round_ttd(
    repo: TelemetryRepository,
    match: Match,
    phases: list[Phase],
    config: TTDCurveConfig,
    rng: TelemetryRandom,
    total_rounds: int | None = None,
) -> RoundTTDResult:
    """
    Persist round-tagged TTD samples for one match.

    Args:
        repo: Open unit of work
        match: Match whose window the rounds divide
        phases: The match's phases, ordered by start
        config: Curve constants
        rng: Shared random source
        total_rounds: Fixed round count (drawn from the config range if None)

    Returns:
        RoundTTDResult with the per-round samples
    """
    if not phases:
        raise ValueError(f"Match {match.id} has no phases to place TTD samples in")

    if total_rounds is None:
        total_rounds = rng.integer(config.min_rounds, config.max_rounds)
    result = RoundTTDResult(match_id=match.id, total_rounds=total_rounds)

    for r in range(1, total_rounds + 1):
        expected = u_curve_ttd(r, total_rounds, config)
        round_start, round_end = _round_window(match, r, total_rounds)
        observed = []

        for _ in range(config.samples_per_round):
            ttd_ms = rng.perturb(expected, config.std_dev_ms, floor=config.min_latency_ms)

            src = rng.instant_between(round_start, round_end)
            phase = find_phase(phases, src)
            if phase is None:
                raise ValueError(f"Round {r} of match {match.id} falls outside every phase")
            src = min(src, _latest_start(phase, ttd_ms))

            decision_delay = rng.uniform(0, min(config.max_decision_delay_ms, ttd_ms))
            repo.add_ttd_sample(
                match_id=match.id,
                phase_id=phase.id,
                event_src_ts=src,
                decision_ts=src + timedelta(milliseconds=decision_delay),
                action_ts=src + timedelta(milliseconds=ttd_ms),
                ttd_ms=ttd_ms,
                context_hash=rng.token(8),
                metadata=TTDMetadata(
                    round=r,
                    total_rounds=total_rounds,
                    situation=rng.choice(_SITUATIONS),
                    pressure=round_pressure(r, total_rounds, rng, config.late_round_fraction),
                    is_round_ttd=True,
                ),
            )
            observed.append(ttd_ms)

        result.samples[r] = observed

    logger.debug(f"Match {match.id}: {result.sample_count} round TTD samples over {total_rounds} rounds")
    return result


def synthesize_phase_ttd_samples(
    repo: TelemetryRepository,
    match_id: int,
    phases: list[Phase],
    config: GenerationConfig,
    rng: TelemetryRandom,
) -> int:
    """Persist untagged decision samples for every phase; returns the count."""
    total = 0
    for phase in phases:
        count = rng.integer(config.min_phase_ttd_samples, config.max_phase_ttd_samples)
        for _ in range(count):
            decision_delay = rng.integer(100, 899)
            action_delay = rng.integer(200, 1699)
            ttd_ms = decision_delay + action_delay

            src = rng.instant_between(phase.start_ts, _latest_start(phase, ttd_ms) + _ONE_US)
            if rng.chance(0.3):
                pressure = Pressure.HIGH
            elif rng.chance(0.5):
                pressure = Pressure.NORMAL
            else:
                pressure = Pressure.LOW

            repo.add_ttd_sample(
                match_id=match_id,
                phase_id=phase.id,
                event_src_ts=src,
                decision_ts=src + timedelta(milliseconds=decision_delay),
                action_ts=src + timedelta(milliseconds=ttd_ms),
                ttd_ms=ttd_ms,
                context_hash=rng.token(8),
                metadata=TTDMetadata(
                    situation=rng.choice(_PHASE_SITUATIONS),
                    pressure=pressure,
                    complexity=rng.integer(1, 5),
                ),
            )
        total += count

    return total
