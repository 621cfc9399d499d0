"""Voice communication turn synthesis."""

from __future__ import annotations

import logging
from datetime import timedelta

from matchpulse.core.config import VoiceConfig
from matchpulse.core.constants import (
    NEUTRAL_SCORE_RANGE,
    PLAYER_NAMES,
    SENTIMENT_SCORE_RANGES,
    VOICE_CALLOUTS,
    Sentiment,
)
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.core.schemas import VoiceMetadata
from matchpulse.infra.database import Phase, TelemetryRepository

logger = logging.getLogger(__name__)

_SENTIMENTS = tuple(Sentiment)


def sentiment_score(sentiment: Sentiment, rng: TelemetryRandom) -> float:
    """Signed score in the range associated with the sentiment category."""
    low, high = SENTIMENT_SCORE_RANGES.get(sentiment, NEUTRAL_SCORE_RANGE)
    return rng.uniform(low, high)


def _urgency(sentiment: Sentiment, rng: TelemetryRandom) -> str:
    if sentiment == Sentiment.URGENT or rng.chance(0.3):
        return "high"
    return "medium" if rng.chance(0.5) else "low"


def synthesize_voice_turns(
    repo: TelemetryRepository,
    match_id: int,
    phases: list[Phase],
    config: VoiceConfig,
    rng: TelemetryRandom,
) -> int:
    """
    Persist voice turns for every phase and return how many were written.

    A turn never runs past its phase: the start is drawn so that start +
    duration stays inside the window, and the duration is halved down to fit
    phases shorter than the drawn length.
    """
    total = 0
    for phase in phases:
        window = phase.end_ts - phase.start_ts
        count = rng.integer(config.min_turns_per_phase, config.max_turns_per_phase)

        for _ in range(count):
            duration = timedelta(milliseconds=rng.uniform(config.min_duration_ms, config.max_duration_ms))
            if duration >= window:
                duration = window / 2
            start_ts = rng.instant_between(phase.start_ts, phase.end_ts - duration)

            sentiment = rng.choice(_SENTIMENTS)
            repo.add_voice_turn(
                match_id=match_id,
                speaker_id=rng.choice(PLAYER_NAMES),
                start_ts=start_ts,
                end_ts=start_ts + duration,
                text=f"Voice comms: {rng.choice(VOICE_CALLOUTS)}",
                clarity=rng.uniform(*config.clarity_range),
                info_density=rng.uniform(*config.info_density_range),
                interruption=rng.chance(config.interruption_probability),
                sentiment=str(sentiment),
                sentiment_score=sentiment_score(sentiment, rng),
                metadata=VoiceMetadata(
                    language=config.language,
                    urgency=_urgency(sentiment, rng),
                    background_noise=rng.chance(0.2),
                    phase_id=phase.id,
                ),
            )
        total += count
        logger.debug(f"Phase {phase.id}: {count} voice turns")

    return total
