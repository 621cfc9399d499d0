"""Match header synthesis: game, map, teams, final score and time window."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from matchpulse.core.config import GenerationConfig
from matchpulse.core.constants import MAPS, TEAM_NAMES, Game
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.core.schemas import MatchMetadata
from matchpulse.infra.database import Match, TelemetryRepository

logger = logging.getLogger(__name__)

_GAMES = tuple(Game)


def random_score(rng: TelemetryRandom, max_score: int) -> tuple[int, int]:
    """Draw a decisive final score; ties go to side A by one round."""
    score_a = rng.integer(0, max_score)
    score_b = rng.integer(0, max_score)
    if score_a == score_b:
        score_a += 1
    return score_a, score_b


def synthesize_match(
    repo: TelemetryRepository,
    user_id: int,
    config: GenerationConfig,
    rng: TelemetryRandom,
    *,
    match_number: int | None = None,
    now: datetime | None = None,
) -> Match:
    """Persist one match header inside the last `days_back` days."""
    game = rng.choice(_GAMES)
    map_name = rng.choice(MAPS[game])
    teams = rng.sample(TEAM_NAMES, 2)
    score_a, score_b = random_score(rng, config.max_score)

    now = now or datetime.now(UTC).replace(tzinfo=None)
    start_ts = now - timedelta(days=rng.uniform(0, config.days_back))
    duration = timedelta(
        minutes=rng.integer(config.min_duration_minutes, config.max_duration_minutes)
    )
    end_ts = start_ts + duration

    uid = f"match-{rng.token()}"
    stamp = int(start_ts.replace(tzinfo=UTC).timestamp() * 1000)
    metadata = MatchMetadata(
        score_a=score_a,
        score_b=score_b,
        winner=teams[0] if score_a > score_b else teams[1],
        duration_ms=int(duration.total_seconds() * 1000),
        demo_file=f"demo_{stamp}_{match_number or 1}.dem",
        match_number=match_number,
    )

    match = repo.add_match(
        match_uid=uid,
        game=game,
        map_name=map_name,
        team_ids=teams,
        start_ts=start_ts,
        end_ts=end_ts,
        user_id=user_id,
        metadata=metadata,
    )
    logger.debug(f"Match {uid}: {game} on {map_name}, {score_a}-{score_b}")
    return match
