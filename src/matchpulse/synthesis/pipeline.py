"""
Batch generation of synthetic match telemetry.

Each match runs as one unit of work:

    header -> phases -> events -> TTD samples -> voice turns -> combos

inside a single DatabaseManager.transaction(). A failure rolls back the match in
progress and propagates, aborting the rest of the batch; matches committed
before the failure stay.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from matchpulse.core.config import MatchPulseConfig
from matchpulse.core.constants import UserRole
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.infra.database import DatabaseManager, TelemetryRepository
from matchpulse.synthesis.combos import synthesize_combos
from matchpulse.synthesis.events import synthesize_events
from matchpulse.synthesis.matches import synthesize_match
from matchpulse.synthesis.phases import segment_phases
from matchpulse.synthesis.ttd_curve import (
    RoundTTDResult,
    synthesize_phase_ttd_samples,
    synthesize_round_ttd,
)
from matchpulse.synthesis.voice import synthesize_voice_turns

logger = logging.getLogger(__name__)


class OwnerNotFoundError(LookupError):
    """The semantic owner of a generation run does not exist."""

    def __init__(self, owner_key: str):
        super().__init__(f"Owner not found: {owner_key}")
        self.owner_key = owner_key


@dataclass
class MatchStats:
    """Row counts written for one match."""

    match_id: int
    match_uid: str
    phases: int = 0
    events: int = 0
    kills: int = 0
    deaths: int = 0
    ttd_samples: int = 0
    voice_turns: int = 0
    combos: int = 0


@dataclass
class BatchSummary:
    owner_id: int
    matches: list[MatchStats] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    def totals(self) -> dict[str, int]:
        keys = ("phases", "events", "ttd_samples", "voice_turns", "combos")
        totals = {"matches": len(self.matches)}
        for key in keys:
            totals[key] = sum(getattr(m, key) for m in self.matches)
        return totals


def resolve_owner(db: DatabaseManager, owner_key: str) -> int:
    """Numeric id of an existing owner; raises OwnerNotFoundError."""
    user_id = db.get_user_id(owner_key)
    if user_id is None:
        raise OwnerNotFoundError(owner_key)
    return user_id


def generate_match(
    repo: TelemetryRepository,
    user_id: int,
    config: MatchPulseConfig,
    rng: TelemetryRandom,
    match_number: int | None = None,
) -> MatchStats:
    """Synthesize one complete match inside an open unit of work."""
    gen = config.generation
    match = synthesize_match(repo, user_id, gen, rng, match_number=match_number)
    stats = MatchStats(match_id=match.id, match_uid=match.match_uid)

    phases = segment_phases(repo, match.id, match.start_ts, match.end_ts, gen, rng)
    stats.phases = len(phases)

    tally = synthesize_events(repo, match.id, phases, gen, rng)
    stats.events, stats.kills, stats.deaths = tally.total, tally.kills, tally.deaths
    repo.update_match_metadata(match, kills=tally.kills, deaths=tally.deaths)

    round_ttd = synthesize_round_ttd(repo, match, phases, config.ttd, rng)
    stats.ttd_samples = round_ttd.sample_count
    if gen.phase_ttd_samples:
        stats.ttd_samples += synthesize_phase_ttd_samples(repo, match.id, phases, gen, rng)

    stats.voice_turns = synthesize_voice_turns(repo, match.id, phases, config.voice, rng)
    stats.combos = synthesize_combos(repo, match.id, config.combos, rng)
    return stats


def generate_batch(
    db: DatabaseManager,
    config: MatchPulseConfig,
    rng: TelemetryRandom | None = None,
    *,
    count: int | None = None,
    create_owner: bool = True,
) -> BatchSummary:
    """
    Generate a batch of matches for the configured owner.

    Args:
        db: Telemetry store
        config: Full configuration (generation section drives the batch)
        rng: Shared random source; seeded from config when None
        count: Number of matches (defaults to generation.match_count)
        create_owner: Upsert the owner as an admin user before generating

    Returns:
        BatchSummary with per-match row counts

    Raises:
        OwnerNotFoundError: create_owner is False and the owner is missing
    """
    gen = config.generation
    rng = rng or TelemetryRandom(gen.seed)
    count = gen.match_count if count is None else count

    if create_owner:
        owner_id = db.upsert_user(
            gen.owner_key,
            name=gen.owner_name,
            login_method="local",
            role=UserRole.ADMIN,
        )
    else:
        owner_id = resolve_owner(db, gen.owner_key)

    logger.info(f"Generating {count} matches for owner {gen.owner_key} (id={owner_id})")
    summary = BatchSummary(owner_id=owner_id)
    started = time.perf_counter()

    for i in range(count):
        with db.transaction() as repo:
            stats = generate_match(repo, owner_id, config, rng, match_number=i + 1)
        summary.matches.append(stats)
        logger.info(
            f"Match {i + 1}/{count} done - phases:{stats.phases}, events:{stats.events}, "
            f"ttd:{stats.ttd_samples}, voice:{stats.voice_turns}, combos:{stats.combos}"
        )
        if (i + 1) % 5 == 0:
            logger.info(f"Progress after {i + 1} matches: {summary.totals()}")

    summary.elapsed_seconds = time.perf_counter() - started
    logger.info(f"Batch complete in {summary.elapsed_seconds:.2f}s: {summary.totals()}")
    return summary


def regenerate_round_ttd(
    db: DatabaseManager,
    config: MatchPulseConfig,
    rng: TelemetryRandom | None = None,
    owner_key: str | None = None,
) -> list[RoundTTDResult]:
    """
    Replace the round-tagged TTD samples of the owner's matches with a fresh generation.

    Deletion and insertion share one transaction, so running this twice leaves
    exactly one generation in the store. Other owners' samples are untouched.
    """
    owner_key = owner_key or config.generation.owner_key
    rng = rng or TelemetryRandom(config.generation.seed)
    owner_id = resolve_owner(db, owner_key)

    results = []
    with db.transaction() as repo:
        matches = repo.get_matches_for_user(owner_id)
        deleted = repo.delete_round_ttd_samples(m.id for m in matches)
        logger.info(f"Deleted {deleted} existing round TTD samples of {owner_key}")

        logger.info(f"Regenerating round TTD for {len(matches)} matches of {owner_key}")
        for match in matches:
            phases = repo.get_phases(match.id)
            results.append(synthesize_round_ttd(repo, match, phases, config.ttd, rng))

    logger.info(f"Inserted {sum(r.sample_count for r in results)} round TTD samples")
    return results
