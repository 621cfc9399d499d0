"""
Game event synthesis.

Per phase, draws a batch of instantaneous actions placed uniformly inside the
phase window. Duel actions (kill/death/assist) carry a target, a weapon and a
success flag; the target is drawn independently of the actor and may be the
same player.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from matchpulse.core.config import GenerationConfig
from matchpulse.core.constants import (
    ABILITIES,
    DUEL_ACTIONS,
    PLAYER_NAMES,
    WEAPONS,
    EventAction,
)
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.core.schemas import EventMetadata
from matchpulse.infra.database import Phase, TelemetryRepository

logger = logging.getLogger(__name__)

_ACTIONS = tuple(EventAction)
_SIDES = ("Team A", "Team B")


@dataclass
class EventTally:
    total: int = 0
    kills: int = 0
    deaths: int = 0

    def record(self, action: EventAction) -> None:
        self.total += 1
        if action == EventAction.KILL:
            self.kills += 1
        elif action == EventAction.DEATH:
            self.deaths += 1


def synthesize_events(
    repo: TelemetryRepository,
    match_id: int,
    phases: list[Phase],
    config: GenerationConfig,
    rng: TelemetryRandom,
) -> EventTally:
    """Persist events for every phase and return the counts."""
    tally = EventTally()

    for phase in phases:
        count = rng.integer(config.min_events_per_phase, config.max_events_per_phase)
        for _ in range(count):
            action = rng.choice(_ACTIONS)
            metadata = EventMetadata(
                round=rng.integer(1, 25),
                team=rng.choice(_SIDES),
                phase_type=phase.phase_type,
            )
            fields = {
                "match_id": match_id,
                "event_ts": rng.instant_between(phase.start_ts, phase.end_ts),
                "actor": rng.choice(PLAYER_NAMES),
                "action": str(action),
                "position_x": rng.uniform(0, 1000),
                "position_y": rng.uniform(0, 1000),
                "position_z": rng.uniform(0, 100),
            }

            if action in DUEL_ACTIONS:
                fields["target"] = rng.choice(PLAYER_NAMES)
                fields["ability"] = rng.choice(WEAPONS)
                fields["success"] = rng.chance(config.duel_success_rate)
            elif action == EventAction.ABILITY_USE:
                fields["ability"] = rng.choice(ABILITIES)
                fields["success"] = rng.chance(config.ability_success_rate)
            elif action == EventAction.DAMAGE_DEALT:
                fields["ability"] = rng.choice(WEAPONS)
                metadata.damage = rng.integer(10, 109)

            repo.add_event(metadata=metadata, **fields)
            tally.record(action)

        logger.debug(f"Phase {phase.id}: {count} events")

    return tally
