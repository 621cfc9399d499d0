"""Tests for game event synthesis."""

from __future__ import annotations

from collections import Counter

import pytest

from matchpulse.core.config import GenerationConfig
from matchpulse.core.constants import ABILITIES, PLAYER_NAMES, WEAPONS, EventAction
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.synthesis.events import EventTally, synthesize_events
from matchpulse.synthesis.phases import find_phase, segment_phases


@pytest.fixture
def generated(db, make_match):
    """A match with phases and events, plus the returned tally."""
    match = make_match()
    config = GenerationConfig()
    rng = TelemetryRandom(21)
    with db.transaction() as repo:
        phases = segment_phases(repo, match.id, match.start_ts, match.end_ts, config, rng)
        tally = synthesize_events(repo, match.id, phases, config, rng)
    return match, phases, tally, db.get_events(match.id)


class TestEventTally:
    def test_record(self):
        tally = EventTally()
        for action in (EventAction.KILL, EventAction.KILL, EventAction.DEATH, EventAction.ASSIST):
            tally.record(action)
        assert (tally.total, tally.kills, tally.deaths) == (4, 2, 1)


class TestSynthesizeEvents:
    def test_tally_matches_store(self, generated):
        _, phases, tally, events = generated
        actions = Counter(e.action for e in events)

        assert tally.total == len(events)
        assert tally.kills == actions["kill"]
        assert tally.deaths == actions["death"]
        assert 10 * len(phases) <= len(events) <= 29 * len(phases)

    def test_events_inside_phases(self, generated):
        """Every event falls inside a phase window of its match."""
        _, phases, _, events = generated
        for event in events:
            phase = find_phase(phases, event.event_ts)
            assert phase is not None
            assert event.details.phase_type == phase.phase_type

    def test_action_specific_fields(self, generated):
        _, _, _, events = generated
        for event in events:
            assert event.actor in PLAYER_NAMES
            assert event.action in {a.value for a in EventAction}
            if event.action in ("kill", "death", "assist"):
                assert event.target in PLAYER_NAMES
                assert event.ability in WEAPONS
                assert event.success is not None
            elif event.action == "ability_use":
                assert event.ability in ABILITIES
                assert event.success is not None
            elif event.action == "damage_dealt":
                assert event.ability in WEAPONS
                assert 10 <= event.details.damage <= 109
            else:
                assert event.target is None
                assert event.ability is None

    def test_positions_and_metadata(self, generated):
        _, _, _, events = generated
        for event in events:
            assert 0 <= event.position_x < 1000
            assert 0 <= event.position_y < 1000
            assert 0 <= event.position_z < 100
            assert 1 <= event.details.round <= 25
            assert event.details.team in ("Team A", "Team B")

    def test_success_rates(self, db, make_match):
        """Configured success probabilities are honored at the extremes."""
        match = make_match()
        config = GenerationConfig(duel_success_rate=1.0, ability_success_rate=0.0)
        rng = TelemetryRandom(2)
        with db.transaction() as repo:
            phases = segment_phases(repo, match.id, match.start_ts, match.end_ts, config, rng)
            synthesize_events(repo, match.id, phases, config, rng)

        events = db.get_events(match.id)
        assert all(e.success for e in events if e.action in ("kill", "death", "assist"))
        assert not any(e.success for e in events if e.action == "ability_use")

    def test_time_filtered_read(self, generated, db):
        match, phases, _, events = generated
        window = db.get_events(match.id, phases[0].start_ts, phases[0].end_ts)
        assert window
        assert all(phases[0].start_ts <= e.event_ts <= phases[0].end_ts for e in window)
        assert len(window) < len(events)
