"""Shared fixtures: a throwaway SQLite store, an owner and a match factory."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta

import pytest

from matchpulse.core.config import MatchPulseConfig
from matchpulse.core.schemas import MatchMetadata
from matchpulse.infra.database import DatabaseManager

MATCH_START = datetime(2025, 3, 1, 18, 0, 0)


@pytest.fixture
def db(tmp_path):
    """Fresh database per test."""
    manager = DatabaseManager(tmp_path / "telemetry.db")
    yield manager
    manager.dispose()


@pytest.fixture
def owner_id(db):
    return db.upsert_user("dev_admin", name="Admin", role="admin")


@pytest.fixture
def config():
    """Defaults with phase-level TTD samples on and a fixed seed."""
    cfg = MatchPulseConfig()
    cfg.generation.seed = 1234
    return cfg


@pytest.fixture
def make_match(db, owner_id):
    """Factory persisting a bare match header."""
    counter = itertools.count(1)

    def _make(
        start: datetime = MATCH_START,
        minutes: int = 30,
        score_a: int = 13,
        score_b: int = 7,
        kills: int = 0,
        deaths: int = 0,
        user_id: int | None = None,
    ):
        n = next(counter)
        with db.transaction() as repo:
            return repo.add_match(
                match_uid=f"match-test-{n}",
                game="Valorant",
                map_name="Bind",
                team_ids=["Team Alpha", "Team Beta"],
                start_ts=start,
                end_ts=start + timedelta(minutes=minutes),
                user_id=user_id or owner_id,
                metadata=MatchMetadata(score_a=score_a, score_b=score_b, kills=kills, deaths=deaths),
            )

    return _make
