"""Tests for the telemetry store: users, matches, unit of work and reads."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from matchpulse.core.schemas import MatchMetadata, PhaseMetadata, TTDMetadata
from matchpulse.infra.database import DatabaseManager

MATCH_START = datetime(2025, 3, 1, 18, 0, 0)


def _add_phase(repo, match, uid="p1"):
    return repo.add_phase(
        phase_uid=uid,
        match_id=match.id,
        phase_type="normal",
        start_ts=match.start_ts,
        end_ts=match.end_ts,
        change_point_score=50.0,
        metadata=PhaseMetadata(),
    )


def _add_ttd(repo, match, phase, round_tagged: bool, ttd_ms: int = 400):
    return repo.add_ttd_sample(
        match_id=match.id,
        phase_id=phase.id,
        event_src_ts=match.start_ts,
        decision_ts=match.start_ts + timedelta(milliseconds=100),
        action_ts=match.start_ts + timedelta(milliseconds=ttd_ms),
        ttd_ms=ttd_ms,
        context_hash="abc",
        metadata=TTDMetadata(round=1 if round_tagged else None, is_round_ttd=round_tagged),
    )


class TestUsers:
    def test_upsert_is_idempotent(self, db):
        """Upserting the same key twice keeps one row and updates fields."""
        first = db.upsert_user("dev_admin", name="Admin")
        second = db.upsert_user("dev_admin", name="Renamed", role="admin")
        assert first == second
        assert db.get_user_id("dev_admin") == first
        assert db.get_global_stats()["users"] == 1

    def test_missing_user(self, db):
        assert db.get_user_id("nobody") is None


class TestMatches:
    def test_round_trip(self, db, make_match):
        match = make_match(score_a=13, score_b=9, kills=18, deaths=12)
        stored = db.get_match(match.id)

        assert stored.match_uid == match.match_uid
        assert stored.start_ts == MATCH_START
        assert stored.duration_ms == 30 * 60 * 1000
        assert stored.details.kills == 18
        assert stored.details.is_win
        assert db.get_match_by_uid(match.match_uid).id == match.id

        data = stored.to_dict()
        assert data["score"] == "13-9"
        assert data["teams"] == ["Team Alpha", "Team Beta"]

    def test_newest_first_with_limit(self, db, make_match, owner_id):
        for day in range(5):
            make_match(start=MATCH_START + timedelta(days=day))

        matches = db.get_matches_for_user(owner_id, limit=3)
        assert len(matches) == 3
        starts = [m.start_ts for m in matches]
        assert starts == sorted(starts, reverse=True)
        assert starts[0] == MATCH_START + timedelta(days=4)

    def test_end_before_start_rejected(self, db, owner_id):
        with pytest.raises(ValueError):
            with db.transaction() as repo:
                repo.add_match(
                    match_uid="bad",
                    game="CS2",
                    map_name="Nuke",
                    team_ids=["Team Mu", "Team Eta"],
                    start_ts=MATCH_START,
                    end_ts=MATCH_START,
                    user_id=owner_id,
                    metadata=MatchMetadata(),
                )
        assert db.get_global_stats()["matches"] == 0

    def test_metadata_backfill(self, db, make_match):
        match = make_match()
        with db.transaction() as repo:
            row = db.get_match(match.id)
            repo.session.add(row)
            repo.update_match_metadata(row, kills=9, deaths=4)

        details = db.get_match(match.id).details
        assert (details.kills, details.deaths) == (9, 4)
        assert (details.score_a, details.score_b) == (13, 7)

    def test_delete_cascades(self, db, make_match):
        """Deleting a match removes everything it owns."""
        match = make_match()
        with db.transaction() as repo:
            phase = _add_phase(repo, match)
            _add_ttd(repo, match, phase, round_tagged=True)

        assert db.delete_match(match.id)
        stats = db.get_global_stats()
        assert stats["matches"] == stats["phases"] == stats["ttd_samples"] == 0
        assert not db.delete_match(match.id)


class TestTransaction:
    def test_rollback_on_error(self, db, make_match):
        """A failing unit of work leaves no partial rows behind."""
        match = make_match()
        with pytest.raises(RuntimeError):
            with db.transaction() as repo:
                _add_phase(repo, match)
                raise RuntimeError("boom")
        assert db.get_phases(match.id) == []

    def test_rows_usable_after_commit(self, db, make_match):
        match = make_match()
        with db.transaction() as repo:
            phase = _add_phase(repo, match)
        assert phase.id is not None
        assert phase.contains(match.start_ts)


class TestRoundTTDRows:
    def test_delete_only_round_tagged(self, db, make_match):
        match = make_match()
        with db.transaction() as repo:
            phase = _add_phase(repo, match)
            _add_ttd(repo, match, phase, round_tagged=True)
            _add_ttd(repo, match, phase, round_tagged=True)
            _add_ttd(repo, match, phase, round_tagged=False)

        assert db.count_round_ttd_samples() == 2
        with db.transaction() as repo:
            assert repo.delete_round_ttd_samples([match.id]) == 2
        assert db.count_round_ttd_samples() == 0
        assert len(db.get_ttd_samples(match.id)) == 1

    def test_delete_limited_to_given_matches(self, db, make_match):
        kept, cleared = make_match(), make_match()
        with db.transaction() as repo:
            for match in (kept, cleared):
                phase = _add_phase(repo, match, uid=f"p-{match.id}")
                _add_ttd(repo, match, phase, round_tagged=True)

        with db.transaction() as repo:
            assert repo.delete_round_ttd_samples([cleared.id]) == 1
        assert db.count_round_ttd_samples() == 1
        assert db.count_round_ttd_samples([kept.id]) == 1
        assert db.count_round_ttd_samples([cleared.id]) == 0


class TestConstruction:
    def test_explicit_url(self, tmp_path):
        manager = DatabaseManager(url=f"sqlite:///{tmp_path / 'other.db'}")
        try:
            assert manager.db_path is None
            assert manager.get_global_stats()["matches"] == 0
        finally:
            manager.dispose()

    def test_creates_parent_directory(self, tmp_path):
        manager = DatabaseManager(tmp_path / "nested" / "dir" / "t.db")
        try:
            assert (tmp_path / "nested" / "dir").is_dir()
        finally:
            manager.dispose()
