"""Tests for per-match breakdown aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

from matchpulse.analysis.match_breakdown import (
    build_match_breakdown,
    combo_ranking,
    event_breakdown,
    phase_breakdown,
    round_ttd_curve,
    sentiment_distribution,
    ttd_distribution,
    ttd_stats,
    voice_quality,
)
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.core.schemas import TTDMetadata
from matchpulse.infra.database import TTDSample
from matchpulse.synthesis.pipeline import generate_batch


def _samples(*values):
    return [SimpleNamespace(ttd_ms=v) for v in values]


class TestTTDStats:
    def test_percentiles_by_floor_index(self):
        stats = ttd_stats(_samples(*range(100, 1100, 100)))
        assert stats == {"p50": 600, "p90": 1000, "mean": 550.0, "count": 10}

    def test_unsorted_input(self):
        assert ttd_stats(_samples(900, 100, 500))["p50"] == 500

    def test_empty(self):
        assert ttd_stats([]) == {"p50": 0, "p90": 0, "mean": 0.0, "count": 0}

    def test_distribution_buckets(self):
        dist = ttd_distribution(_samples(100, 249, 250, 600, 999, 1200, 5000))
        assert dist == [
            {"range": "<250", "count": 2},
            {"range": "250-500", "count": 1},
            {"range": "500-750", "count": 1},
            {"range": "750-1000", "count": 1},
            {"range": "1000-1500", "count": 1},
            {"range": ">1500", "count": 1},
        ]


class TestRoundCurve:
    def test_only_round_tagged_samples(self):
        samples = [
            TTDSample(ttd_ms=400, meta={"round": 1, "is_round_ttd": True}),
            TTDSample(ttd_ms=500, meta={"round": 1, "is_round_ttd": True}),
            TTDSample(ttd_ms=300, meta={"round": 2, "is_round_ttd": True}),
            TTDSample(ttd_ms=2000, meta={"situation": "combat"}),
        ]
        assert round_ttd_curve(samples) == [
            {"round": 1, "avg_ttd": 450, "samples": 2},
            {"round": 2, "avg_ttd": 300, "samples": 1},
        ]

    def test_tagged_without_round_skipped(self):
        """A round-tagged row missing its round number is left out of the curve."""
        samples = [
            TTDSample(ttd_ms=400, meta={"round": 1, "is_round_ttd": True}),
            TTDSample(ttd_ms=900, meta={"is_round_ttd": True}),
        ]
        assert round_ttd_curve(samples) == [{"round": 1, "avg_ttd": 400, "samples": 1}]


class TestVoiceAndSentiment:
    def test_quality(self):
        turns = [
            SimpleNamespace(clarity=3.0, info_density=2.0, interruption=True, sentiment="calm"),
            SimpleNamespace(clarity=5.0, info_density=4.0, interruption=False, sentiment="calm"),
        ]
        assert voice_quality(turns) == {
            "avg_clarity": 4.0,
            "avg_info_density": 3.0,
            "interruption_rate": 0.5,
            "total_turns": 2,
        }
        assert sentiment_distribution(turns) == {"calm": 2}

    def test_empty_quality(self):
        assert voice_quality([])["total_turns"] == 0


class TestPhaseEventCombo:
    def test_minutes_per_phase_type(self):
        start = datetime(2025, 1, 1)
        phases = [
            SimpleNamespace(phase_type="hot", start_ts=start, end_ts=start + timedelta(minutes=5)),
            SimpleNamespace(phase_type="hot", start_ts=start, end_ts=start + timedelta(minutes=2, seconds=30)),
            SimpleNamespace(phase_type="slump", start_ts=start, end_ts=start + timedelta(minutes=10)),
        ]
        assert phase_breakdown(phases) == {"hot": 7.5, "slump": 10.0}

    def test_top_actions(self):
        events = [SimpleNamespace(action=a) for a in "aabbbcdefgh"]
        top = event_breakdown(events)
        assert len(top) == 6
        assert top[0] == {"action": "b", "count": 3}
        assert top[1] == {"action": "a", "count": 2}

    def test_combo_ranking_percent(self):
        combos = [
            SimpleNamespace(members=["Jett", "Sage"], win_rate=0.5, attempts=10, context="offense"),
            SimpleNamespace(members=["Omen", "Raze", "Skye"], win_rate=0.875, attempts=8, context="defense"),
        ]
        ranked = combo_ranking(combos)
        assert ranked[0]["members"] == "Omen + Raze + Skye"
        assert ranked[0]["win_rate"] == 87.5
        assert ranked[1]["win_rate"] == 50.0


class TestBuildBreakdown:
    def test_generated_match(self, db, config):
        summary = generate_batch(db, config, TelemetryRandom(6), count=1)
        stats = summary.matches[0]
        breakdown = build_match_breakdown(db, stats.match_id)

        assert breakdown["match"]["match_uid"] == stats.match_uid
        assert breakdown["ttd"]["count"] == stats.ttd_samples
        assert sum(b["count"] for b in breakdown["ttd_distribution"]) == stats.ttd_samples
        rounds = [r["round"] for r in breakdown["round_ttd"]]
        assert rounds == list(range(1, len(rounds) + 1))
        assert breakdown["voice"]["total_turns"] == stats.voice_turns
        assert sum(breakdown["sentiment"].values()) == stats.voice_turns
        assert sum(breakdown["phases"].values()) > 0
        assert len(breakdown["combos"]) == min(stats.combos, 6)

    def test_stored_row_without_round(self, db, config):
        summary = generate_batch(db, config, TelemetryRandom(6), count=1)
        stats = summary.matches[0]
        match = db.get_match(stats.match_id)
        with db.transaction() as repo:
            repo.add_ttd_sample(
                match_id=match.id,
                phase_id=None,
                event_src_ts=match.start_ts,
                decision_ts=match.start_ts + timedelta(milliseconds=50),
                action_ts=match.start_ts + timedelta(milliseconds=300),
                ttd_ms=300,
                context_hash="external",
                metadata=TTDMetadata(is_round_ttd=True),
            )

        breakdown = build_match_breakdown(db, stats.match_id)
        assert breakdown["ttd"]["count"] == stats.ttd_samples + 1
        rounds = [r["round"] for r in breakdown["round_ttd"]]
        assert None not in rounds
        assert rounds == list(range(1, len(rounds) + 1))

    def test_missing_match(self, db):
        assert build_match_breakdown(db, 12345) is None
