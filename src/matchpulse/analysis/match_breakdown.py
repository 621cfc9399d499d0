"""
Per-match breakdowns for the match detail view.

Aggregates the telemetry of a single match: TTD statistics and distribution,
the round-level TTD curve, voice quality, sentiment mix, time spent per phase
type, most common event actions and the best combos.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Any

import numpy as np

from matchpulse.core.constants import TTD_BUCKETS
from matchpulse.infra.database import Combo, DatabaseManager, Event, Phase, TTDSample, VoiceTurn

logger = logging.getLogger(__name__)

TOP_N = 6


def ttd_stats(samples: list[TTDSample]) -> dict[str, float]:
    """p50/p90 by floor index into the sorted latencies, plus mean and count."""
    if not samples:
        return {"p50": 0, "p90": 0, "mean": 0.0, "count": 0}

    values = np.sort(np.array([s.ttd_ms for s in samples]))
    n = len(values)
    return {
        "p50": int(values[int(n * 0.5)]),
        "p90": int(values[min(int(n * 0.9), n - 1)]),
        "mean": round(float(values.mean()), 1),
        "count": n,
    }


def ttd_distribution(samples: list[TTDSample]) -> list[dict[str, Any]]:
    counts = Counter()
    for sample in samples:
        for label, low, high in TTD_BUCKETS:
            if low <= sample.ttd_ms < high:
                counts[label] += 1
                break
    return [{"range": label, "count": counts[label]} for label, _, _ in TTD_BUCKETS]


def round_ttd_curve(samples: list[TTDSample]) -> list[dict[str, Any]]:
    """Average latency per round over round-tagged samples; rows without a round number are skipped."""
    by_round: dict[int, list[int]] = defaultdict(list)
    for sample in samples:
        if not sample.is_round_ttd:
            continue
        round_number = sample.details.round
        if round_number is None:
            continue
        by_round[round_number].append(sample.ttd_ms)
    return [
        {"round": r, "avg_ttd": round(sum(v) / len(v)), "samples": len(v)}
        for r, v in sorted(by_round.items())
    ]


def voice_quality(turns: list[VoiceTurn]) -> dict[str, float]:
    if not turns:
        return {"avg_clarity": 0.0, "avg_info_density": 0.0, "interruption_rate": 0.0, "total_turns": 0}

    n = len(turns)
    return {
        "avg_clarity": round(sum(t.clarity or 0 for t in turns) / n, 2),
        "avg_info_density": round(sum(t.info_density or 0 for t in turns) / n, 2),
        "interruption_rate": round(sum(1 for t in turns if t.interruption) / n, 3),
        "total_turns": n,
    }


def sentiment_distribution(turns: list[VoiceTurn]) -> dict[str, int]:
    return dict(Counter(t.sentiment for t in turns if t.sentiment))


def phase_breakdown(phases: list[Phase]) -> dict[str, float]:
    """Minutes spent in each phase type."""
    minutes: dict[str, float] = defaultdict(float)
    for phase in phases:
        minutes[phase.phase_type] += (phase.end_ts - phase.start_ts).total_seconds() / 60
    return {k: round(v, 1) for k, v in minutes.items()}


def event_breakdown(events: list[Event], top: int = TOP_N) -> list[dict[str, Any]]:
    counts = Counter(e.action for e in events)
    return [{"action": action, "count": count} for action, count in counts.most_common(top)]


def combo_ranking(combos: list[Combo], top: int = TOP_N) -> list[dict[str, Any]]:
    """Best combos by win rate, as percentages."""
    ranked = sorted(combos, key=lambda c: c.win_rate or 0.0, reverse=True)[:top]
    return [
        {
            "members": " + ".join(c.members or []),
            "win_rate": round((c.win_rate or 0.0) * 100, 1),
            "attempts": c.attempts,
            "context": c.context,
        }
        for c in ranked
    ]


def build_match_breakdown(db: DatabaseManager, match_id: int) -> dict[str, Any] | None:
    """Full breakdown for one match, or None if it does not exist."""
    match = db.get_match(match_id)
    if match is None:
        return None

    samples = db.get_ttd_samples(match_id)
    turns = db.get_voice_turns(match_id)
    breakdown = {
        "match": match.to_dict(),
        "ttd": ttd_stats(samples),
        "ttd_distribution": ttd_distribution(samples),
        "round_ttd": round_ttd_curve(samples),
        "voice": voice_quality(turns),
        "sentiment": sentiment_distribution(turns),
        "phases": phase_breakdown(db.get_phases(match_id)),
        "events": event_breakdown(db.get_events(match_id)),
        "combos": combo_ranking(db.get_combos(match_id)),
    }
    logger.debug(f"Built breakdown for match {match_id}: {len(samples)} TTD samples, {len(turns)} voice turns")
    return breakdown
