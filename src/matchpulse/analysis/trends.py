"""
Derived performance analytics over a user's recent matches.

All metrics are recomputed on every call from a bounded window of persisted
matches; nothing is cached. The store returns the window newest first and the
series here are evaluated oldest to newest.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from matchpulse.infra.database import DatabaseManager, Match

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 10
NEUTRAL_PERFORMANCE = 50.0


def _round_half_up(value: float, digits: int = 0) -> float:
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def kd_point(kills: int, deaths: int) -> float:
    """K/D for one match; zero deaths count as one."""
    return _round_half_up(kills / max(deaths, 1), 2)


def performance_score(score_a: int, score_b: int) -> float:
    """
    Composite 0-100 score: 50 splits wins from losses.

    A win maps into (50, 100] and a loss into [0, 50), scaled by the share of
    rounds taken. A 0-0 record carries no information and scores 50.
    """
    total = score_a + score_b
    if total == 0:
        return NEUTRAL_PERFORMANCE
    share = score_a / total
    if score_a > score_b:
        return _round_half_up(50 + 50 * share, 1)
    return _round_half_up(50 * share, 1)


def win_rate_pct(results: Sequence[tuple[int, int]]) -> int:
    """Percentage of (score_a, score_b) pairs won by side A, rounded half up."""
    if not results:
        return 0
    wins = sum(1 for a, b in results if a > b)
    return int(_round_half_up(100 * wins / len(results)))


@dataclass
class TrendPoint:
    match_id: int
    match_uid: str
    start_ts: str
    kd: float
    performance: float
    won: bool


@dataclass
class PerformanceSummary:
    """Window metrics plus the per-match series behind them."""

    matches: int = 0
    kd_ratio: float = 0.0
    win_rate: int = 0
    avg_performance: float = NEUTRAL_PERFORMANCE
    points: list[TrendPoint] = field(default_factory=list)

    @property
    def kd_trend(self) -> list[float]:
        return [p.kd for p in self.points]

    @property
    def performance_trend(self) -> list[float]:
        return [p.performance for p in self.points]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize_matches(matches: Sequence[Match]) -> PerformanceSummary:
    """
    Compute the window metrics for matches given newest first.

    Empty input gives K/D 0.0, win rate 0 and average performance 50.0.
    """
    if not matches:
        return PerformanceSummary()

    points = []
    results = []
    for match in reversed(matches):
        details = match.details
        results.append((details.score_a, details.score_b))
        points.append(
            TrendPoint(
                match_id=match.id,
                match_uid=match.match_uid,
                start_ts=match.start_ts.isoformat(),
                kd=kd_point(details.kills, details.deaths),
                performance=performance_score(details.score_a, details.score_b),
                won=details.is_win,
            )
        )

    return PerformanceSummary(
        matches=len(points),
        kd_ratio=_round_half_up(sum(p.kd for p in points) / len(points), 2),
        win_rate=win_rate_pct(results),
        avg_performance=_round_half_up(sum(p.performance for p in points) / len(points), 1),
        points=points,
    )


def get_performance_summary(
    db: DatabaseManager, user_id: int, window: int = DEFAULT_WINDOW
) -> PerformanceSummary:
    """Fetch the user's most recent `window` matches and summarize them."""
    if window < 1:
        raise ValueError(f"Window must be positive, got {window}")
    matches = db.get_matches_for_user(user_id, limit=window)
    logger.debug(f"Summarizing {len(matches)} matches for user {user_id}")
    return summarize_matches(matches)
