"""
MatchPulse Analysis - Derived metrics over persisted telemetry.

This module contains:
- trends: K/D trend, win rate and performance score over a match window
- match_breakdown: Per-match TTD, voice, phase, event and combo breakdowns
- integrity: Invariant checks over stored telemetry
"""

from matchpulse.analysis.trends import (
    PerformanceSummary,
    get_performance_summary,
    kd_point,
    performance_score,
    summarize_matches,
    win_rate_pct,
)

__all__: list[str] = [
    "PerformanceSummary",
    "get_performance_summary",
    "kd_point",
    "performance_score",
    "summarize_matches",
    "win_rate_pct",
]
