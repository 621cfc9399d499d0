"""
MatchPulse Synthesis - Synthetic match telemetry generators.

This module contains:
- matches: Match header (game, map, teams, score, window)
- phases: Equal-length phase segmentation
- events: In-game events per phase
- ttd_curve: U-shaped reaction-time curve and per-phase TTD samples
- voice: Voice communication turns
- combos: Player combo statistics and confidence intervals
- pipeline: Per-match unit of work, batches and round-TTD regeneration
"""

from matchpulse.synthesis.pipeline import (
    OwnerNotFoundError,
    generate_batch,
    generate_match,
    regenerate_round_ttd,
)

__all__ = ["OwnerNotFoundError", "generate_batch", "generate_match", "regenerate_round_ttd"]
