"""
MatchPulse Core - Foundation modules shared by generators and analytics.

This module contains:
- constants: Enumerations and fixed name pools
- config: Application configuration management
- random_source: Seedable random source (Box-Muller noise model)
- schemas: Per-entity metadata contracts
"""

from matchpulse.core.constants import (
    DEFAULT_OWNER_KEY,
    EventAction,
    Game,
    IntervalMethod,
    PhaseType,
    Pressure,
    Sentiment,
    Situation,
)
from matchpulse.core.random_source import TelemetryRandom

__all__ = [
    "DEFAULT_OWNER_KEY",
    "EventAction",
    "Game",
    "IntervalMethod",
    "PhaseType",
    "Pressure",
    "Sentiment",
    "Situation",
    "TelemetryRandom",
]
