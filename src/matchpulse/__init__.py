"""
MatchPulse - Esports Match Telemetry Synthesis and Performance Analytics

Generates internally consistent synthetic match telemetry (phases, events,
time-to-decision samples, voice turns, player combos), stores it with
SQLAlchemy and derives K/D, win-rate and performance trends from it.

Usage:
    from matchpulse import DatabaseManager, generate_batch, load_config

    db = DatabaseManager("telemetry.db")
    summary = generate_batch(db, load_config())
"""

__version__ = "0.1.0"
__author__ = "MatchPulse Contributors"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    if name == "DatabaseManager":
        from matchpulse.infra.database import DatabaseManager
        return DatabaseManager
    elif name == "load_config":
        from matchpulse.core.config import load_config
        return load_config
    elif name == "TelemetryRandom":
        from matchpulse.core.random_source import TelemetryRandom
        return TelemetryRandom
    elif name == "generate_batch":
        from matchpulse.synthesis.pipeline import generate_batch
        return generate_batch
    elif name == "regenerate_round_ttd":
        from matchpulse.synthesis.pipeline import regenerate_round_ttd
        return regenerate_round_ttd
    elif name == "get_performance_summary":
        from matchpulse.analysis.trends import get_performance_summary
        return get_performance_summary
    elif name == "create_app":
        from matchpulse.api import create_app
        return create_app
    raise AttributeError(f"module 'matchpulse' has no attribute '{name}'")
