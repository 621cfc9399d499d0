"""
MatchPulse Infrastructure - System infrastructure components.

This module contains:
- database: SQLite telemetry store (SQLAlchemy models, DatabaseManager, TelemetryRepository)
"""

__all__: list[str] = []
