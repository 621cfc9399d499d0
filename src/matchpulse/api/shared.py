"""
Shared pieces of the MatchPulse API: request validation, response models and
the DatabaseManager dependency.
"""

import logging
import re
from typing import Any

from fastapi import HTTPException, Request
from pydantic import BaseModel, Field

from matchpulse import __version__
from matchpulse.infra.database import DatabaseManager

logger = logging.getLogger(__name__)

OPEN_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:@-]{1,64}$")
MAX_MATCH_LIMIT = 100


def validate_open_id(open_id: str) -> str:
    if not OPEN_ID_PATTERN.match(open_id):
        raise HTTPException(status_code=400, detail="Invalid owner key format")
    return open_id


def get_database(request: Request) -> DatabaseManager:
    """Dependency provider: the DatabaseManager the app was created with."""
    return request.app.state.db


def resolve_user(db: DatabaseManager, open_id: str) -> int:
    validate_open_id(open_id)
    user_id = db.get_user_id(open_id)
    if user_id is None:
        raise HTTPException(status_code=404, detail=f"Unknown user: {open_id}")
    return user_id


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = __version__


class MatchSummary(BaseModel):
    id: int
    match_uid: str
    game: str
    map: str
    teams: list[str]
    start_ts: str
    end_ts: str
    score: str
    score_a: int
    score_b: int
    winner: str | None = None
    kills: int = 0
    deaths: int = 0


class MatchListResponse(BaseModel):
    open_id: str
    count: int
    matches: list[MatchSummary] = Field(default_factory=list)


class TrendPointModel(BaseModel):
    match_id: int
    match_uid: str
    start_ts: str
    kd: float
    performance: float
    won: bool


class AnalyticsResponse(BaseModel):
    open_id: str
    window: int
    matches: int
    kd_ratio: float
    win_rate: int
    avg_performance: float
    points: list[TrendPointModel] = Field(default_factory=list)


class BreakdownResponse(BaseModel):
    match: dict[str, Any]
    ttd: dict[str, float]
    ttd_distribution: list[dict[str, Any]]
    round_ttd: list[dict[str, Any]]
    voice: dict[str, float]
    sentiment: dict[str, int]
    phases: dict[str, float]
    events: list[dict[str, Any]]
    combos: list[dict[str, Any]]
