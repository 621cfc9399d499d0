"""
Read-only analytics route handlers.

Endpoints:
- GET /api/users/{open_id}/matches - most recent matches, newest first
- GET /api/users/{open_id}/analytics - K/D, win rate and performance over a window
- GET /api/matches/{match_id}/breakdown - per-match telemetry breakdown
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from matchpulse.analysis.match_breakdown import build_match_breakdown
from matchpulse.analysis.trends import DEFAULT_WINDOW, get_performance_summary
from matchpulse.api.shared import (
    MAX_MATCH_LIMIT,
    AnalyticsResponse,
    BreakdownResponse,
    MatchListResponse,
    get_database,
    resolve_user,
)
from matchpulse.infra.database import DatabaseManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analytics"])


@router.get("/api/users/{open_id}/matches", response_model=MatchListResponse)
def list_user_matches(
    open_id: str,
    limit: int = Query(DEFAULT_WINDOW, ge=1, le=MAX_MATCH_LIMIT),
    db: DatabaseManager = Depends(get_database),
) -> MatchListResponse:
    """Bounded window of a user's matches, newest first."""
    user_id = resolve_user(db, open_id)
    matches = [m.to_dict() for m in db.get_matches_for_user(user_id, limit=limit)]
    return MatchListResponse(open_id=open_id, count=len(matches), matches=matches)


@router.get("/api/users/{open_id}/analytics", response_model=AnalyticsResponse)
def user_analytics(
    open_id: str,
    window: int = Query(DEFAULT_WINDOW, ge=1, le=MAX_MATCH_LIMIT),
    db: DatabaseManager = Depends(get_database),
) -> AnalyticsResponse:
    user_id = resolve_user(db, open_id)
    summary = get_performance_summary(db, user_id, window=window)
    return AnalyticsResponse(open_id=open_id, window=window, **summary.to_dict())


@router.get("/api/matches/{match_id}/breakdown", response_model=BreakdownResponse)
def match_breakdown(
    match_id: int,
    db: DatabaseManager = Depends(get_database),
) -> BreakdownResponse:
    breakdown = build_match_breakdown(db, match_id)
    if breakdown is None:
        raise HTTPException(status_code=404, detail=f"Match not found: {match_id}")
    return BreakdownResponse(**breakdown)
