"""
MatchPulse Web API

Thin read-only FastAPI surface over the telemetry store.

This package exposes:
- create_app: application factory; the DatabaseManager is injected, not global
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from matchpulse.api.routes_analytics import router as analytics_router
from matchpulse.api.shared import HealthResponse, __version__
from matchpulse.infra.database import DatabaseManager

logger = logging.getLogger(__name__)


def create_app(db: DatabaseManager) -> FastAPI:
    """Build the API bound to one DatabaseManager."""
    app = FastAPI(
        title="MatchPulse API",
        description="Synthetic esports match telemetry and performance analytics",
        version=__version__,
    )
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse()

    app.include_router(analytics_router)

    logger.info(f"MatchPulse API created against {db.url}")
    return app
