"""
MatchPulse Data Contracts

Structured metadata carried in the JSON `metadata` column of every telemetry
table. Each entity kind has its own model; fields that are genuinely free-form
go into `extra`.

Producers: synthesis/*.py
Consumers: analysis/*.py, api/, cli.py
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from matchpulse.core.constants import PhaseType, Pressure, Situation


class _Metadata(BaseModel):
    """Base for per-entity metadata. Unknown keys are dropped, not stored."""

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    extra: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class MatchMetadata(_Metadata):
    score_a: int = Field(default=0, ge=0)
    score_b: int = Field(default=0, ge=0)
    winner: str | None = None
    duration_ms: int | None = Field(default=None, ge=0)
    demo_file: str | None = None
    match_number: int | None = None
    # Backfilled after event synthesis
    kills: int = Field(default=0, ge=0)
    deaths: int = Field(default=0, ge=0)

    @property
    def is_win(self) -> bool:
        return self.score_a > self.score_b


class PhaseMetadata(_Metadata):
    description: str | None = None
    performance: str | None = None  # "good" or "needs_improvement"
    index: int | None = None
    count: int | None = None


class EventMetadata(_Metadata):
    round: int | None = Field(default=None, ge=1)
    team: str | None = None
    phase_type: PhaseType | None = None
    damage: int | None = Field(default=None, ge=0)


class TTDMetadata(_Metadata):
    round: int | None = Field(default=None, ge=1)
    total_rounds: int | None = Field(default=None, ge=1)
    situation: Situation | None = None
    pressure: Pressure | None = None
    complexity: int | None = Field(default=None, ge=1, le=5)
    is_round_ttd: bool = False


class VoiceMetadata(_Metadata):
    language: str = "en-US"
    urgency: str | None = None
    background_noise: bool = False
    phase_id: int | None = None


class ComboMetadata(_Metadata):
    synergy_score: float | None = Field(default=None, ge=0, le=5)
    communication_quality: float | None = Field(default=None, ge=0, le=5)
    combo_type: str | None = None  # "duo" or "trio"
    interval_method: str | None = None
