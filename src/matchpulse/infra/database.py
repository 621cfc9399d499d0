"""
MatchPulse Telemetry Store.

Persistent storage for users, matches and the telemetry attached to a match:
performance phases, game events, TTD samples, voice turns and player combos.

Uses SQLite with the SQLAlchemy ORM. The DatabaseManager is constructed by the
process entry point (CLI or API factory) and passed explicitly to every
generator and analytics function.
"""

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    event,
    func,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from matchpulse.core.schemas import (
    ComboMetadata,
    EventMetadata,
    MatchMetadata,
    PhaseMetadata,
    TTDMetadata,
    VoiceMetadata,
)


def _utc_now() -> datetime:
    """Return current UTC time as a naive datetime (SQLite drops tzinfo)."""
    return datetime.now(UTC).replace(tzinfo=None)


logger = logging.getLogger(__name__)

# Database configuration
DEFAULT_DB_PATH = Path.home() / ".matchpulse" / "telemetry.db"
Base = declarative_base()


# =============================================================================
# Database Models
# =============================================================================


class User(Base):
    """Owner of match data."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    open_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(Text)
    email = Column(String(320))
    login_method = Column(String(64))
    role = Column(String(16), nullable=False, default="user")
    created_at = Column(DateTime, default=_utc_now)

    matches = relationship("Match", back_populates="user", cascade="all, delete-orphan")


class Match(Base):
    """One completed game session."""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_uid = Column(String(128), unique=True, nullable=False, index=True)
    game = Column(String(64), nullable=False)
    map_name = Column(String(64), nullable=False)
    team_ids = Column(JSON, nullable=False)
    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=_utc_now)

    # Relationships
    user = relationship("User", back_populates="matches")
    phases = relationship(
        "Phase",
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="Phase.start_ts",
    )
    events = relationship("Event", back_populates="match", cascade="all, delete-orphan")
    ttd_samples = relationship("TTDSample", back_populates="match", cascade="all, delete-orphan")
    voice_turns = relationship("VoiceTurn", back_populates="match", cascade="all, delete-orphan")
    combos = relationship("Combo", back_populates="match", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_match_user_start", "user_id", "start_ts"),)

    @property
    def details(self) -> MatchMetadata:
        return MatchMetadata.model_validate(self.meta or {})

    @property
    def duration_ms(self) -> int:
        return int((self.end_ts - self.start_ts).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        details = self.details
        return {
            "id": self.id,
            "match_uid": self.match_uid,
            "game": self.game,
            "map": self.map_name,
            "teams": list(self.team_ids or []),
            "start_ts": self.start_ts.isoformat() if self.start_ts else None,
            "end_ts": self.end_ts.isoformat() if self.end_ts else None,
            "score": f"{details.score_a}-{details.score_b}",
            "score_a": details.score_a,
            "score_b": details.score_b,
            "winner": details.winner,
            "kills": details.kills,
            "deaths": details.deaths,
        }


class Phase(Base):
    """Contiguous performance segment of a match timeline."""

    __tablename__ = "phases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phase_uid = Column(String(128), unique=True, nullable=False)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    phase_type = Column(String(16), nullable=False)
    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    change_point_score = Column(Float)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=_utc_now)

    match = relationship("Match", back_populates="phases")

    @property
    def details(self) -> PhaseMetadata:
        return PhaseMetadata.model_validate(self.meta or {})

    def contains(self, ts: datetime) -> bool:
        """Half-open window test: start <= ts < end."""
        return self.start_ts <= ts < self.end_ts

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "phase_uid": self.phase_uid,
            "phase_type": self.phase_type,
            "start_ts": self.start_ts.isoformat(),
            "end_ts": self.end_ts.isoformat(),
            "change_point_score": (
                round(self.change_point_score, 2) if self.change_point_score is not None else None
            ),
        }


class Event(Base):
    """Instantaneous in-game action."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    event_ts = Column(DateTime, nullable=False)
    actor = Column(String(128), nullable=False)
    action = Column(String(64), nullable=False)
    target = Column(String(128))
    ability = Column(String(64))  # weapon or ability used
    success = Column(Boolean)
    position_x = Column(Float)
    position_y = Column(Float)
    position_z = Column(Float)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=_utc_now)

    match = relationship("Match", back_populates="events")

    __table_args__ = (Index("idx_event_match_ts", "match_id", "event_ts"),)

    @property
    def details(self) -> EventMetadata:
        return EventMetadata.model_validate(self.meta or {})


class TTDSample(Base):
    """Time-to-decision observation: stimulus -> decision -> action."""

    __tablename__ = "ttd_samples"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    phase_id = Column(Integer, ForeignKey("phases.id", ondelete="SET NULL"))
    event_src_ts = Column(DateTime, nullable=False)
    decision_ts = Column(DateTime, nullable=False)
    action_ts = Column(DateTime, nullable=False)
    ttd_ms = Column(Integer, nullable=False)
    context_hash = Column(String(128))
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=_utc_now)

    match = relationship("Match", back_populates="ttd_samples")

    @property
    def details(self) -> TTDMetadata:
        return TTDMetadata.model_validate(self.meta or {})

    @property
    def is_round_ttd(self) -> bool:
        return bool((self.meta or {}).get("is_round_ttd"))


class VoiceTurn(Base):
    """One timed voice communication turn."""

    __tablename__ = "voice_turns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    speaker_id = Column(String(128), nullable=False)
    start_ts = Column(DateTime, nullable=False)
    end_ts = Column(DateTime, nullable=False)
    text = Column(Text)
    clarity = Column(Float)
    info_density = Column(Float)
    interruption = Column(Boolean, default=False)
    sentiment = Column(String(32))
    sentiment_score = Column(Float)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=_utc_now)

    match = relationship("Match", back_populates="voice_turns")

    @property
    def details(self) -> VoiceMetadata:
        return VoiceMetadata.model_validate(self.meta or {})


class Combo(Base):
    """Duo/trio co-occurrence record with attempt/success counts."""

    __tablename__ = "combos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    members = Column(JSON, nullable=False)
    context = Column(String(128))
    attempts = Column(Integer, nullable=False, default=0)
    successes = Column(Integer, nullable=False, default=0)
    win_rate = Column(Float)
    confidence_interval_low = Column(Float)
    confidence_interval_high = Column(Float)
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=_utc_now)

    match = relationship("Match", back_populates="combos")

    @property
    def details(self) -> ComboMetadata:
        return ComboMetadata.model_validate(self.meta or {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "members": list(self.members or []),
            "context": self.context,
            "attempts": self.attempts,
            "successes": self.successes,
            "win_rate": self.win_rate,
            "confidence_interval": [self.confidence_interval_low, self.confidence_interval_high],
        }


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ON DELETE clauses unless foreign keys are switched on."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# =============================================================================
# Unit of Work
# =============================================================================


class TelemetryRepository:
    """
    Write-side operations bound to one session.

    Obtained from DatabaseManager.transaction(); every add_* flushes so the
    returned row has its primary key.
    """

    def __init__(self, session: Session):
        self.session = session

    def _add(self, row):
        self.session.add(row)
        self.session.flush()
        return row

    def add_match(
        self,
        *,
        match_uid: str,
        game: str,
        map_name: str,
        team_ids: list[str],
        start_ts: datetime,
        end_ts: datetime,
        user_id: int,
        metadata: MatchMetadata,
    ) -> Match:
        if end_ts <= start_ts:
            raise ValueError(f"Match {match_uid} ends before it starts")
        return self._add(
            Match(
                match_uid=match_uid,
                game=game,
                map_name=map_name,
                team_ids=list(team_ids),
                start_ts=start_ts,
                end_ts=end_ts,
                user_id=user_id,
                meta=metadata.to_json(),
            )
        )

    def update_match_metadata(self, match: Match, **changes: Any) -> Match:
        """Backfill metadata fields; the match row itself is otherwise immutable."""
        updated = match.details.model_copy(update=changes)
        match.meta = updated.to_json()
        self.session.flush()
        return match

    def add_phase(
        self,
        *,
        phase_uid: str,
        match_id: int,
        phase_type: str,
        start_ts: datetime,
        end_ts: datetime,
        change_point_score: float,
        metadata: PhaseMetadata,
    ) -> Phase:
        return self._add(
            Phase(
                phase_uid=phase_uid,
                match_id=match_id,
                phase_type=str(phase_type),
                start_ts=start_ts,
                end_ts=end_ts,
                change_point_score=change_point_score,
                meta=metadata.to_json(),
            )
        )

    def add_event(self, *, metadata: EventMetadata, **fields: Any) -> Event:
        return self._add(Event(meta=metadata.to_json(), **fields))

    def add_ttd_sample(self, *, metadata: TTDMetadata, **fields: Any) -> TTDSample:
        return self._add(TTDSample(meta=metadata.to_json(), **fields))

    def add_voice_turn(self, *, metadata: VoiceMetadata, **fields: Any) -> VoiceTurn:
        return self._add(VoiceTurn(meta=metadata.to_json(), **fields))

    def add_combo(self, *, metadata: ComboMetadata, **fields: Any) -> Combo:
        return self._add(Combo(meta=metadata.to_json(), **fields))

    def get_phases(self, match_id: int) -> list[Phase]:
        return (
            self.session.query(Phase)
            .filter(Phase.match_id == match_id)
            .order_by(Phase.start_ts.asc())
            .all()
        )

    def get_matches_for_user(self, user_id: int) -> list[Match]:
        return (
            self.session.query(Match)
            .filter(Match.user_id == user_id)
            .order_by(Match.start_ts.asc())
            .all()
        )

    def delete_round_ttd_samples(self, match_ids: Iterable[int]) -> int:
        """
        Remove the round-level TTD samples belonging to the given matches.

        Scans the whole table and filters on the metadata marker in Python;
        fine at synthetic-data scale, index the marker before using this on
        production volumes.
        """
        targets = set(match_ids)
        deleted = 0
        for sample in self.session.query(TTDSample).all():
            if sample.is_round_ttd and sample.match_id in targets:
                self.session.delete(sample)
                deleted += 1
        self.session.flush()
        return deleted


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """Manages database connections and operations."""

    def __init__(self, db_path: Path | str | None = None, *, url: str | None = None, echo: bool = False):
        """
        Initialize database connection.

        Args:
            db_path: SQLite file path (defaults to ~/.matchpulse/telemetry.db)
            url: Full SQLAlchemy URL; overrides db_path
            echo: Log emitted SQL
        """
        if url is None:
            self.db_path = Path(db_path) if db_path is not None else DEFAULT_DB_PATH
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            url = f"sqlite:///{self.db_path}"
        else:
            self.db_path = None
        self.url = url

        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_engine(url, echo=echo, connect_args=connect_args)

        # Rows handed back to generators stay readable after commit
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

        logger.info(f"Database initialized at: {self.url}")

    def get_session(self) -> Session:
        """Get a database session."""
        return self.SessionLocal()

    @contextmanager
    def transaction(self) -> Iterator[TelemetryRepository]:
        """Run a block of writes atomically; rollback and re-raise on failure."""
        session = self.get_session()
        try:
            yield TelemetryRepository(session)
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Transaction rolled back: {e}")
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()

    # =========================================================================
    # User Operations
    # =========================================================================

    def upsert_user(
        self,
        open_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        login_method: str | None = None,
        role: str = "user",
    ) -> int:
        """Create or update a user keyed by open_id and return its numeric id."""
        session = self.get_session()
        try:
            user = session.query(User).filter(User.open_id == open_id).first()
            if user is None:
                user = User(open_id=open_id)
                session.add(user)
            if name is not None:
                user.name = name
            if email is not None:
                user.email = email
            if login_method is not None:
                user.login_method = login_method
            user.role = role
            session.commit()
            return user.id
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to upsert user {open_id}: {e}")
            raise
        finally:
            session.close()

    def get_user_id(self, open_id: str) -> int | None:
        """Stable numeric id for a semantic owner key, or None."""
        session = self.get_session()
        try:
            return session.query(User.id).filter(User.open_id == open_id).scalar()
        finally:
            session.close()

    # =========================================================================
    # Match Operations
    # =========================================================================

    def get_match(self, match_id: int) -> Match | None:
        session = self.get_session()
        try:
            return session.get(Match, match_id)
        finally:
            session.close()

    def get_match_by_uid(self, match_uid: str) -> Match | None:
        session = self.get_session()
        try:
            return session.query(Match).filter(Match.match_uid == match_uid).first()
        finally:
            session.close()

    def get_matches_for_user(self, user_id: int, limit: int = 50) -> list[Match]:
        """A user's most recent matches, newest first."""
        session = self.get_session()
        try:
            return (
                session.query(Match)
                .filter(Match.user_id == user_id)
                .order_by(Match.start_ts.desc(), Match.id.desc())
                .limit(limit)
                .all()
            )
        finally:
            session.close()

    def delete_match(self, match_id: int) -> bool:
        """Delete a match and everything it owns."""
        session = self.get_session()
        try:
            match = session.get(Match, match_id)
            if match is None:
                return False
            session.delete(match)
            session.commit()
            logger.info(f"Deleted match {match_id}")
            return True
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to delete match {match_id}: {e}")
            raise
        finally:
            session.close()

    # =========================================================================
    # Telemetry Reads
    # =========================================================================

    def get_phases(self, match_id: int) -> list[Phase]:
        session = self.get_session()
        try:
            return TelemetryRepository(session).get_phases(match_id)
        finally:
            session.close()

    def get_events(
        self,
        match_id: int,
        start_ts: datetime | None = None,
        end_ts: datetime | None = None,
    ) -> list[Event]:
        """Events of a match in time order, optionally limited to [start_ts, end_ts]."""
        session = self.get_session()
        try:
            query = session.query(Event).filter(Event.match_id == match_id)
            if start_ts is not None:
                query = query.filter(Event.event_ts >= start_ts)
            if end_ts is not None:
                query = query.filter(Event.event_ts <= end_ts)
            return query.order_by(Event.event_ts.asc()).all()
        finally:
            session.close()

    def get_ttd_samples(self, match_id: int, phase_id: int | None = None) -> list[TTDSample]:
        session = self.get_session()
        try:
            query = session.query(TTDSample).filter(TTDSample.match_id == match_id)
            if phase_id is not None:
                query = query.filter(TTDSample.phase_id == phase_id)
            return query.order_by(TTDSample.event_src_ts.asc()).all()
        finally:
            session.close()

    def get_voice_turns(self, match_id: int) -> list[VoiceTurn]:
        session = self.get_session()
        try:
            return (
                session.query(VoiceTurn)
                .filter(VoiceTurn.match_id == match_id)
                .order_by(VoiceTurn.start_ts.asc())
                .all()
            )
        finally:
            session.close()

    def get_combos(self, match_id: int) -> list[Combo]:
        """Combos of a match, best win rate first."""
        session = self.get_session()
        try:
            return (
                session.query(Combo)
                .filter(Combo.match_id == match_id)
                .order_by(Combo.win_rate.desc(), Combo.id.asc())
                .all()
            )
        finally:
            session.close()

    def count_round_ttd_samples(self, match_ids: Iterable[int] | None = None) -> int:
        targets = None if match_ids is None else set(match_ids)
        session = self.get_session()
        try:
            return sum(
                1
                for s in session.query(TTDSample).all()
                if s.is_round_ttd and (targets is None or s.match_id in targets)
            )
        finally:
            session.close()

    def get_global_stats(self) -> dict[str, int]:
        """Row counts per telemetry table."""
        session = self.get_session()
        try:
            return {
                "users": session.query(func.count(User.id)).scalar() or 0,
                "matches": session.query(func.count(Match.id)).scalar() or 0,
                "phases": session.query(func.count(Phase.id)).scalar() or 0,
                "events": session.query(func.count(Event.id)).scalar() or 0,
                "ttd_samples": session.query(func.count(TTDSample.id)).scalar() or 0,
                "voice_turns": session.query(func.count(VoiceTurn.id)).scalar() or 0,
                "combos": session.query(func.count(Combo.id)).scalar() or 0,
            }
        finally:
            session.close()
