"""SQLAlchemy ORM models for the Padeliga database.

Tables: leagues, league_teams, teams, players, team_players, matches,
rankings. League membership lives on both sides (``league_teams`` and
``teams.league_id``) and is kept in sync by registration; schedule
generation cross-checks the two.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class LeagueRow(Base):
    __tablename__ = "leagues"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    registration_deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    min_teams: Mapped[int] = mapped_column(Integer, default=4)
    max_teams: Mapped[int] = mapped_column(Integer, default=16)
    match_format: Mapped[str] = mapped_column(String(20), default="bestOf3")
    venue: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    schedule_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    points_per_win: Mapped[int] = mapped_column(Integer, default=3)
    points_per_loss: Mapped[int] = mapped_column(Integer, default=0)
    organizer_id: Mapped[str] = mapped_column(String(36), nullable=False)
    activated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)

    __table_args__ = (
        Index("ix_leagues_status", "status"),
        Index("ix_leagues_organizer", "organizer_id"),
    )


class TeamRow(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    league_id: Mapped[str | None] = mapped_column(ForeignKey("leagues.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (Index("ix_teams_league_id", "league_id"),)


class LeagueTeamRow(Base):
    """The league's own list of registered teams."""

    __tablename__ = "league_teams"

    league_id: Mapped[str] = mapped_column(ForeignKey("leagues.id"), primary_key=True)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=_now)


class PlayerRow(Base):
    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (Index("ix_players_user_id", "user_id"),)


class TeamPlayerRow(Base):
    __tablename__ = "team_players"

    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), primary_key=True)
    player_id: Mapped[str] = mapped_column(ForeignKey("players.id"), primary_key=True)


class MatchRow(Base):
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    league_id: Mapped[str] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    team_a_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    team_b_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    round_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    scheduled_time: Mapped[str | None] = mapped_column(String(10), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="unscheduled")
    team_a_score: Mapped[list | None] = mapped_column(JSON, nullable=True)
    team_b_score: Mapped[list | None] = mapped_column(JSON, nullable=True)
    winner_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    submitted_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    confirmed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")
    result_applied_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    @property
    def has_result(self) -> bool:
        return self.winner_id is not None and self.team_a_score is not None

    __table_args__ = (
        Index("ix_matches_league_status", "league_id", "status"),
        Index("ix_matches_league_date", "league_id", "scheduled_date"),
    )


class RankingRow(Base):
    """Derived standings row, rebuildable from completed matches."""

    __tablename__ = "rankings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    league_id: Mapped[str] = mapped_column(ForeignKey("leagues.id"), nullable=False)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0)
    matches_played: Mapped[int] = mapped_column(Integer, default=0)
    wins: Mapped[int] = mapped_column(Integer, default=0)
    losses: Mapped[int] = mapped_column(Integer, default=0)
    sets_won: Mapped[int] = mapped_column(Integer, default=0)
    sets_lost: Mapped[int] = mapped_column(Integer, default=0)
    points_scored: Mapped[int] = mapped_column(Integer, default=0)
    points_conceded: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)

    __table_args__ = (
        UniqueConstraint("league_id", "team_id", name="uq_ranking_league_team"),
        Index("ix_rankings_league", "league_id"),
    )
