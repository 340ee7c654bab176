"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. The core (scheduling, status transitions,
rankings) only talks to the database through this class, so no ORM query
code leaks into the algorithms.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from padeliga.db.models import (
    LeagueRow,
    LeagueTeamRow,
    MatchRow,
    PlayerRow,
    RankingRow,
    TeamPlayerRow,
    TeamRow,
)


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def atomic(self) -> AsyncGenerator[None, None]:
        """Run a block inside a SAVEPOINT: all of its writes land, or none do."""
        async with self.session.begin_nested():
            yield

    # --- Leagues ---

    async def create_league(
        self,
        name: str,
        organizer_id: str,
        start_date: datetime,
        end_date: datetime,
        registration_deadline: datetime,
        **fields: object,
    ) -> LeagueRow:
        row = LeagueRow(
            name=name,
            organizer_id=organizer_id,
            start_date=start_date,
            end_date=end_date,
            registration_deadline=registration_deadline,
            **fields,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def commit(self) -> None:
        await self.session.commit()

    async def get_league(self, league_id: str, refresh: bool = False) -> LeagueRow | None:
        """Fetch a league; ``refresh`` reloads a row already in the session."""
        return await self.session.get(LeagueRow, league_id, populate_existing=refresh)

    async def save_league(self, league: LeagueRow) -> LeagueRow:
        self.session.add(league)
        await self.session.flush()
        return league

    async def get_league_team_ids(self, league_id: str) -> list[str]:
        """Team IDs in the league's own team list, in registration order."""
        stmt = (
            select(LeagueTeamRow.team_id)
            .where(LeagueTeamRow.league_id == league_id)
            .order_by(LeagueTeamRow.position, LeagueTeamRow.joined_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_league_teams(self, league_id: str) -> int:
        stmt = select(func.count()).where(LeagueTeamRow.league_id == league_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def add_team_to_league(self, league_id: str, team_id: str) -> None:
        """Append a team to the league's team list (no-op if already present)."""
        existing = await self.session.get(LeagueTeamRow, (league_id, team_id))
        if existing is not None:
            return
        position = await self.count_league_teams(league_id)
        self.session.add(LeagueTeamRow(league_id=league_id, team_id=team_id, position=position))
        await self.session.flush()

    # --- Players ---

    async def create_player(self, name: str, user_id: str | None = None) -> PlayerRow:
        row = PlayerRow(name=name, user_id=user_id, is_active=True)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_players_by_ids(self, player_ids: Iterable[str]) -> list[PlayerRow]:
        ids = list(player_ids)
        if not ids:
            return []
        stmt = select(PlayerRow).where(PlayerRow.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_team_user_ids(self, team_ids: Iterable[str]) -> set[str]:
        """User IDs linked to any player on the given teams."""
        ids = list(team_ids)
        if not ids:
            return set()
        stmt = (
            select(PlayerRow.user_id)
            .join(TeamPlayerRow, TeamPlayerRow.player_id == PlayerRow.id)
            .where(TeamPlayerRow.team_id.in_(ids), PlayerRow.user_id.isnot(None))
        )
        result = await self.session.execute(stmt)
        return {uid for uid in result.scalars().all() if uid}

    # --- Teams ---

    async def create_team(
        self,
        name: str,
        created_by: str,
        player_ids: Iterable[str] = (),
        league_id: str | None = None,
    ) -> TeamRow:
        row = TeamRow(name=name, created_by=created_by, league_id=league_id, is_active=True)
        self.session.add(row)
        await self.session.flush()
        for player_id in player_ids:
            self.session.add(TeamPlayerRow(team_id=row.id, player_id=player_id))
        await self.session.flush()
        return row

    async def get_team(self, team_id: str) -> TeamRow | None:
        return await self.session.get(TeamRow, team_id)

    async def get_team_by_name(self, name: str) -> TeamRow | None:
        stmt = select(TeamRow).where(func.lower(TeamRow.name) == name.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_teams_by_ids(self, team_ids: Iterable[str]) -> list[TeamRow]:
        ids = list(team_ids)
        if not ids:
            return []
        stmt = select(TeamRow).where(TeamRow.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_team_player_ids(self, team_id: str) -> list[str]:
        stmt = select(TeamPlayerRow.player_id).where(TeamPlayerRow.team_id == team_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Matches ---

    async def bulk_insert_matches(self, rows: list[MatchRow]) -> list[MatchRow]:
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def count_matches(self, league_id: str) -> int:
        stmt = select(func.count()).where(MatchRow.league_id == league_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def delete_matches_by_league(self, league_id: str) -> int:
        """Delete every match of a league. Returns the number deleted."""
        result = await self.session.execute(
            delete(MatchRow)
            .where(MatchRow.league_id == league_id)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount or 0

    async def get_match(self, match_id: str, refresh: bool = False) -> MatchRow | None:
        return await self.session.get(MatchRow, match_id, populate_existing=refresh)

    async def save_match(self, match: MatchRow) -> MatchRow:
        self.session.add(match)
        await self.session.flush()
        return match

    async def get_matches_for_league(self, league_id: str) -> list[MatchRow]:
        """All matches of a league, unscheduled ones last."""
        stmt = (
            select(MatchRow)
            .where(MatchRow.league_id == league_id)
            .order_by(
                MatchRow.scheduled_date.is_(None),
                MatchRow.scheduled_date,
                MatchRow.round_number,
                MatchRow.created_at,
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_completed_matches(self, league_id: str) -> list[MatchRow]:
        """Completed matches that carry a result, in a stable order."""
        stmt = (
            select(MatchRow)
            .where(
                MatchRow.league_id == league_id,
                MatchRow.status == "completed",
                MatchRow.winner_id.isnot(None),
            )
            .order_by(MatchRow.scheduled_date, MatchRow.created_at, MatchRow.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def cancel_matches(
        self,
        league_id: str,
        exclude_statuses: Iterable[str],
        note: str,
    ) -> int:
        """Cancel a league's matches whose status is not excluded. Returns how many."""
        stmt = select(MatchRow).where(
            MatchRow.league_id == league_id,
            MatchRow.status.not_in(list(exclude_statuses)),
        )
        result = await self.session.execute(stmt)
        matches = list(result.scalars().all())
        for match in matches:
            match.status = "canceled"
            match.notes = note
        await self.session.flush()
        return len(matches)

    # --- Rankings ---

    async def get_ranking(self, league_id: str, team_id: str) -> RankingRow | None:
        stmt = select(RankingRow).where(
            RankingRow.league_id == league_id,
            RankingRow.team_id == team_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_ranking(self, league_id: str, team_id: str) -> RankingRow:
        """Fetch a team's ranking row, creating a zeroed one on first use."""
        row = await self.get_ranking(league_id, team_id)
        if row is not None:
            return row
        row = RankingRow(
            league_id=league_id,
            team_id=team_id,
            points=0,
            matches_played=0,
            wins=0,
            losses=0,
            sets_won=0,
            sets_lost=0,
            points_scored=0,
            points_conceded=0,
        )
        self.session.add(row)
        return row

    async def upsert_rankings(self, rows: Iterable[RankingRow]) -> None:
        self.session.add_all(list(rows))
        await self.session.flush()

    async def get_rankings(self, league_id: str) -> list[RankingRow]:
        stmt = (
            select(RankingRow)
            .where(RankingRow.league_id == league_id)
            .order_by(RankingRow.points.desc(), RankingRow.wins.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_rankings(self, league_id: str) -> int:
        result = await self.session.execute(
            delete(RankingRow)
            .where(RankingRow.league_id == league_id)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount or 0
