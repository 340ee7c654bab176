"""League creation, access checks and team registration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from padeliga.core.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    RegistrationError,
)
from padeliga.models.league import PRE_ACTIVATION_STATUSES, LeagueCreate, LeagueStatus

if TYPE_CHECKING:
    from padeliga.db.models import LeagueRow, TeamRow
    from padeliga.db.repository import Repository
    from padeliga.models.user import SessionUser

logger = logging.getLogger(__name__)

MAX_PLAYERS_PER_TEAM = 2


def to_naive_utc(value: datetime) -> datetime:
    """SQLite stores naive datetimes; normalize aware input to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


async def require_league(repo: Repository, league_id: str, refresh: bool = False) -> LeagueRow:
    league = await repo.get_league(league_id, refresh=refresh)
    if league is None:
        raise NotFoundError(f"League {league_id} not found")
    return league


def is_league_manager(league: LeagueRow, caller: SessionUser) -> bool:
    """Admins and the league's organizer may manage it."""
    return caller.is_admin or league.organizer_id == caller.user_id


def ensure_league_manager(league: LeagueRow, caller: SessionUser, action: str) -> None:
    if not is_league_manager(league, caller):
        logger.warning(
            "league_access_denied league=%s user=%s action=%s",
            league.id,
            caller.user_id,
            action,
        )
        raise ForbiddenError(f"Only the league organizer can {action}")


def is_registration_open(league: LeagueRow, now: datetime | None = None) -> bool:
    now = now or datetime.now(UTC).replace(tzinfo=None)
    return league.status == LeagueStatus.REGISTRATION and now <= league.registration_deadline


async def is_full(repo: Repository, league: LeagueRow) -> bool:
    return await repo.count_league_teams(league.id) >= league.max_teams


async def create_league(
    repo: Repository,
    organizer: SessionUser,
    data: LeagueCreate,
    default_points_per_win: int = 3,
    default_points_per_loss: int = 0,
) -> LeagueRow:
    """Create a league in ``draft`` with no schedule."""
    league = await repo.create_league(
        name=data.name.strip(),
        organizer_id=organizer.user_id,
        start_date=to_naive_utc(data.start_date),
        end_date=to_naive_utc(data.end_date),
        registration_deadline=to_naive_utc(data.registration_deadline),
        description=data.description,
        min_teams=data.min_teams,
        max_teams=data.max_teams,
        match_format=data.match_format.value,
        venue=data.venue,
        points_per_win=(
            data.points_per_win if data.points_per_win is not None else default_points_per_win
        ),
        points_per_loss=(
            data.points_per_loss if data.points_per_loss is not None else default_points_per_loss
        ),
        status=LeagueStatus.DRAFT.value,
        schedule_generated=False,
    )
    logger.info("league_created league=%s organizer=%s", league.id, organizer.user_id)
    return league


async def register_team(
    repo: Repository,
    league_id: str,
    caller: SessionUser,
    name: str,
    player_ids: list[str],
) -> TeamRow:
    """Create a team inside a league and add it to the league's team list.

    Both sides of the relationship are written: ``teams.league_id`` and the
    league's own ``league_teams`` entry.

    Raises:
        NotFoundError: league or a player does not exist.
        InvalidStateError: the league is past registration.
        RegistrationError: league full, name taken, or a bad roster.
    """
    league = await require_league(repo, league_id)
    if league.status not in PRE_ACTIVATION_STATUSES:
        raise InvalidStateError(
            f"Teams can only join leagues in draft or registration status (is {league.status})"
        )
    if await is_full(repo, league):
        raise RegistrationError(f"League is full ({league.max_teams} teams)")

    name = name.strip()
    if not 2 <= len(name) <= 30:
        raise RegistrationError("Team name must be between 2 and 30 characters")
    if await repo.get_team_by_name(name) is not None:
        raise RegistrationError("Team with this name already exists")

    unique_ids = list(dict.fromkeys(player_ids))
    if not 1 <= len(unique_ids) <= MAX_PLAYERS_PER_TEAM:
        raise RegistrationError("A team must have at least 1 player and at most 2 players")
    players = await repo.get_players_by_ids(unique_ids)
    if len(players) != len(unique_ids):
        raise NotFoundError("One or more players not found")
    if not all(p.is_active for p in players):
        raise RegistrationError("One or more players are inactive")

    team = await repo.create_team(
        name=name,
        created_by=caller.user_id,
        player_ids=unique_ids,
        league_id=league.id,
    )
    await repo.add_team_to_league(league.id, team.id)
    logger.info(
        "team_registered league=%s team=%s players=%d",
        league.id,
        team.id,
        len(unique_ids),
    )
    return team


async def list_league_teams(repo: Repository, league_id: str) -> list[TeamRow]:
    """Teams in the league's team list, in registration order."""
    await require_league(repo, league_id)
    team_ids = await repo.get_league_team_ids(league_id)
    by_id = {t.id: t for t in await repo.get_teams_by_ids(team_ids)}
    return [by_id[tid] for tid in team_ids if tid in by_id]
