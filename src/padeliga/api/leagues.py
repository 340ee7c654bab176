"""League API endpoints: creation, teams, schedule, status, rankings."""

from __future__ import annotations

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from padeliga.api.deps import EventBusDep, RepoDep, SettingsDep
from padeliga.auth.deps import AdminUser, CurrentUser
from padeliga.core.errors import ForbiddenError
from padeliga.core.league_status import transition_status
from padeliga.core.leagues import (
    create_league,
    is_league_manager,
    is_registration_open,
    list_league_teams,
    register_team,
    require_league,
)
from padeliga.core.rankings import ranking_table, recalculate_league_rankings
from padeliga.core.schedule import clear_schedule, generate_schedule, list_league_matches
from padeliga.db.models import LeagueRow
from padeliga.models.league import LeagueCreate, LeagueStatus

router = APIRouter(prefix="/api/leagues", tags=["leagues"])


class RegisterTeamRequest(BaseModel):
    name: str
    player_ids: list[str] = Field(min_length=1, max_length=2)


class StatusRequest(BaseModel):
    status: LeagueStatus


def _league_payload(league: LeagueRow, team_count: int) -> dict:
    return {
        "id": league.id,
        "name": league.name,
        "description": league.description,
        "start_date": league.start_date.isoformat(),
        "end_date": league.end_date.isoformat(),
        "registration_deadline": league.registration_deadline.isoformat(),
        "min_teams": league.min_teams,
        "max_teams": league.max_teams,
        "team_count": team_count,
        "match_format": league.match_format,
        "venue": league.venue,
        "status": league.status,
        "registration_open": is_registration_open(league),
        "schedule_generated": league.schedule_generated,
        "points_per_win": league.points_per_win,
        "points_per_loss": league.points_per_loss,
        "organizer_id": league.organizer_id,
        "activated_at": league.activated_at.isoformat() if league.activated_at else None,
        "completed_at": league.completed_at.isoformat() if league.completed_at else None,
        "canceled_at": league.canceled_at.isoformat() if league.canceled_at else None,
    }


@router.post("", status_code=201)
async def create_league_endpoint(
    body: LeagueCreate,
    repo: RepoDep,
    settings: SettingsDep,
    user: CurrentUser,
) -> dict:
    league = await create_league(
        repo,
        user,
        body,
        default_points_per_win=settings.padeliga_default_points_per_win,
        default_points_per_loss=settings.padeliga_default_points_per_loss,
    )
    return {"data": _league_payload(league, team_count=0)}


@router.get("/{league_id}")
async def get_league(league_id: str, repo: RepoDep) -> dict:
    league = await require_league(repo, league_id)
    team_count = await repo.count_league_teams(league_id)
    return {"data": _league_payload(league, team_count)}


@router.get("/{league_id}/teams")
async def list_teams(league_id: str, repo: RepoDep) -> dict:
    teams = await list_league_teams(repo, league_id)
    return {
        "data": [
            {
                "id": t.id,
                "name": t.name,
                "is_active": t.is_active,
                "player_ids": await repo.get_team_player_ids(t.id),
            }
            for t in teams
        ],
    }


@router.post("/{league_id}/teams", status_code=201)
async def register_team_endpoint(
    league_id: str,
    body: RegisterTeamRequest,
    repo: RepoDep,
    user: CurrentUser,
) -> dict:
    team = await register_team(repo, league_id, user, body.name, body.player_ids)
    return {"data": {"id": team.id, "name": team.name, "league_id": team.league_id}}


@router.get("/{league_id}/schedule")
async def get_schedule(league_id: str, repo: RepoDep) -> dict:
    return {"data": await list_league_matches(repo, league_id)}


@router.post("/{league_id}/schedule")
async def generate_schedule_endpoint(
    league_id: str,
    repo: RepoDep,
    bus: EventBusDep,
    user: CurrentUser,
) -> dict:
    summary = await generate_schedule(repo, league_id, user, event_bus=bus)
    return {
        "data": summary,
        "message": f"Successfully generated {summary['matches_created']} matches",
    }


@router.delete("/{league_id}/schedule", status_code=204)
async def clear_schedule_endpoint(
    league_id: str,
    repo: RepoDep,
    bus: EventBusDep,
    user: CurrentUser,
) -> Response:
    await clear_schedule(repo, league_id, user, event_bus=bus)
    return Response(status_code=204)


@router.put("/{league_id}/status")
async def update_status(
    league_id: str,
    body: StatusRequest,
    repo: RepoDep,
    bus: EventBusDep,
    _: AdminUser,
) -> dict:
    league = await transition_status(repo, league_id, body.status, event_bus=bus)
    team_count = await repo.count_league_teams(league_id)
    return {"data": _league_payload(league, team_count)}


@router.get("/{league_id}/rankings")
async def get_rankings(league_id: str, repo: RepoDep) -> dict:
    await require_league(repo, league_id)
    rankings = await repo.get_rankings(league_id)
    teams = await repo.get_teams_by_ids(r.team_id for r in rankings)
    return {"data": ranking_table(rankings, {t.id: t.name for t in teams})}


@router.post("/{league_id}/rankings/recalculate")
async def recalculate_rankings(
    league_id: str,
    repo: RepoDep,
    bus: EventBusDep,
    user: CurrentUser,
) -> dict:
    league = await require_league(repo, league_id)
    if not is_league_manager(league, user):
        raise ForbiddenError("Only the league organizer can recalculate rankings")
    summary = await recalculate_league_rankings(repo, league_id, event_bus=bus)
    return {"data": summary}
