"""Match API endpoints: per-match scheduling and results."""

from __future__ import annotations

from fastapi import APIRouter

from padeliga.api.deps import EventBusDep, RepoDep
from padeliga.auth.deps import CurrentUser
from padeliga.core.errors import NotFoundError
from padeliga.core.rankings import get_match_result, submit_match_result
from padeliga.core.schedule import schedule_match
from padeliga.models.match import MatchResult, MatchSchedule

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.put("/{match_id}/result")
async def record_result(
    match_id: str,
    body: MatchResult,
    repo: RepoDep,
    bus: EventBusDep,
    user: CurrentUser,
) -> dict:
    """Record or correct a match result; rankings update in the same request."""
    match = await submit_match_result(
        repo,
        match_id,
        user,
        team_a_score=body.team_a_score,
        team_b_score=body.team_b_score,
        winner_id=body.winner,
        event_bus=bus,
    )
    return {
        "message": "Match result recorded successfully",
        "data": {"id": match.id, **get_match_result(match)},
    }


@router.get("/{match_id}/result")
async def read_result(match_id: str, repo: RepoDep) -> dict:
    match = await repo.get_match(match_id)
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")
    return {"data": get_match_result(match)}


@router.put("/{match_id}/schedule")
async def update_match_schedule(
    match_id: str,
    body: MatchSchedule,
    repo: RepoDep,
    bus: EventBusDep,
    user: CurrentUser,
) -> dict:
    match = await schedule_match(
        repo,
        match_id,
        user,
        scheduled_date=body.scheduled_date,
        scheduled_time=body.scheduled_time,
        location=body.location,
        event_bus=bus,
    )
    return {
        "data": {
            "id": match.id,
            "team_a_id": match.team_a_id,
            "team_b_id": match.team_b_id,
            "scheduled_date": match.scheduled_date.isoformat(),
            "scheduled_time": match.scheduled_time,
            "location": match.location,
            "status": match.status,
        },
    }
