"""Schedule orchestration: turn a league's teams into persisted matches.

``generate_schedule`` checks preconditions in a fixed order (each failure
is a distinct error kind), cross-checks the league's team list against
each team's own league reference, runs the round-robin pairing and the
date allocator, and writes every match plus the ``schedule_generated``
flag inside one SAVEPOINT.  Regenerating replaces the previous schedule;
a failed regeneration leaves it untouched.  ``schedule_match`` moves a
single match of an active league to a new date, time or place.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from padeliga.core.errors import (
    ForbiddenError,
    InsufficientTeamsError,
    InsufficientValidTeamsError,
    InvalidStateError,
    MatchScheduleError,
    NotFoundError,
)
from padeliga.core.event_bus import MATCH_SCHEDULED, SCHEDULE_CLEARED, SCHEDULE_GENERATED
from padeliga.core.leagues import ensure_league_manager, require_league, to_naive_utc
from padeliga.core.locks import LeagueLocks, league_transaction
from padeliga.core.scheduler import allocate_dates, generate_round_robin
from padeliga.db.models import MatchRow
from padeliga.models.league import PRE_ACTIVATION_STATUSES, LeagueStatus
from padeliga.models.match import SCHEDULED_TIME_PATTERN, TERMINAL_MATCH_STATUSES, MatchStatus

if TYPE_CHECKING:
    from datetime import datetime

    from padeliga.core.event_bus import EventBus
    from padeliga.db.models import LeagueRow
    from padeliga.db.repository import Repository
    from padeliga.models.user import SessionUser

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(SCHEDULED_TIME_PATTERN)


def _require_pre_activation(league: LeagueRow, action: str) -> None:
    if league.status not in PRE_ACTIVATION_STATUSES:
        raise InvalidStateError(
            f"Schedule can only be {action} for leagues in draft or registration status "
            f"(is {league.status})"
        )


async def _valid_team_ids(repo: Repository, league_id: str) -> list[str]:
    """League team IDs whose team row exists and points back at this league.

    Order follows the league's own team list, which fixes the pairing order.
    """
    listed = await repo.get_league_team_ids(league_id)
    teams = {t.id: t for t in await repo.get_teams_by_ids(listed)}
    valid: list[str] = []
    for team_id in listed:
        team = teams.get(team_id)
        if team is None:
            logger.warning("schedule_team_missing league=%s team=%s", league_id, team_id)
        elif team.league_id != league_id:
            logger.warning(
                "schedule_team_excluded league=%s team=%s team_league=%s",
                league_id,
                team_id,
                team.league_id,
            )
        else:
            valid.append(team_id)
    return valid


async def generate_schedule(
    repo: Repository,
    league_id: str,
    caller: SessionUser,
    event_bus: EventBus | None = None,
    locks: LeagueLocks | None = None,
) -> dict[str, int]:
    """Generate (or regenerate) the round-robin schedule for a league.

    Returns:
        ``{"matches_created": count}``

    Raises:
        NotFoundError, ForbiddenError, InvalidStateError, InsufficientTeamsError,
        InsufficientValidTeamsError, InsufficientSchedulingWindowError.
    """
    async with league_transaction(repo, league_id, locks):
        league = await require_league(repo, league_id, refresh=True)
        ensure_league_manager(league, caller, "generate a schedule")
        _require_pre_activation(league, "generated")

        team_count = await repo.count_league_teams(league_id)
        if team_count < 2:
            raise InsufficientTeamsError(
                "League must have at least 2 teams to generate a schedule"
            )

        async with repo.atomic():
            deleted = await repo.delete_matches_by_league(league_id)
            if deleted:
                logger.info(
                    "schedule_cleared_for_regeneration league=%s matches=%d",
                    league_id,
                    deleted,
                )

            team_ids = await _valid_team_ids(repo, league_id)
            if len(team_ids) < 2:
                raise InsufficientValidTeamsError(
                    f"Only {len(team_ids)} of {team_count} teams belong to this league"
                )

            pairings = generate_round_robin(team_ids)
            drafts = allocate_dates(pairings, league.start_date, league.end_date, league.venue)
            await repo.bulk_insert_matches(
                [
                    MatchRow(
                        league_id=league_id,
                        team_a_id=d.team_a_id,
                        team_b_id=d.team_b_id,
                        round_number=d.round_number,
                        scheduled_date=d.scheduled_date,
                        location=d.location,
                        status=d.status,
                    )
                    for d in drafts
                ]
            )
            league.schedule_generated = True
            await repo.save_league(league)

    logger.info(
        "schedule_generated league=%s teams=%d matches=%d",
        league_id,
        len(team_ids),
        len(drafts),
    )
    if event_bus:
        await event_bus.publish(
            SCHEDULE_GENERATED,
            {"league_id": league_id, "matches_created": len(drafts)},
        )
    return {"matches_created": len(drafts)}


async def clear_schedule(
    repo: Repository,
    league_id: str,
    caller: SessionUser,
    event_bus: EventBus | None = None,
    locks: LeagueLocks | None = None,
) -> int:
    """Delete every match of a pre-activation league and reset the flag.

    Returns the number of matches deleted.
    """
    async with league_transaction(repo, league_id, locks):
        league = await require_league(repo, league_id, refresh=True)
        ensure_league_manager(league, caller, "clear a schedule")
        _require_pre_activation(league, "cleared")

        async with repo.atomic():
            deleted = await repo.delete_matches_by_league(league_id)
            league.schedule_generated = False
            await repo.save_league(league)

    logger.info("schedule_cleared league=%s matches=%d", league_id, deleted)
    if event_bus:
        await event_bus.publish(SCHEDULE_CLEARED, {"league_id": league_id, "deleted": deleted})
    return deleted


async def schedule_match(
    repo: Repository,
    match_id: str,
    caller: SessionUser,
    scheduled_date: datetime,
    scheduled_time: str | None = None,
    location: str | None = None,
    event_bus: EventBus | None = None,
    locks: LeagueLocks | None = None,
) -> MatchRow:
    """Set one match's date, time and place and mark it ``scheduled``.

    Admins and players on either team may (re)schedule a match, which also
    brings an unscheduled or postponed match back to ``scheduled``.  A
    ``location`` of ``None`` keeps the current one.

    Raises:
        MatchScheduleError: ``scheduled_time`` is not ``HH:MM``.
        NotFoundError: match or league missing.
        ForbiddenError: caller is neither an admin nor a player in the match.
        InvalidStateError: league not active, or match completed or canceled.
    """
    if scheduled_time is not None and not _TIME_RE.match(scheduled_time):
        raise MatchScheduleError(f"Scheduled time must be HH:MM (got {scheduled_time!r})")

    match = await repo.get_match(match_id)
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")

    async with league_transaction(repo, match.league_id, locks):
        match = await repo.get_match(match_id, refresh=True)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        league = await require_league(repo, match.league_id, refresh=True)
        if not caller.is_admin:
            user_ids = await repo.get_team_user_ids([match.team_a_id, match.team_b_id])
            if caller.user_id not in user_ids:
                raise ForbiddenError(
                    "Only administrators or players involved in the match can schedule it"
                )
        if league.status != LeagueStatus.ACTIVE:
            raise InvalidStateError(
                f"Matches can only be scheduled while the league is active (is {league.status})"
            )
        if match.status in TERMINAL_MATCH_STATUSES:
            raise InvalidStateError(f"Cannot schedule a {match.status} match")

        previous_status = match.status
        async with repo.atomic():
            match.scheduled_date = to_naive_utc(scheduled_date)
            match.scheduled_time = scheduled_time
            if location is not None:
                match.location = location
            match.status = MatchStatus.SCHEDULED.value
            await repo.save_match(match)

    logger.info(
        "match_scheduled match=%s league=%s date=%s from_status=%s",
        match.id,
        match.league_id,
        match.scheduled_date.date(),
        previous_status,
    )
    if event_bus:
        await event_bus.publish(
            MATCH_SCHEDULED,
            {
                "match_id": match.id,
                "league_id": match.league_id,
                "scheduled_date": match.scheduled_date.isoformat(),
                "scheduled_time": match.scheduled_time,
            },
        )
    return match


async def list_league_matches(repo: Repository, league_id: str) -> list[dict]:
    """A league's matches in date order, with team names resolved.

    Teams whose rows have vanished render as ``"Unknown Team"`` rather than
    failing the whole listing.
    """
    await require_league(repo, league_id)
    matches = await repo.get_matches_for_league(league_id)
    team_ids = {m.team_a_id for m in matches} | {m.team_b_id for m in matches}
    names = {t.id: t.name for t in await repo.get_teams_by_ids(team_ids)}
    return [
        {
            "id": m.id,
            "round_number": m.round_number,
            "team_a": {"id": m.team_a_id, "name": names.get(m.team_a_id, "Unknown Team")},
            "team_b": {"id": m.team_b_id, "name": names.get(m.team_b_id, "Unknown Team")},
            "scheduled_date": m.scheduled_date.isoformat() if m.scheduled_date else None,
            "scheduled_time": m.scheduled_time,
            "location": m.location,
            "status": m.status,
            "winner_id": m.winner_id,
            "notes": m.notes,
        }
        for m in matches
    ]
