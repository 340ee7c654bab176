"""League status state machine.

    DRAFT -> REGISTRATION -> ACTIVE -> COMPLETED
      ^          |             |
      |          v             v
      +------ CANCELED <-------+

REGISTRATION may fall back to DRAFT; CANCELED may be restored to DRAFT,
which discards its canceled schedule and rankings; COMPLETED is terminal.
Entering a state applies its side effects (timestamps, bulk match
cancellation) before the new status is saved, all inside one SAVEPOINT.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from padeliga.core.errors import (
    InsufficientTeamsError,
    InvalidTransitionError,
    ScheduleRequiredError,
)
from padeliga.core.event_bus import STATUS_CHANGED
from padeliga.core.leagues import require_league
from padeliga.core.locks import LeagueLocks, league_transaction
from padeliga.models.league import LeagueStatus
from padeliga.models.match import TERMINAL_MATCH_STATUSES, MatchStatus

if TYPE_CHECKING:
    from padeliga.core.event_bus import EventBus
    from padeliga.db.models import LeagueRow
    from padeliga.db.repository import Repository

logger = logging.getLogger(__name__)

COMPLETION_NOTE = "auto-canceled on league completion"
CANCELLATION_NOTE = "auto-canceled on league cancellation"

# Key = current status, value = statuses it may move to.
ALLOWED_TRANSITIONS: dict[LeagueStatus, frozenset[LeagueStatus]] = {
    LeagueStatus.DRAFT: frozenset({LeagueStatus.REGISTRATION, LeagueStatus.CANCELED}),
    LeagueStatus.REGISTRATION: frozenset(
        {LeagueStatus.ACTIVE, LeagueStatus.DRAFT, LeagueStatus.CANCELED}
    ),
    LeagueStatus.ACTIVE: frozenset({LeagueStatus.COMPLETED, LeagueStatus.CANCELED}),
    LeagueStatus.COMPLETED: frozenset(),  # terminal
    LeagueStatus.CANCELED: frozenset({LeagueStatus.DRAFT}),
}


def _now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def parse_status(value: str) -> LeagueStatus:
    try:
        return LeagueStatus(value)
    except ValueError:
        raise InvalidTransitionError(f"Unknown league status: {value!r}") from None


def check_transition(current: LeagueStatus, target: LeagueStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is in the table."""
    allowed = ALLOWED_TRANSITIONS[current]
    if target not in allowed:
        raise InvalidTransitionError(
            f"Invalid status transition: {current.value} -> {target.value}. "
            f"Allowed: {sorted(s.value for s in allowed)}"
        )


async def _guard_activation(repo: Repository, league: LeagueRow) -> None:
    team_count = await repo.count_league_teams(league.id)
    if team_count < league.min_teams:
        raise InsufficientTeamsError(
            f"Insufficient teams: league requires at least {league.min_teams} teams, "
            f"has {team_count}"
        )
    if not league.schedule_generated:
        raise ScheduleRequiredError(
            "Schedule required: cannot activate league without generating a schedule"
        )


async def _apply_side_effects(
    repo: Repository,
    league: LeagueRow,
    current: LeagueStatus,
    target: LeagueStatus,
) -> int:
    """Apply entry effects for ``target``. Returns the number of matches canceled."""
    canceled = 0
    if target == LeagueStatus.ACTIVE:
        if league.activated_at is None:
            league.activated_at = _now()
    elif target == LeagueStatus.COMPLETED:
        league.completed_at = _now()
        canceled = await repo.cancel_matches(
            league.id,
            exclude_statuses=TERMINAL_MATCH_STATUSES,
            note=COMPLETION_NOTE,
        )
    elif target == LeagueStatus.CANCELED:
        league.canceled_at = _now()
        canceled = await repo.cancel_matches(
            league.id,
            exclude_statuses={MatchStatus.CANCELED.value},
            note=CANCELLATION_NOTE,
        )
    elif target == LeagueStatus.DRAFT and current == LeagueStatus.CANCELED:
        # Every match died with the league; a restored league starts from scratch.
        discarded = await repo.delete_matches_by_league(league.id)
        await repo.delete_rankings(league.id)
        league.schedule_generated = False
        league.activated_at = None
        league.canceled_at = None
        logger.info("league_restored league=%s matches_discarded=%d", league.id, discarded)
    return canceled


async def transition_status(
    repo: Repository,
    league_id: str,
    new_status: LeagueStatus | str,
    event_bus: EventBus | None = None,
    locks: LeagueLocks | None = None,
) -> LeagueRow:
    """Validate and execute a league status transition.

    Requesting the league's current status is a successful no-op.

    Raises:
        NotFoundError: the league does not exist.
        InvalidTransitionError: the move is not in ``ALLOWED_TRANSITIONS``.
        InsufficientTeamsError: activating with fewer than ``min_teams`` teams.
        ScheduleRequiredError: activating without a generated schedule.
    """
    target = parse_status(new_status) if isinstance(new_status, str) else new_status

    async with league_transaction(repo, league_id, locks):
        league = await require_league(repo, league_id, refresh=True)
        current = parse_status(league.status)
        if current == target:
            logger.info("league_status_unchanged league=%s status=%s", league_id, current.value)
            return league

        check_transition(current, target)
        if current == LeagueStatus.REGISTRATION and target == LeagueStatus.ACTIVE:
            await _guard_activation(repo, league)

        async with repo.atomic():
            canceled = await _apply_side_effects(repo, league, current, target)
            league.status = target.value
            await repo.save_league(league)

    logger.info(
        "league_status_changed league=%s from=%s to=%s matches_canceled=%d",
        league_id,
        current.value,
        target.value,
        canceled,
    )
    if event_bus:
        await event_bus.publish(
            STATUS_CHANGED,
            {
                "league_id": league_id,
                "from_status": current.value,
                "to_status": target.value,
                "matches_canceled": canceled,
            },
        )
    return league
