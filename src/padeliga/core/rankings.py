"""Rankings: derived per-team standings for a league.

Two write paths keep the ``rankings`` table in step with match results:

* ``apply_match_result`` -- incremental, once per newly completed match.
* ``recalculate_league_rankings`` -- wipe and rebuild from every completed
  match.  This is the authoritative path; it yields the same rows as
  applying every completed match incrementally.

Display positions are never stored; ``ranking_table`` computes them on read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from padeliga.core.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ResultValidationError,
)
from padeliga.core.event_bus import RANKINGS_RECALCULATED, RESULT_RECORDED
from padeliga.core.leagues import is_league_manager, require_league
from padeliga.core.locks import LeagueLocks, league_transaction
from padeliga.db.models import RankingRow
from padeliga.models.league import MAX_SETS, LeagueStatus, MatchFormat
from padeliga.models.match import MatchStatus

if TYPE_CHECKING:
    from padeliga.core.event_bus import EventBus
    from padeliga.db.models import LeagueRow, MatchRow
    from padeliga.db.repository import Repository
    from padeliga.models.user import SessionUser

logger = logging.getLogger(__name__)

DEFAULT_POINTS_PER_WIN = 3
DEFAULT_POINTS_PER_LOSS = 0


# ---------------------------------------------------------------------------
# Score arithmetic
# ---------------------------------------------------------------------------


def count_sets(team_a_score: list[int], team_b_score: list[int]) -> tuple[int, int]:
    """Sets won by each side. A set tied at some index counts for neither."""
    a_sets = b_sets = 0
    for a, b in zip(team_a_score, team_b_score, strict=True):
        if a > b:
            a_sets += 1
        elif b > a:
            b_sets += 1
    return a_sets, b_sets


def expected_winner(
    team_a_id: str,
    team_b_id: str,
    team_a_score: list[int],
    team_b_score: list[int],
) -> str | None:
    """The side with strictly more sets won, or None when set wins are level."""
    a_sets, b_sets = count_sets(team_a_score, team_b_score)
    if a_sets > b_sets:
        return team_a_id
    if b_sets > a_sets:
        return team_b_id
    return None


def validate_result(
    match: MatchRow,
    team_a_score: list[int],
    team_b_score: list[int],
    winner_id: str,
    match_format: str = MatchFormat.BEST_OF_3.value,
) -> None:
    """Reject malformed scores and winners the scores do not support.

    Raises:
        ResultValidationError: with a message naming the first problem found.
    """
    if not team_a_score or not team_b_score:
        raise ResultValidationError("Scores must contain at least one set")
    if len(team_a_score) != len(team_b_score):
        raise ResultValidationError("Both teams must have a score for every set")
    if any(s < 0 for s in (*team_a_score, *team_b_score)):
        raise ResultValidationError("Set scores cannot be negative")

    max_sets = MAX_SETS.get(MatchFormat(match_format), len(team_a_score))
    if len(team_a_score) > max_sets:
        raise ResultValidationError(
            f"A {match_format} match has at most {max_sets} set(s), got {len(team_a_score)}"
        )

    if winner_id not in (match.team_a_id, match.team_b_id):
        raise ResultValidationError("Winner must be one of the teams in the match")

    expected = expected_winner(match.team_a_id, match.team_b_id, team_a_score, team_b_score)
    if expected != winner_id:
        logger.warning(
            "result_winner_mismatch match=%s declared=%s expected=%s",
            match.id,
            winner_id,
            expected,
        )
        raise ResultValidationError("Winner does not match the scores provided")


# ---------------------------------------------------------------------------
# Accumulation
# ---------------------------------------------------------------------------


@dataclass
class _Tally:
    points: int = 0
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    points_scored: int = 0
    points_conceded: int = 0


def _accumulate(
    rows: dict[str, RankingRow] | dict[str, _Tally],
    team_a_id: str,
    team_b_id: str,
    winner_id: str,
    points_per_win: int,
    points_per_loss: int,
    team_a_score: list[int] | None = None,
    team_b_score: list[int] | None = None,
) -> None:
    """Add one match to the two teams' running totals.

    Works on ``RankingRow`` and ``_Tally`` alike; both expose the same fields.
    """
    a, b = rows[team_a_id], rows[team_b_id]
    a.matches_played += 1
    b.matches_played += 1

    winner, loser = (a, b) if winner_id == team_a_id else (b, a)
    winner.wins += 1
    winner.points += points_per_win
    loser.losses += 1
    loser.points += points_per_loss

    if team_a_score and team_b_score:
        a_sets, b_sets = count_sets(team_a_score, team_b_score)
        a.sets_won += a_sets
        a.sets_lost += b_sets
        b.sets_won += b_sets
        b.sets_lost += a_sets

        a_games, b_games = sum(team_a_score), sum(team_b_score)
        a.points_scored += a_games
        a.points_conceded += b_games
        b.points_scored += b_games
        b.points_conceded += a_games


def _points_settings(league: LeagueRow) -> tuple[int, int]:
    per_win = (
        league.points_per_win if league.points_per_win is not None else DEFAULT_POINTS_PER_WIN
    )
    per_loss = (
        league.points_per_loss if league.points_per_loss is not None else DEFAULT_POINTS_PER_LOSS
    )
    return per_win, per_loss


# ---------------------------------------------------------------------------
# Incremental update
# ---------------------------------------------------------------------------


async def apply_match_result(
    repo: Repository,
    league_id: str,
    team_a_id: str,
    team_b_id: str,
    winner_id: str,
    team_a_score: list[int] | None = None,
    team_b_score: list[int] | None = None,
) -> tuple[RankingRow, RankingRow]:
    """Fold one match result into both teams' ranking rows.

    Rows are created zeroed on first use.  Both rows are written inside one
    SAVEPOINT so standings are never half-updated.  The caller guarantees
    this runs at most once per match (see ``MatchRow.result_applied_at``).

    Returns:
        ``(ranking_a, ranking_b)``
    """
    league = await require_league(repo, league_id)
    if winner_id not in (team_a_id, team_b_id):
        raise ResultValidationError("Winner must be one of the teams in the match")
    per_win, per_loss = _points_settings(league)

    async with repo.atomic():
        ranking_a = await repo.get_or_create_ranking(league_id, team_a_id)
        ranking_b = await repo.get_or_create_ranking(league_id, team_b_id)
        _accumulate(
            {team_a_id: ranking_a, team_b_id: ranking_b},
            team_a_id,
            team_b_id,
            winner_id,
            per_win,
            per_loss,
            team_a_score,
            team_b_score,
        )
        await repo.upsert_rankings([ranking_a, ranking_b])

    logger.info(
        "rankings_updated league=%s team_a=%s team_b=%s winner=%s",
        league_id,
        team_a_id,
        team_b_id,
        winner_id,
    )
    return ranking_a, ranking_b


# ---------------------------------------------------------------------------
# Full recompute
# ---------------------------------------------------------------------------


async def _rebuild_rankings(repo: Repository, league: LeagueRow) -> dict[str, int]:
    per_win, per_loss = _points_settings(league)
    matches = await repo.get_completed_matches(league.id)

    tallies: dict[str, _Tally] = {}
    for match in matches:
        tallies.setdefault(match.team_a_id, _Tally())
        tallies.setdefault(match.team_b_id, _Tally())
        _accumulate(
            tallies,
            match.team_a_id,
            match.team_b_id,
            match.winner_id,
            per_win,
            per_loss,
            match.team_a_score,
            match.team_b_score,
        )

    async with repo.atomic():
        await repo.delete_rankings(league.id)
        await repo.upsert_rankings(
            RankingRow(league_id=league.id, team_id=team_id, **vars(tally))
            for team_id, tally in sorted(tallies.items())
        )

    logger.info(
        "rankings_recalculated league=%s teams=%d matches=%d",
        league.id,
        len(tallies),
        len(matches),
    )
    return {"teams_processed": len(tallies), "matches_processed": len(matches)}


async def recalculate_league_rankings(
    repo: Repository,
    league_id: str,
    event_bus: EventBus | None = None,
    locks: LeagueLocks | None = None,
) -> dict[str, int]:
    """Delete a league's rankings and rebuild them from completed matches.

    Returns:
        ``{"teams_processed": n, "matches_processed": m}``
    """
    async with league_transaction(repo, league_id, locks):
        league = await require_league(repo, league_id, refresh=True)
        summary = await _rebuild_rankings(repo, league)

    if event_bus:
        await event_bus.publish(RANKINGS_RECALCULATED, {"league_id": league_id, **summary})
    return summary


# ---------------------------------------------------------------------------
# Result submission
# ---------------------------------------------------------------------------


async def _can_submit(
    repo: Repository,
    league: LeagueRow,
    match: MatchRow,
    caller: SessionUser,
) -> bool:
    if is_league_manager(league, caller):
        return True
    user_ids = await repo.get_team_user_ids([match.team_a_id, match.team_b_id])
    return caller.user_id in user_ids


async def submit_match_result(
    repo: Repository,
    match_id: str,
    caller: SessionUser,
    team_a_score: list[int],
    team_b_score: list[int],
    winner_id: str,
    event_bus: EventBus | None = None,
    locks: LeagueLocks | None = None,
) -> MatchRow:
    """Record a match result and update the league's rankings.

    The first completion of a match is applied incrementally and stamped
    with ``result_applied_at``.  Re-submitting a result for a match already
    applied rebuilds the league's rankings instead, so nothing is counted
    twice.

    Raises:
        NotFoundError: match or league missing.
        ForbiddenError: caller is not admin, organizer, or a player in the match.
        InvalidStateError: league not active, or match canceled.
        ResultValidationError: scores or winner rejected by ``validate_result``.
    """
    match = await repo.get_match(match_id)
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")

    async with league_transaction(repo, match.league_id, locks):
        match = await repo.get_match(match_id, refresh=True)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")
        league = await require_league(repo, match.league_id, refresh=True)
        if not await _can_submit(repo, league, match, caller):
            raise ForbiddenError(
                "You must be an admin, the league organizer, or a player in this match"
            )
        if league.status != LeagueStatus.ACTIVE:
            raise InvalidStateError(
                f"Results can only be recorded while the league is active (is {league.status})"
            )
        if match.status == MatchStatus.CANCELED:
            raise InvalidStateError("Cannot record a result for a canceled match")

        validate_result(match, team_a_score, team_b_score, winner_id, league.match_format)

        already_applied = match.result_applied_at is not None
        async with repo.atomic():
            match.team_a_score = list(team_a_score)
            match.team_b_score = list(team_b_score)
            match.winner_id = winner_id
            match.status = MatchStatus.COMPLETED.value
            match.submitted_by = caller.user_id
            if is_league_manager(league, caller):
                match.confirmed_by = caller.user_id
            match.result_applied_at = datetime.now(UTC).replace(tzinfo=None)
            await repo.save_match(match)

            if already_applied:
                logger.info("result_resubmitted match=%s rebuilding_rankings", match.id)
                await _rebuild_rankings(repo, league)
            else:
                await apply_match_result(
                    repo,
                    league.id,
                    match.team_a_id,
                    match.team_b_id,
                    winner_id,
                    team_a_score,
                    team_b_score,
                )

    logger.info("match_result_recorded match=%s winner=%s", match.id, winner_id)
    if event_bus:
        await event_bus.publish(
            RESULT_RECORDED,
            {"match_id": match.id, "league_id": league.id, "winner_id": winner_id},
        )
    return match


def get_match_result(match: MatchRow) -> dict:
    if not match.has_result:
        return {"has_result": False}
    return {
        "has_result": True,
        "status": match.status,
        "result": {
            "team_a_score": match.team_a_score,
            "team_b_score": match.team_b_score,
            "winner": match.winner_id,
        },
    }


# ---------------------------------------------------------------------------
# Display table
# ---------------------------------------------------------------------------


def set_ratio(row: RankingRow) -> float:
    total = row.sets_won + row.sets_lost
    return row.sets_won / total if total > 0 else 0.0


def point_ratio(row: RankingRow) -> float:
    if row.points_conceded > 0:
        return row.points_scored / row.points_conceded
    return float(row.points_scored)


def ranking_table(
    rankings: list[RankingRow],
    team_names: dict[str, str] | None = None,
) -> list[dict]:
    """Rankings as display rows with 1-based positions.

    Sorted by points desc, then wins desc; sets won and team name only
    break remaining ties so the order is deterministic.
    """
    names = team_names or {}
    ordered = sorted(
        rankings,
        key=lambda r: (-r.points, -r.wins, -r.sets_won, names.get(r.team_id, r.team_id)),
    )
    return [
        {
            "position": position,
            "team_id": r.team_id,
            "team_name": names.get(r.team_id, "Unknown Team"),
            "points": r.points,
            "matches_played": r.matches_played,
            "wins": r.wins,
            "losses": r.losses,
            "sets_won": r.sets_won,
            "sets_lost": r.sets_lost,
            "points_scored": r.points_scored,
            "points_conceded": r.points_conceded,
            "set_ratio": round(set_ratio(r), 3),
            "point_ratio": round(point_ratio(r), 3),
        }
        for position, r in enumerate(ordered, start=1)
    ]
