"""Round-robin pairing and date allocation.

Both functions are pure: they know nothing about leagues or the database.

Terminology:
  - **round**: a set of pairings in which no team appears twice.  With
    N teams (even) a round has N/2 pairings; a full round-robin takes
    N-1 rounds (N rounds for odd N, because one team sits out each round).
  - **pairing**: one unordered meeting of two teams.  A full round-robin
    has C(N,2) = N*(N-1)/2 pairings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from padeliga.core.errors import InsufficientSchedulingWindowError, InsufficientTeamsError

logger = logging.getLogger(__name__)

# Placeholder occupying the spare slot when the team count is odd.
_BYE = None


@dataclass(frozen=True)
class Pairing:
    """Two teams meeting once, tagged with the round they were generated in."""

    round_number: int
    pairing_index: int
    team_a_id: str
    team_b_id: str


@dataclass(frozen=True)
class MatchDraft:
    """A pairing placed on the calendar, ready to persist as a match."""

    round_number: int
    team_a_id: str
    team_b_id: str
    scheduled_date: datetime
    location: str | None = None
    status: str = "scheduled"


def generate_round_robin(team_ids: list[str]) -> list[Pairing]:
    """Generate a single round-robin using the circle (polygon) method.

    Position 0 stays fixed.  Each round pairs position ``i`` with position
    ``n-1-i``; afterwards the last team moves to position 1 and everyone
    else between shifts one step right.  For odd N a bye slot is appended
    and any pairing involving it is dropped.

    The output order (round, then generation order within the round) is
    significant: ``allocate_dates`` assigns dates positionally.

    Raises:
        InsufficientTeamsError: fewer than two teams.
        ValueError: the same team ID appears twice.
    """
    if len(team_ids) < 2:
        raise InsufficientTeamsError(
            f"At least 2 teams are required to generate a schedule, got {len(team_ids)}"
        )
    if len(set(team_ids)) != len(team_ids):
        raise ValueError("team_ids must not contain duplicates")

    slots: list[str | None] = list(team_ids)
    if len(slots) % 2:
        slots.append(_BYE)
    n = len(slots)

    pairings: list[Pairing] = []
    for round_idx in range(n - 1):
        pairing_idx = 0
        for i in range(n // 2):
            team_a = slots[i]
            team_b = slots[n - 1 - i]
            if team_a is _BYE or team_b is _BYE:
                continue
            pairings.append(
                Pairing(
                    round_number=round_idx + 1,
                    pairing_index=pairing_idx,
                    team_a_id=team_a,
                    team_b_id=team_b,
                )
            )
            pairing_idx += 1

        # Rotate everything but position 0: the last slot re-enters at position 1.
        slots = [slots[0], slots[-1], *slots[1:-1]]

    logger.debug("round_robin_generated teams=%d pairings=%d", len(team_ids), len(pairings))
    return pairings


def allocate_dates(
    pairings: list[Pairing],
    start: datetime,
    end: datetime,
    venue: str | None = None,
) -> list[MatchDraft]:
    """Spread pairings evenly across ``[start, end]``, one day-slot per pairing.

    ``interval = floor(total_days / M)`` and pairing ``k`` is placed on
    ``start + k * interval`` days.  The allocator is deliberately naive:
    it ignores weekdays, holidays and other leagues sharing the venue.

    Raises:
        InsufficientSchedulingWindowError: fewer whole days than pairings.
    """
    total_matches = len(pairings)
    total_days = (end - start).days
    if total_days < total_matches:
        raise InsufficientSchedulingWindowError(
            f"Not enough days ({total_days}) to schedule all matches ({total_matches})"
        )
    if total_matches == 0:
        return []

    interval = total_days // total_matches
    logger.debug(
        "allocating_dates matches=%d days=%d interval=%d",
        total_matches,
        total_days,
        interval,
    )
    return [
        MatchDraft(
            round_number=p.round_number,
            team_a_id=p.team_a_id,
            team_b_id=p.team_b_id,
            scheduled_date=start + timedelta(days=k * interval),
            location=venue,
        )
        for k, p in enumerate(pairings)
    ]
