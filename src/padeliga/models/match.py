"""Match models: status enum, per-match scheduling and submitted results."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class MatchStatus(StrEnum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"
    POSTPONED = "postponed"


# Statuses a match never leaves automatically.
TERMINAL_MATCH_STATUSES: frozenset[str] = frozenset(
    {MatchStatus.COMPLETED.value, MatchStatus.CANCELED.value}
)


# 24-hour clock, zero padded.
SCHEDULED_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class MatchSchedule(BaseModel):
    """When and where a single match is played."""

    scheduled_date: datetime
    scheduled_time: str | None = Field(default=None, pattern=SCHEDULED_TIME_PATTERN)
    location: str | None = Field(default=None, max_length=200)


class MatchResult(BaseModel):
    """Per-set scores for both sides and the declared winner.

    Structural checks (matching lengths, winner belongs to the match,
    winner agrees with the scores) live in ``padeliga.core.rankings`` so
    they raise the core's ``ResultValidationError``.
    """

    team_a_score: list[int] = Field(default_factory=list)
    team_b_score: list[int] = Field(default_factory=list)
    winner: str
