"""League models: status and format enums plus the creation payload."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class LeagueStatus(StrEnum):
    """League lifecycle states.

    The str mixin allows direct comparison with raw status strings stored
    in the database (e.g., ``league.status == LeagueStatus.ACTIVE``).
    """

    DRAFT = "draft"
    REGISTRATION = "registration"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELED = "canceled"


# Statuses in which the schedule and the team list may still change.
PRE_ACTIVATION_STATUSES: frozenset[str] = frozenset(
    {LeagueStatus.DRAFT.value, LeagueStatus.REGISTRATION.value}
)


class MatchFormat(StrEnum):
    BEST_OF_3 = "bestOf3"
    BEST_OF_5 = "bestOf5"
    SINGLE_SET = "singleSet"


# Maximum number of sets a result may carry for each format.
MAX_SETS: dict[MatchFormat, int] = {
    MatchFormat.BEST_OF_3: 3,
    MatchFormat.BEST_OF_5: 5,
    MatchFormat.SINGLE_SET: 1,
}


class LeagueCreate(BaseModel):
    """Payload for creating a league. Points default to the configured values."""

    name: str = Field(min_length=3, max_length=50)
    description: str = Field(default="", max_length=1000)
    start_date: datetime
    end_date: datetime
    registration_deadline: datetime
    min_teams: int = Field(default=4, ge=2)
    max_teams: int = Field(default=16, ge=2)
    match_format: MatchFormat = MatchFormat.BEST_OF_3
    venue: str | None = None
    points_per_win: int | None = Field(default=None, ge=1)
    points_per_loss: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_dates_and_bounds(self) -> LeagueCreate:
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        if self.registration_deadline > self.start_date:
            raise ValueError("registration_deadline must be on or before start_date")
        if self.min_teams > self.max_teams:
            raise ValueError("min_teams must be less than or equal to max_teams")
        return self
