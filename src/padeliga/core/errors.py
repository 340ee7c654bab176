"""Failure kinds raised by the league core.

Every core operation fails fast with one of these instead of a generic
exception. ``status_code`` is only read by the HTTP boundary, which maps
each kind to a response; the core itself never inspects it.
"""

from __future__ import annotations


class LeagueError(Exception):
    """Base class for all league-management failures."""

    kind = "league_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LeagueError):
    """A league, team, player or match does not exist."""

    kind = "not_found"
    status_code = 404


class ForbiddenError(LeagueError):
    """The caller is not allowed to perform the operation."""

    kind = "forbidden"
    status_code = 403


class InvalidStateError(LeagueError):
    """The operation is not legal in the current league or match status."""

    kind = "invalid_state"
    status_code = 409


class InsufficientTeamsError(LeagueError):
    kind = "insufficient_teams"


class InsufficientValidTeamsError(LeagueError):
    """Fewer than two teams survived the league/team cross-check."""

    kind = "insufficient_valid_teams"


class InsufficientSchedulingWindowError(LeagueError):
    """The date window has fewer days than the number of matches to place."""

    kind = "insufficient_scheduling_window"


class InvalidTransitionError(LeagueError):
    kind = "invalid_transition"


class ScheduleRequiredError(LeagueError):
    kind = "schedule_required"


class ResultValidationError(LeagueError):
    """Malformed scores, a winner outside the match, or a winner the scores contradict."""

    kind = "validation_error"


class RegistrationError(LeagueError):
    """A team cannot be registered into a league (full, duplicate name, bad roster)."""

    kind = "registration_error"


class MatchScheduleError(LeagueError):
    """A match date, time or location cannot be accepted."""

    kind = "invalid_schedule"
