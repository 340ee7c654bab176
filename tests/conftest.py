"""Shared test fixtures."""

from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from padeliga.config import Settings
from padeliga.core.league_status import transition_status
from padeliga.core.schedule import generate_schedule
from padeliga.db.engine import create_engine, get_session, init_db
from padeliga.db.repository import Repository
from padeliga.models.user import SessionUser

START = datetime(2026, 3, 1)
END = datetime(2026, 3, 31)
DEADLINE = datetime(2026, 2, 25)


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(padeliga_env="development", database_url="sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def engine() -> AsyncEngine:
    """In-memory SQLite engine with all tables."""
    eng = create_engine("sqlite+aiosqlite:///:memory:")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
async def repo(engine: AsyncEngine) -> Repository:
    """Repository bound to a session on the in-memory database."""
    async with get_session(engine) as session:
        yield Repository(session)


@pytest.fixture
def organizer() -> SessionUser:
    return SessionUser(user_id="user-organizer", username="organizer")


@pytest.fixture
def admin() -> SessionUser:
    return SessionUser(user_id="user-admin", username="admin", role="admin")


@pytest.fixture
def stranger() -> SessionUser:
    return SessionUser(user_id="user-stranger", username="stranger")


@pytest.fixture
def make_league(repo: Repository, organizer: SessionUser):
    """Factory: a league owned by ``organizer`` with ``num_teams`` registered teams.

    Returns ``(league, team_ids)``.
    """

    async def _make(
        num_teams: int = 4,
        status: str = "draft",
        start: datetime = START,
        end: datetime = END,
        min_teams: int = 2,
        **fields: object,
    ):
        league = await repo.create_league(
            name="Test League",
            organizer_id=organizer.user_id,
            start_date=start,
            end_date=end,
            registration_deadline=min(DEADLINE, start),
            min_teams=min_teams,
            status=status,
            **fields,
        )
        team_ids = []
        for i in range(num_teams):
            player = await repo.create_player(f"Player {league.id[:4]}-{i}", user_id=f"user-{i}")
            team = await repo.create_team(
                name=f"Team {league.id[:6]} {i}",
                created_by=organizer.user_id,
                player_ids=[player.id],
                league_id=league.id,
            )
            await repo.add_team_to_league(league.id, team.id)
            team_ids.append(team.id)
        return league, team_ids

    return _make


@pytest.fixture
def make_active_league(repo: Repository, organizer: SessionUser, make_league):
    """Factory: a league with a generated schedule, moved to ``active``.

    Returns ``(league, team_ids, matches)`` with matches in schedule order.
    """

    async def _make(num_teams: int = 4, **fields: object):
        league, team_ids = await make_league(num_teams=num_teams, status="registration", **fields)
        await generate_schedule(repo, league.id, organizer)
        await transition_status(repo, league.id, "active")
        matches = await repo.get_matches_for_league(league.id)
        return league, team_ids, matches

    return _make
