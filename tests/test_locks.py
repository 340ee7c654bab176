"""Tests for per-league locking."""

import asyncio
from datetime import datetime

import pytest

from padeliga.core.event_bus import SCHEDULE_GENERATED, EventBus
from padeliga.core.locks import LeagueLocks, league_transaction
from padeliga.core.schedule import generate_schedule
from padeliga.db.engine import create_engine, get_session, init_db
from padeliga.db.repository import Repository


async def _seed_league(repo: Repository, organizer_id: str, num_teams: int = 4) -> str:
    league = await repo.create_league(
        name="File League",
        organizer_id=organizer_id,
        start_date=datetime(2026, 3, 1),
        end_date=datetime(2026, 3, 31),
        registration_deadline=datetime(2026, 2, 25),
        min_teams=2,
        status="registration",
    )
    for i in range(num_teams):
        player = await repo.create_player(f"File Player {i}", user_id=f"user-{i}")
        team = await repo.create_team(
            name=f"File Team {i}",
            created_by=organizer_id,
            player_ids=[player.id],
            league_id=league.id,
        )
        await repo.add_team_to_league(league.id, team.id)
    return league.id


class _VisibilityBus(EventBus):
    """Records, at publish time, how many matches a fresh session can see."""

    def __init__(self, engine) -> None:
        super().__init__()
        self.engine = engine
        self.visible: list[int] = []

    async def publish(self, event_type, data):
        async with get_session(self.engine) as session:
            self.visible.append(await Repository(session).count_matches(data["league_id"]))
        return await super().publish(event_type, data)


class TestLeagueLocks:
    async def test_hold_marks_locked(self):
        locks = LeagueLocks()
        assert not locks.is_locked("l-1")
        async with locks.hold("l-1"):
            assert locks.is_locked("l-1")
            assert not locks.is_locked("l-2")
        assert not locks.is_locked("l-1")

    async def test_same_league_serialized(self):
        locks = LeagueLocks()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("l-1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    async def test_different_leagues_interleave(self):
        locks = LeagueLocks()
        order: list[str] = []

        async def worker(league_id: str) -> None:
            async with locks.hold(league_id):
                order.append(f"{league_id}-start")
                await asyncio.sleep(0.01)
                order.append(f"{league_id}-end")

        await asyncio.gather(worker("l-1"), worker("l-2"))

        assert order[:2] == ["l-1-start", "l-2-start"]


class TestLockEviction:
    async def test_released_lock_is_dropped(self):
        locks = LeagueLocks()
        async with locks.hold("l-1"):
            assert len(locks) == 1
        assert len(locks) == 0

    async def test_kept_while_someone_waits(self):
        locks = LeagueLocks()
        active = peak = 0

        async def worker(delay: float) -> None:
            nonlocal active, peak
            await asyncio.sleep(delay)
            async with locks.hold("l-1"):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        # The late worker arrives after the first release, while the second still waits.
        await asyncio.gather(worker(0), worker(0), worker(0.015))

        assert peak == 1
        assert len(locks) == 0

    async def test_failure_inside_releases_entry(self):
        locks = LeagueLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold("l-1"):
                raise RuntimeError("boom")
        assert len(locks) == 0
        assert not locks.is_locked("l-1")

    async def test_many_leagues_do_not_accumulate(self):
        locks = LeagueLocks()
        for i in range(50):
            async with locks.hold(f"l-{i}"):
                pass
        assert len(locks) == 0


class TestLeagueTransaction:
    async def test_commits_before_release(self, engine, organizer):
        locks = LeagueLocks()
        async with get_session(engine) as session:
            repo = Repository(session)
            league_id = await _seed_league(repo, organizer.user_id)
            async with league_transaction(repo, league_id, locks):
                league = await repo.get_league(league_id)
                league.venue = "Club Norte"
                await repo.save_league(league)
            assert not session.in_transaction()
            assert not locks.is_locked(league_id)

    async def test_shared_session_generation_leaves_one_schedule(
        self, repo, organizer, make_league
    ):
        league, _ = await make_league(num_teams=4)
        locks = LeagueLocks()

        results = await asyncio.gather(
            generate_schedule(repo, league.id, organizer, locks=locks),
            generate_schedule(repo, league.id, organizer, locks=locks),
        )

        assert results == [{"matches_created": 6}, {"matches_created": 6}]
        assert await repo.count_matches(league.id) == 6

    async def test_separate_sessions_on_file_database(self, tmp_path, organizer):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'leagues.db'}")
        await init_db(engine)
        try:
            async with get_session(engine) as session:
                league_id = await _seed_league(Repository(session), organizer.user_id)

            locks = LeagueLocks()
            bus = _VisibilityBus(engine)

            async def generate() -> dict[str, int]:
                async with get_session(engine) as session:
                    return await generate_schedule(
                        Repository(session), league_id, organizer, event_bus=bus, locks=locks
                    )

            results = await asyncio.gather(generate(), generate())

            assert results == [{"matches_created": 6}, {"matches_created": 6}]
            # Each event went out only after its schedule had been committed.
            assert bus.visible == [6, 6]
            async with get_session(engine) as session:
                assert await Repository(session).count_matches(league_id) == 6
        finally:
            await engine.dispose()

    async def test_generated_event_published_after_commit(self, tmp_path, organizer):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'events.db'}")
        await init_db(engine)
        try:
            async with get_session(engine) as session:
                league_id = await _seed_league(Repository(session), organizer.user_id, 3)

            bus = _VisibilityBus(engine)
            async with bus.subscribe(SCHEDULE_GENERATED) as sub:
                async with get_session(engine) as session:
                    await generate_schedule(
                        Repository(session), league_id, organizer, event_bus=bus
                    )
                event = await sub.get(timeout=1.0)

            assert event["data"]["matches_created"] == 3
            assert bus.visible == [3]
        finally:
            await engine.dispose()
