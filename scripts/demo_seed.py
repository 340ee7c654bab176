"""Seed a Padeliga league and play it out for demo purposes.

Usage:
    python scripts/demo_seed.py seed       # Create league + teams + schedule, activate it
    python scripts/demo_seed.py play [N]   # Record results for the next N matches (default all)
    python scripts/demo_seed.py status     # Print schedule summary and ranking table

Uses a local SQLite database (demo_padeliga.db).
"""

from __future__ import annotations

import asyncio
import os
import random
import sys
from datetime import datetime, timedelta

from sqlalchemy import select

from padeliga.core.league_status import transition_status
from padeliga.core.leagues import create_league, register_team
from padeliga.core.rankings import ranking_table, submit_match_result
from padeliga.core.schedule import generate_schedule
from padeliga.db.engine import create_engine, get_session, init_db
from padeliga.db.models import LeagueRow
from padeliga.db.repository import Repository
from padeliga.models.league import LeagueCreate, LeagueStatus
from padeliga.models.user import SessionUser

DEMO_DB = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///demo_padeliga.db")

ORGANIZER = SessionUser(user_id="demo-organizer", username="organizer", role="admin")

TEAMS = [
    ("Bandeja Bros", ["Lucia Ortega", "Marta Vidal"]),
    ("Vibora Club", ["Pablo Serrano", "Diego Ruiz"]),
    ("Chiquita Crew", ["Ana Molina"]),
    ("Por Tres", ["Carlos Navarro", "Javier Lopez"]),
    ("Globo Alto", ["Sofia Herrera", "Elena Castro"]),
]


async def _league_id(repo: Repository) -> str | None:
    result = await repo.session.execute(select(LeagueRow.id).limit(1))
    return result.scalar_one_or_none()


async def seed() -> None:
    engine = create_engine(DEMO_DB)
    await init_db(engine)
    start = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=7)

    async with get_session(engine) as session:
        repo = Repository(session)
        if await _league_id(repo):
            print("Demo league already exists.")
            await engine.dispose()
            return

        league = await create_league(
            repo,
            ORGANIZER,
            LeagueCreate(
                name="Demo Padel League",
                start_date=start,
                end_date=start + timedelta(days=60),
                registration_deadline=start - timedelta(days=1),
                min_teams=4,
                max_teams=8,
                venue="Club Central",
            ),
        )
        for team_name, players in TEAMS:
            player_ids = [(await repo.create_player(p)).id for p in players]
            await register_team(repo, league.id, ORGANIZER, team_name, player_ids)

        await transition_status(repo, league.id, LeagueStatus.REGISTRATION)
        summary = await generate_schedule(repo, league.id, ORGANIZER)
        await transition_status(repo, league.id, LeagueStatus.ACTIVE)
        print(f"Seeded league {league.id} with {summary['matches_created']} matches.")

    await engine.dispose()


def _random_score(rng: random.Random) -> tuple[list[int], list[int]]:
    a_score: list[int] = []
    b_score: list[int] = []
    a_sets = b_sets = 0
    while a_sets < 2 and b_sets < 2:
        if rng.random() < 0.5:
            a_score.append(6)
            b_score.append(rng.randint(0, 4))
            a_sets += 1
        else:
            a_score.append(rng.randint(0, 4))
            b_score.append(6)
            b_sets += 1
    return a_score, b_score


async def play(limit: int | None) -> None:
    engine = create_engine(DEMO_DB)
    rng = random.Random(42)
    async with get_session(engine) as session:
        repo = Repository(session)
        league_id = await _league_id(repo)
        if league_id is None:
            print("No league. Run 'seed' first.")
            return
        matches = await repo.get_matches_for_league(league_id)
        pending = [m for m in matches if m.status == "scheduled"]
        for match in pending[:limit]:
            a_score, b_score = _random_score(rng)
            winner = match.team_a_id if a_score.count(6) == 2 else match.team_b_id
            await submit_match_result(repo, match.id, ORGANIZER, a_score, b_score, winner)
        print(f"Recorded {len(pending[:limit])} results.")
    await engine.dispose()


async def status() -> None:
    engine = create_engine(DEMO_DB)
    async with get_session(engine) as session:
        repo = Repository(session)
        league_id = await _league_id(repo)
        if league_id is None:
            print("No league. Run 'seed' first.")
            return
        league = await repo.get_league(league_id)
        matches = await repo.get_matches_for_league(league_id)
        done = sum(1 for m in matches if m.status == "completed")
        print(f"{league.name} [{league.status}] {done}/{len(matches)} matches played\n")

        rankings = await repo.get_rankings(league_id)
        teams = await repo.get_teams_by_ids(r.team_id for r in rankings)
        for row in ranking_table(rankings, {t.id: t.name for t in teams}):
            print(
                f"{row['position']:>2}. {row['team_name']:<16} "
                f"{row['points']:>3} pts  {row['wins']}W-{row['losses']}L  "
                f"sets {row['sets_won']}-{row['sets_lost']}"
            )
    await engine.dispose()


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    command = sys.argv[1]
    if command == "seed":
        asyncio.run(seed())
    elif command == "play":
        asyncio.run(play(int(sys.argv[2]) if len(sys.argv) > 2 else None))
    elif command == "status":
        asyncio.run(status())
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
