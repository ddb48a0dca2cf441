from dataclasses import dataclass
from datetime import date, timedelta
from typing import AsyncGenerator, Iterable, List, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine

from golf_scheduler.database import build_engine, build_session_factory, init_db
from golf_scheduler.dependencies import get_schedule_manager
from golf_scheduler.main import app
from golf_scheduler.models import Player, Season, Week, WeekAvailability
from golf_scheduler.services.schedule_manager import ScheduleManager

# ============================================================================
# Test Database Setup
# ============================================================================
# Every test gets its own SQLite file under tmp_path, so concurrent sessions in
# one test see each other's commits and nothing leaks between tests.


@pytest_asyncio.fixture(name="engine")
async def engine_fixture(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture(name="session_factory")
async def session_factory_fixture(engine: AsyncEngine):
    return build_session_factory(engine)


@pytest_asyncio.fixture(name="manager")
async def manager_fixture(session_factory) -> AsyncGenerator[ScheduleManager, None]:
    manager = ScheduleManager(session_factory)
    yield manager
    manager.force_cleanup_all_regeneration_statuses()


@pytest_asyncio.fixture(name="client")
async def client_fixture(manager: ScheduleManager) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_schedule_manager] = lambda: manager
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ============================================================================
# League Seeding
# ============================================================================


@dataclass
class League:
    season_id: int
    week_ids: List[int]
    player_ids: List[int]


async def seed_league(
    session_factory,
    preferences: Iterable[str],
    available: Optional[Iterable[int]] = None,
    weeks: int = 1,
) -> League:
    """
    One season with a player per preference and `weeks` weeks.

    available: indexes into preferences marked available every week (default: everyone).
    Players outside it get no availability row, i.e. undecided.
    """
    preferences = list(preferences)
    available_idx = set(range(len(preferences)) if available is None else available)

    async with session_factory() as session:
        season = Season(name="Test Season", start_date=date(2026, 4, 1), end_date=date(2026, 9, 30))
        session.add(season)
        await session.flush()

        players = [
            Player(season_id=season.id, first_name=f"Player{i + 1}", last_name="Test", time_preference=pref)
            for i, pref in enumerate(preferences)
        ]
        week_rows = [
            Week(season_id=season.id, week_number=n + 1, week_date=date(2026, 4, 1) + timedelta(weeks=n))
            for n in range(weeks)
        ]
        session.add_all(players + week_rows)
        await session.flush()

        for week in week_rows:
            for i, player in enumerate(players):
                if i in available_idx:
                    session.add(WeekAvailability(week_id=week.id, player_id=player.id, is_available=True))
        await session.commit()

        return League(season_id=season.id, week_ids=[w.id for w in week_rows], player_ids=[p.id for p in players])


@pytest_asyncio.fixture(name="seed")
async def seed_fixture(session_factory):
    async def _seed(preferences, available=None, weeks=1) -> League:
        return await seed_league(session_factory, preferences, available=available, weeks=weeks)

    return _seed
