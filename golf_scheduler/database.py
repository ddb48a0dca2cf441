"""Async SQLAlchemy engine and session helpers."""

from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from golf_scheduler.config import DATABASE_URL as _CONFIGURED_URL
from golf_scheduler.config import SQL_ECHO


def normalize_database_url(url: str) -> str:
    """Select an async driver for bare sqlite/postgres URLs.

    "sqlite:///x.db" becomes "sqlite+aiosqlite:///x.db"; an explicit driver is respected.
    """
    u = make_url(url)
    driver = (u.drivername or "").lower()
    if "+" in driver:
        return u.render_as_string(hide_password=False)
    if driver == "sqlite":
        u = u.set(drivername="sqlite+aiosqlite")
    elif driver in ("postgres", "postgresql"):
        u = u.set(drivername="postgresql+asyncpg")
    return u.render_as_string(hide_password=False)


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        db_path = make_url(url).database
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(url, echo=echo)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


DATABASE_URL = normalize_database_url(_CONFIGURED_URL)

engine: AsyncEngine = build_engine(DATABASE_URL, echo=SQL_ECHO)
SessionLocal = build_session_factory(engine)


def import_models() -> None:
    """Register every table with SQLModel metadata"""
    from golf_scheduler.models.foursome import Foursome  # noqa: F401
    from golf_scheduler.models.pairing_count import PairingCount  # noqa: F401
    from golf_scheduler.models.player import Player  # noqa: F401
    from golf_scheduler.models.schedule import Schedule  # noqa: F401
    from golf_scheduler.models.schedule_backup import ScheduleBackup  # noqa: F401
    from golf_scheduler.models.season import Season  # noqa: F401
    from golf_scheduler.models.week import Week, WeekAvailability  # noqa: F401


async def init_db(target: AsyncEngine = None) -> None:
    """Initialize database - create all tables"""
    import_models()
    async with (target or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


def describe_database_url(url: str) -> str:
    """Sanitized DB URL for logging; passwords are never included."""
    try:
        u = make_url(url)
        if u.drivername.startswith("sqlite"):
            return f"{u.drivername}:///{u.database}"
        port = f":{u.port}" if u.port else ""
        return f"{u.drivername}://{u.username or '?'}@{u.host or '?'}{port}/{u.database or '?'}"
    except Exception:
        return "<unparseable database URL>"
