"""
SQL utilities shared by the scheduling services.

Services accept an optional caller-owned session. session_scope() yields it untouched
(the caller commits), or opens a fresh one and commits on success.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from sqlmodel.ext.asyncio.session import AsyncSession


def scalar_int(x: Any) -> int:
    """Convert COUNT/aggregate result to int. Handles int or 1-tuple/Row."""
    try:
        return int(x[0])
    except Exception:
        return int(x)


@asynccontextmanager
async def session_scope(
    session_factory: Callable[[], AsyncSession], session: Optional[AsyncSession] = None
) -> AsyncIterator[AsyncSession]:
    if session is not None:
        yield session
        return

    async with session_factory() as own_session:
        try:
            yield own_session
            await own_session.commit()
        except Exception:
            await own_session.rollback()
            raise
