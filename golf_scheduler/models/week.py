from datetime import date
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Week(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("season_id", "week_number", name="uq_season_week_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    week_number: int
    week_date: date


class WeekAvailability(SQLModel, table=True):
    """
    Availability of one player for one week.

    A missing row means "not yet decided", which schedule generation treats as unavailable.
    """

    __table_args__ = (SAUniqueConstraint("week_id", "player_id", name="uq_week_player_availability"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    week_id: int = Field(foreign_key="week.id", index=True)
    player_id: int = Field(foreign_key="player.id", index=True)
    is_available: bool
