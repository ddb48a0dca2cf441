from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from golf_scheduler.models._time import UTCDateTime, utc_now


class Schedule(SQLModel, table=True):
    # One schedule per week is enforced by ScheduleManager, not by a constraint
    id: Optional[int] = Field(default=None, primary_key=True)
    week_id: int = Field(foreign_key="week.id", index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
