from datetime import date, datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from golf_scheduler.models._time import UTCDateTime, utc_now


class Season(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    start_date: date
    end_date: date
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
