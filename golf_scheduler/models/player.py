from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import validates
from sqlmodel import Column, Field, SQLModel

from golf_scheduler.models._time import UTCDateTime, utc_now


class Handedness(str, Enum):
    left = "left"
    right = "right"


class TimePreference(str, Enum):
    AM = "AM"
    PM = "PM"
    Either = "Either"


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    first_name: str
    last_name: str
    handedness: Handedness = Field(default=Handedness.right, sa_column=Column(String, nullable=False))
    time_preference: TimePreference = Field(
        default=TimePreference.Either, sa_column=Column(String, nullable=False)
    )
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    @validates("first_name", "last_name")
    def validate_name(self, key: str, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{key} is required and cannot be empty")
        return value.strip()

    @validates("handedness")
    def validate_handedness(self, key: str, value: object) -> str:
        try:
            return Handedness(value).value
        except ValueError:
            raise ValueError('Handedness must be either "left" or "right"')

    @validates("time_preference")
    def validate_time_preference(self, key: str, value: object) -> str:
        try:
            return TimePreference(value).value
        except ValueError:
            raise ValueError('Time preference must be "AM", "PM", or "Either"')

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
