from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlalchemy.orm import validates
from sqlmodel import Column, Field, SQLModel

MAX_FOURSOME_SIZE = 4


class TimeSlot(str, Enum):
    morning = "morning"
    afternoon = "afternoon"


class Foursome(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("schedule_id", "time_slot", "position", name="uq_schedule_slot_position"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    schedule_id: int = Field(foreign_key="schedule.id", index=True)
    time_slot: TimeSlot = Field(sa_column=Column(String, nullable=False))
    position: int  # 0-based, sequential within time_slot
    player_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    @validates("time_slot")
    def validate_time_slot(self, key: str, value: object) -> str:
        try:
            return TimeSlot(value).value
        except ValueError:
            raise ValueError(f"Invalid time slot: {value}. Must be 'morning' or 'afternoon'")

    @validates("player_ids")
    def validate_player_ids(self, key: str, value: object) -> List[int]:
        ids = list(value or [])
        if len(ids) > MAX_FOURSOME_SIZE:
            raise ValueError(f"Foursome cannot have more than {MAX_FOURSOME_SIZE} players, got {len(ids)}")
        if len(set(ids)) != len(ids):
            raise ValueError("Foursome contains the same player twice")
        return ids
