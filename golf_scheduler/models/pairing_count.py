"""
Pairing Count Model

How many times two players of a season have been grouped in the same foursome.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from golf_scheduler.models._time import UTCDateTime, utc_now


class PairingCount(SQLModel, table=True):
    """
    Co-occurrence count for an unordered player pair.

    Constraint: player_id_a < player_id_b so each pair has exactly one row per season.
    """

    __table_args__ = (
        SAUniqueConstraint("season_id", "player_id_a", "player_id_b", name="uq_season_pairing"),
        CheckConstraint("player_id_a < player_id_b", name="ck_pairing_order"),
        CheckConstraint("count >= 0", name="ck_pairing_count_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="season.id", index=True)
    player_id_a: int = Field(foreign_key="player.id", index=True)
    player_id_b: int = Field(foreign_key="player.id", index=True)
    count: int = Field(default=0)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
