"""
Response models shared by the routers, and the mapping from service results.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from pydantic import BaseModel

from golf_scheduler.models.player import TimePreference
from golf_scheduler.services.errors import (
    InvalidEditError,
    PreconditionValidationError,
    RegenerationInProgressError,
    RestoreError,
    SchedulingError,
)
from golf_scheduler.services.regeneration_status import RegenerationStatus
from golf_scheduler.services.types import FoursomeSnapshot, ScheduleSnapshot


class PlayerSummary(BaseModel):
    id: int
    name: str
    time_preference: str


class FoursomeResponse(BaseModel):
    id: Optional[int] = None
    time_slot: str
    position: int
    players: List[PlayerSummary]


class ScheduleResponse(BaseModel):
    id: int
    week_id: int
    morning: List[FoursomeResponse]
    afternoon: List[FoursomeResponse]
    total_players: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RegenerationStatusResponse(BaseModel):
    week_id: int
    status: str
    started_at: datetime
    error: Optional[str] = None
    progress: int
    current_step: Optional[str] = None


def foursome_response(foursome: FoursomeSnapshot) -> FoursomeResponse:
    return FoursomeResponse(
        id=foursome.id,
        time_slot=foursome.time_slot,
        position=foursome.position,
        players=[
            PlayerSummary(id=p.id, name=p.full_name, time_preference=TimePreference(p.time_preference).value)
            for p in foursome.players
        ],
    )


def schedule_response(schedule: ScheduleSnapshot) -> ScheduleResponse:
    return ScheduleResponse(
        id=schedule.id,
        week_id=schedule.week_id,
        morning=[foursome_response(f) for f in schedule.morning],
        afternoon=[foursome_response(f) for f in schedule.afternoon],
        total_players=schedule.total_player_count(),
        created_at=schedule.created_at,
        updated_at=schedule.updated_at,
    )


def status_response(status: RegenerationStatus) -> RegenerationStatusResponse:
    return RegenerationStatusResponse(
        week_id=status.week_id,
        status=status.status.value,
        started_at=status.started_at,
        error=status.error,
        progress=status.progress,
        current_step=status.current_step,
    )


def http_error(e: Exception) -> HTTPException:
    """Map a service exception to its HTTP status"""
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (PreconditionValidationError, InvalidEditError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, RegenerationInProgressError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, RestoreError):
        return HTTPException(status_code=500, detail=str(e))
    if isinstance(e, SchedulingError):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=500, detail=f"Unexpected error: {e}")
