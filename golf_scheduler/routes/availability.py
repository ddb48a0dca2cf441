"""
API Routes for player availability per week
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from golf_scheduler.dependencies import get_schedule_manager
from golf_scheduler.routes.schemas import http_error
from golf_scheduler.services.errors import SchedulingError
from golf_scheduler.services.schedule_manager import ScheduleManager

router = APIRouter()


class AvailabilityUpdate(BaseModel):
    is_available: bool


class AvailabilityResponse(BaseModel):
    week_id: int
    player_id: int
    is_available: bool


@router.put("/weeks/{week_id}/availability/{player_id}", response_model=AvailabilityResponse)
async def set_availability(
    week_id: int,
    player_id: int,
    update: AvailabilityUpdate,
    manager: ScheduleManager = Depends(get_schedule_manager),
):
    """Availability changes never touch an existing schedule; regenerate to apply them"""
    try:
        await manager.set_player_availability(week_id, player_id, update.is_available)
    except (SchedulingError, LookupError) as e:
        raise http_error(e)
    return AvailabilityResponse(week_id=week_id, player_id=player_id, is_available=update.is_available)
