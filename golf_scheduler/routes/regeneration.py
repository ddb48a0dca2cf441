"""
API Routes for regeneration status and the administrative lock escape hatches.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from golf_scheduler.dependencies import get_schedule_manager
from golf_scheduler.routes.schemas import RegenerationStatusResponse, status_response
from golf_scheduler.services.schedule_manager import ScheduleManager

router = APIRouter()


class RegenerationInfo(BaseModel):
    week_id: int
    allowed: bool
    status: Optional[RegenerationStatusResponse] = None


class LockRequest(BaseModel):
    locked: bool


@router.get("/weeks/{week_id}/regeneration", response_model=RegenerationInfo)
def get_regeneration(week_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    status = manager.get_regeneration_status(week_id)
    return RegenerationInfo(
        week_id=week_id,
        allowed=manager.is_regeneration_allowed(week_id),
        status=status_response(status) if status else None,
    )


@router.put("/weeks/{week_id}/regeneration/lock", response_model=RegenerationInfo)
def set_regeneration_lock(week_id: int, request: LockRequest, manager: ScheduleManager = Depends(get_schedule_manager)):
    manager.set_regeneration_lock(week_id, request.locked)
    return get_regeneration(week_id, manager)


@router.delete("/weeks/{week_id}/regeneration/lock")
def force_release_lock(week_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    """Clear a stuck lock left by a crashed operation"""
    return {"week_id": week_id, "released": manager.force_release_regeneration_lock(week_id)}


@router.delete("/regeneration")
def force_cleanup_all(manager: ScheduleManager = Depends(get_schedule_manager)):
    return {"cleared": manager.force_cleanup_all_regeneration_statuses()}
