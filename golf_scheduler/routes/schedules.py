"""
API Routes for weekly schedules: create, read, delete, regenerate, validate, edit,
and the backups taken along the way.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from golf_scheduler.dependencies import get_schedule_manager
from golf_scheduler.routes.schemas import ScheduleResponse, http_error, schedule_response
from golf_scheduler.services.errors import SchedulingError
from golf_scheduler.services.schedule_manager import (
    CreateScheduleOptions,
    EditType,
    RegenerationOptions,
    ScheduleEditOperation,
    ScheduleManager,
)

router = APIRouter()


# ============================================================================
# Request / Response Models
# ============================================================================


class GenerationFlags(BaseModel):
    prioritize_complete_groups: Optional[bool] = None
    balance_time_slots: Optional[bool] = None
    optimize_pairings: Optional[bool] = None


class RegenerateRequest(GenerationFlags):
    force_overwrite: bool = False
    preserve_manual_edits: bool = False


class ChangesDetectedResponse(BaseModel):
    players_added: List[int]
    players_removed: List[int]
    players_before: int
    players_after: int


class RegenerateResponse(BaseModel):
    success: bool
    new_schedule_id: Optional[int] = None
    backup_id: Optional[int] = None
    error: Optional[str] = None
    failed_step: Optional[str] = None
    restore_failed: bool = False
    changes_detected: Optional[ChangesDetectedResponse] = None


class ValidationResponse(BaseModel):
    week_id: int
    is_valid: bool
    errors: List[str]
    warnings: List[str]


class ConflictResponse(BaseModel):
    type: str
    player_id: int
    message: str
    foursome_id: Optional[int] = None


class ResolutionResponse(BaseModel):
    conflict_type: str
    player_id: int
    action: str
    description: str
    target_foursome_id: Optional[int] = None


class ConflictReportResponse(BaseModel):
    week_id: int
    conflicts: List[ConflictResponse]
    resolutions: List[ResolutionResponse]


class EditRequest(BaseModel):
    type: EditType
    player_id: int
    from_foursome_id: Optional[int] = None
    to_foursome_id: Optional[int] = None
    second_player_id: Optional[int] = None


class BackupResponse(BaseModel):
    id: int
    schedule_id: int
    week_id: int
    created_at: datetime
    size: int
    checksum: str
    description: Optional[str] = None
    is_valid: bool


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/weeks/{week_id}/schedule", response_model=ScheduleResponse)
async def create_schedule(
    week_id: int,
    flags: Optional[GenerationFlags] = None,
    manager: ScheduleManager = Depends(get_schedule_manager),
):
    """Create the week's schedule; returns the existing one when already created"""
    options = CreateScheduleOptions(**(flags.model_dump() if flags else {}))
    try:
        schedule = await manager.create_weekly_schedule(week_id, options)
    except (SchedulingError, LookupError) as e:
        raise http_error(e)
    return schedule_response(schedule)


@router.get("/weeks/{week_id}/schedule", response_model=ScheduleResponse)
async def get_schedule(week_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    schedule = await manager.get_schedule(week_id)
    if not schedule:
        raise HTTPException(status_code=404, detail=f"Schedule not found for week {week_id}")
    return schedule_response(schedule)


@router.delete("/weeks/{week_id}/schedule")
async def delete_schedule(week_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    try:
        deleted = await manager.delete_schedule(week_id)
    except SchedulingError as e:
        raise http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Schedule not found for week {week_id}")
    return {"deleted": True, "week_id": week_id}


@router.post("/weeks/{week_id}/schedule/regenerate", response_model=RegenerateResponse)
async def regenerate_schedule(
    week_id: int,
    request: Optional[RegenerateRequest] = None,
    manager: ScheduleManager = Depends(get_schedule_manager),
):
    """
    Regenerate the week's schedule in place (same schedule id).

    The client must have confirmed with the user before calling. Returns
    success=false for a recoverable failure; 409 while another regeneration of the
    week runs, 404 for an unknown week or schedule, 500 when the automatic restore failed.
    """
    options = RegenerationOptions(**(request.model_dump() if request else {}))
    result = await manager.regenerate_schedule(week_id, options)

    if not result.success:
        if result.failed_step == "locked":
            raise HTTPException(status_code=409, detail=result.error)
        if result.failed_step == "loading":
            raise HTTPException(status_code=404, detail=result.error)
        if result.restore_failed:
            raise HTTPException(status_code=500, detail=result.error)

    changes = result.changes_detected
    return RegenerateResponse(
        success=result.success,
        new_schedule_id=result.new_schedule_id,
        backup_id=result.backup_id,
        error=result.error,
        failed_step=result.failed_step,
        restore_failed=result.restore_failed,
        changes_detected=ChangesDetectedResponse(**vars(changes)) if changes else None,
    )


@router.get("/weeks/{week_id}/schedule/validation", response_model=ValidationResponse)
async def validate_schedule(week_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    """Check the stored schedule against current availability and preferences"""
    try:
        result = await manager.validate_week_schedule(week_id)
    except (SchedulingError, LookupError) as e:
        raise http_error(e)
    return ValidationResponse(week_id=week_id, is_valid=result.is_valid, errors=result.errors, warnings=result.warnings)


@router.get("/weeks/{week_id}/schedule/conflicts", response_model=ConflictReportResponse)
async def schedule_conflicts(week_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    try:
        report = await manager.detect_conflicts(week_id)
    except (SchedulingError, LookupError) as e:
        raise http_error(e)
    return ConflictReportResponse(
        week_id=week_id,
        conflicts=[ConflictResponse(**vars(c)) for c in report.conflicts],
        resolutions=[ResolutionResponse(**vars(r)) for r in report.resolutions],
    )


@router.post("/weeks/{week_id}/schedule/edits", response_model=ScheduleResponse)
async def edit_schedule(
    week_id: int,
    edit: EditRequest,
    manager: ScheduleManager = Depends(get_schedule_manager),
):
    operation = ScheduleEditOperation(
        type=edit.type,
        player_id=edit.player_id,
        from_foursome_id=edit.from_foursome_id,
        to_foursome_id=edit.to_foursome_id,
        second_player_id=edit.second_player_id,
    )
    try:
        schedule = await manager.apply_manual_edit(week_id, operation)
    except (SchedulingError, LookupError) as e:
        raise http_error(e)
    return schedule_response(schedule)


@router.get("/schedules/{schedule_id}/backups", response_model=List[BackupResponse])
async def list_backups(schedule_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    """Backups of a schedule, newest first"""
    backups = await manager.backup_service.list_backups(schedule_id=schedule_id)
    return [
        BackupResponse(**vars(b), is_valid=await manager.backup_service.validate_backup(b.id)) for b in backups
    ]


@router.post("/schedules/{schedule_id}/backups/{backup_id}/restore")
async def restore_backup(schedule_id: int, backup_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    try:
        restored = await manager.restore_schedule(schedule_id, backup_id)
    except (SchedulingError, LookupError) as e:
        raise http_error(e)
    if not restored:
        raise HTTPException(status_code=404, detail=f"Backup {backup_id} not found for schedule {schedule_id}")
    return {"restored": True, "schedule_id": schedule_id, "backup_id": backup_id}
