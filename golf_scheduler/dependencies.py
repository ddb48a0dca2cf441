"""FastAPI dependencies shared by the routers."""

from typing import Optional

from golf_scheduler.database import SessionLocal
from golf_scheduler.services.schedule_manager import ScheduleManager

_manager: Optional[ScheduleManager] = None


def get_schedule_manager() -> ScheduleManager:
    """One manager per process: it owns the in-memory regeneration statuses"""
    global _manager
    if _manager is None:
        _manager = ScheduleManager(SessionLocal)
    return _manager
