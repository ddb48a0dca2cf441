"""
In-memory regeneration status per week.

Owned by a ScheduleManager instance. At most one non-terminal status exists per
week id; try_begin() is the only way to claim a week and is synchronous, so two
coroutines on the same event loop can never both claim it.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from golf_scheduler.models._time import utc_now

logger = logging.getLogger(__name__)


class RegenerationState(str, Enum):
    idle = "idle"
    backing_up = "backing_up"
    generating = "generating"
    replacing = "replacing"
    completed = "completed"
    failed = "failed"


TERMINAL_STATES = frozenset({RegenerationState.idle, RegenerationState.completed, RegenerationState.failed})


@dataclass
class RegenerationStatus:
    week_id: int
    status: RegenerationState
    started_at: datetime
    error: Optional[str] = None
    progress: int = 0  # 0-100
    current_step: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_STATES


class RegenerationStatusStore:
    def __init__(self):
        self._statuses: Dict[int, RegenerationStatus] = {}

    def get(self, week_id: int) -> Optional[RegenerationStatus]:
        status = self._statuses.get(week_id)
        return replace(status) if status else None

    def is_active(self, week_id: int) -> bool:
        status = self._statuses.get(week_id)
        return status is not None and status.is_active

    def try_begin(self, week_id: int, state: RegenerationState, current_step: str) -> Optional[RegenerationStatus]:
        """Claim a week. Returns the new status record, or None when the week is already claimed."""
        if self.is_active(week_id):
            return None
        status = RegenerationStatus(week_id=week_id, status=state, started_at=utc_now(), current_step=current_step)
        self._statuses[week_id] = status
        return status

    def advance(
        self,
        claim: RegenerationStatus,
        state: RegenerationState,
        progress: int,
        current_step: str,
        error: Optional[str] = None,
    ) -> None:
        """Move a claimed operation forward. No-op if the claim was force-released meanwhile."""
        if self._statuses.get(claim.week_id) is not claim:
            logger.warning("Regeneration status for week %s was released while in %s", claim.week_id, claim.status)
            return
        claim.status = state
        claim.progress = progress
        claim.current_step = current_step
        claim.error = error

    def release(self, claim: RegenerationStatus) -> None:
        if self._statuses.get(claim.week_id) is claim:
            del self._statuses[claim.week_id]

    def force_set(self, week_id: int, state: RegenerationState, current_step: str) -> RegenerationStatus:
        status = RegenerationStatus(week_id=week_id, status=state, started_at=utc_now(), current_step=current_step)
        self._statuses[week_id] = status
        return status

    def clear(self, week_id: int) -> bool:
        return self._statuses.pop(week_id, None) is not None

    def clear_all(self) -> int:
        count = len(self._statuses)
        self._statuses.clear()
        return count

    def active_week_ids(self) -> List[int]:
        return sorted(w for w, s in self._statuses.items() if s.is_active)
