"""
Schedule Backup Service

Point-in-time snapshots of a schedule's foursomes, taken before any destructive
change, and restore of those snapshots into the live schedule record.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from golf_scheduler.config import BACKUP_MAX_PER_SCHEDULE, BACKUP_RETENTION_DAYS
from golf_scheduler.models._time import as_utc, utc_now
from golf_scheduler.models.foursome import TimeSlot
from golf_scheduler.models.schedule import Schedule
from golf_scheduler.models.schedule_backup import ScheduleBackup
from golf_scheduler.services.errors import BackupError, RestoreError
from golf_scheduler.services.types import ScheduleSnapshot
from golf_scheduler.utils.league_queries import replace_schedule_foursomes
from golf_scheduler.utils.sql import session_scope

logger = logging.getLogger(__name__)


@dataclass
class BackupMetadata:
    id: int
    schedule_id: int
    week_id: int
    created_at: datetime
    size: int
    checksum: str
    description: Optional[str] = None

    @classmethod
    def from_row(cls, row: ScheduleBackup) -> "BackupMetadata":
        return cls(
            id=row.id,
            schedule_id=row.schedule_id,
            week_id=row.week_id,
            created_at=as_utc(row.created_at),
            size=row.size,
            checksum=row.checksum,
            description=row.description,
        )


def serialize_snapshot(snapshot: Dict[str, Any]) -> str:
    return json.dumps(snapshot, sort_keys=True, separators=(",", ":"))


def calculate_checksum(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class ScheduleBackupService:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        max_backups_per_schedule: int = BACKUP_MAX_PER_SCHEDULE,
        retention_days: int = BACKUP_RETENTION_DAYS,
    ):
        self._session_factory = session_factory
        self.max_backups_per_schedule = max_backups_per_schedule
        self.retention_days = retention_days

    async def create_backup(self, schedule: ScheduleSnapshot) -> BackupMetadata:
        """Deep-copy a schedule's contents into a new backup record. The source is not touched."""
        if schedule.id is None:
            raise BackupError("Failed to create backup: schedule has not been persisted")

        snapshot = schedule.to_dict()
        data = serialize_snapshot(snapshot)

        try:
            async with session_scope(self._session_factory) as session:
                row = ScheduleBackup(
                    schedule_id=schedule.id,
                    week_id=schedule.week_id,
                    snapshot=json.loads(data),
                    checksum=calculate_checksum(data),
                    size=len(data),
                    description=f"Backup of schedule {schedule.id} for week {schedule.week_id}",
                )
                session.add(row)
                await session.flush()
                metadata = BackupMetadata.from_row(row)
        except Exception as e:
            raise BackupError(f"Failed to create backup: {e}") from e

        logger.info("Created backup %s of schedule %s (%s bytes)", metadata.id, schedule.id, metadata.size)
        await self.cleanup_old_backups(schedule.id, keep_backup_id=metadata.id)
        return metadata

    async def list_backups(self, schedule_id: Optional[int] = None, week_id: Optional[int] = None) -> List[BackupMetadata]:
        """Backups for a schedule or a week, newest first"""
        if schedule_id is None and week_id is None:
            raise ValueError("schedule_id or week_id is required")

        statement = select(ScheduleBackup)
        if schedule_id is not None:
            statement = statement.where(ScheduleBackup.schedule_id == schedule_id)
        if week_id is not None:
            statement = statement.where(ScheduleBackup.week_id == week_id)

        async with self._session_factory() as session:
            rows = (
                await session.exec(statement.order_by(ScheduleBackup.created_at.desc(), ScheduleBackup.id.desc()))
            ).all()
        return [BackupMetadata.from_row(row) for row in rows]

    async def get_backup(self, backup_id: int) -> Optional[BackupMetadata]:
        async with self._session_factory() as session:
            row = await session.get(ScheduleBackup, backup_id)
        return BackupMetadata.from_row(row) if row else None

    async def validate_backup(self, backup_id: int) -> bool:
        """Checksum, size and shape check of a stored snapshot"""
        async with self._session_factory() as session:
            row = await session.get(ScheduleBackup, backup_id)
        return row is not None and self._is_intact(row)

    async def restore_from_backup(self, schedule_id: int, backup_id: int) -> bool:
        """
        Overwrite the live schedule's foursomes with a backup's snapshot.

        Returns False when the backup does not exist for this schedule. Raises RestoreError
        when the backup is corrupted or the write fails; nothing is applied in that case.
        """
        async with self._session_factory() as session:
            backup = await session.get(ScheduleBackup, backup_id)
            if backup is None or backup.schedule_id != schedule_id:
                logger.warning("Backup %s not found for schedule %s", backup_id, schedule_id)
                return False

            if not self._is_intact(backup):
                raise RestoreError(f"Backup {backup_id} is corrupted or invalid")

            schedule = await session.get(Schedule, schedule_id)
            if schedule is None:
                raise RestoreError(f"Schedule {schedule_id} no longer exists")

            rows = []
            for slot in (TimeSlot.morning.value, TimeSlot.afternoon.value):
                rows.extend(backup.snapshot["time_slots"][slot])

            try:
                await replace_schedule_foursomes(session, schedule, rows, keep_ids=True)
                schedule.updated_at = utc_now()
                session.add(schedule)
                await session.commit()
            except Exception as e:
                await session.rollback()
                raise RestoreError(f"Failed to restore backup {backup_id}: {e}") from e

        logger.info("Restored schedule %s from backup %s", schedule_id, backup_id)
        return True

    async def cleanup_old_backups(self, schedule_id: int, keep_backup_id: Optional[int] = None) -> int:
        """
        Keep the newest max_backups_per_schedule backups within the retention window.

        Cleanup failures are logged, not raised: a stale backup is harmless.
        """
        cutoff = utc_now() - timedelta(days=self.retention_days)
        try:
            async with session_scope(self._session_factory) as session:
                rows = (
                    await session.exec(
                        select(ScheduleBackup)
                        .where(ScheduleBackup.schedule_id == schedule_id)
                        .order_by(ScheduleBackup.created_at.desc(), ScheduleBackup.id.desc())
                    )
                ).all()
                kept_ids = [row.id for row in rows if as_utc(row.created_at) > cutoff][: self.max_backups_per_schedule]
                if keep_backup_id is not None and keep_backup_id not in kept_ids:
                    kept_ids.append(keep_backup_id)

                removed = 0
                for row in rows:
                    if row.id not in kept_ids:
                        await session.delete(row)
                        removed += 1
        except Exception:
            logger.exception("Backup cleanup failed for schedule %s", schedule_id)
            return 0

        if removed:
            logger.info("Removed %s old backups of schedule %s", removed, schedule_id)
        return removed

    @staticmethod
    def _is_intact(row: ScheduleBackup) -> bool:
        try:
            data = serialize_snapshot(row.snapshot)
            if calculate_checksum(data) != row.checksum or len(data) != row.size:
                return False
            slots = row.snapshot["time_slots"]
            for slot in (TimeSlot.morning.value, TimeSlot.afternoon.value):
                for item in slots[slot]:
                    if not isinstance(item["player_ids"], list) or not isinstance(item["position"], int):
                        return False
            return True
        except (KeyError, TypeError, ValueError):
            return False
