"""
Schedule Manager - the single mutation authority for weekly schedules

Creation (idempotent, one schedule per week), retrieval, validation, manual edits
and regeneration. Regeneration runs a per-week state machine:

    idle -> backing_up -> generating -> replacing -> completed
                 \\             \\             \\
                  +-------------+-------------+--> failed

- backing_up: snapshot the live schedule. Failure aborts before anything is touched.
- generating: re-read availability, generate and validate a candidate.
- replacing: overwrite the foursomes of the SAME schedule record and record the new
  pairings, in one transaction.
- any failure after the backup exists restores it; a failed restore is reported as
  a double failure (restore_failed=True).

Terminal statuses are released immediately, so they never block a later attempt.

Manual edits, updates, restores and deletes claim the week in the same status store
(state "replacing") for their whole duration, so they and a regeneration of the same
week never interleave.
"""

import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Tuple

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from golf_scheduler.models._time import utc_now
from golf_scheduler.models.foursome import TimeSlot
from golf_scheduler.models.player import Player, TimePreference
from golf_scheduler.models.schedule import Schedule
from golf_scheduler.models.schedule_backup import ScheduleBackup
from golf_scheduler.models.week import Week
from golf_scheduler.services.errors import (
    InvalidEditError,
    PreconditionValidationError,
    RegenerationInProgressError,
    ScheduleGenerationError,
    ScheduleNotFoundError,
    SchedulingError,
    WeekNotFoundError,
)
from golf_scheduler.services.pairing_history import PairingHistoryTracker
from golf_scheduler.services.regeneration_status import (
    RegenerationState,
    RegenerationStatus,
    RegenerationStatusStore,
)
from golf_scheduler.services.schedule_backup import BackupMetadata, ScheduleBackupService
from golf_scheduler.services.schedule_generator import ScheduleGenerator
from golf_scheduler.services.types import FoursomeSnapshot, ScheduleSnapshot, ValidationResult, WeekContext
from golf_scheduler.utils.league_queries import (
    find_players_by_season,
    find_schedule_by_week,
    load_schedule_snapshot,
    load_week_context,
    replace_schedule_foursomes,
    set_player_availability,
    snapshot_to_rows,
)

logger = logging.getLogger(__name__)

IN_PROGRESS_MESSAGE = "Another regeneration operation is currently in progress"

# ============================================================================
# Options and Results
# ============================================================================


@dataclass
class GeneratorOverrides:
    """Per-call generator flags; None keeps the manager's generator setting"""

    prioritize_complete_groups: Optional[bool] = None
    balance_time_slots: Optional[bool] = None
    optimize_pairings: Optional[bool] = None


@dataclass
class CreateScheduleOptions(GeneratorOverrides):
    # False skips the "no available players" check; only for degenerate-input tests
    validate_preconditions: bool = True


@dataclass
class RegenerationOptions(GeneratorOverrides):
    # Logged only; a successful regeneration always replaces every foursome
    force_overwrite: bool = False
    preserve_manual_edits: bool = False


@dataclass
class ChangesDetected:
    players_added: List[int] = field(default_factory=list)
    players_removed: List[int] = field(default_factory=list)
    players_before: int = 0
    players_after: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.players_added or self.players_removed)


@dataclass
class RegenerationResult:
    success: bool
    new_schedule_id: Optional[int] = None
    backup_id: Optional[int] = None
    error: Optional[str] = None
    changes_detected: Optional[ChangesDetected] = None
    failed_step: Optional[str] = None
    restore_failed: bool = False


class EditType(str, Enum):
    move_player = "move_player"
    swap_players = "swap_players"
    add_player = "add_player"
    remove_player = "remove_player"


@dataclass
class ScheduleEditOperation:
    type: EditType
    player_id: int
    from_foursome_id: Optional[int] = None
    to_foursome_id: Optional[int] = None
    second_player_id: Optional[int] = None


@dataclass
class ScheduleConflict:
    type: str
    player_id: int
    message: str
    foursome_id: Optional[int] = None


@dataclass
class ConflictResolution:
    conflict_type: str
    player_id: int
    action: str  # an EditType value, or "regenerate"
    description: str
    target_foursome_id: Optional[int] = None


@dataclass
class ConflictReport:
    week_id: int
    conflicts: List[ScheduleConflict] = field(default_factory=list)
    resolutions: List[ConflictResolution] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


# ============================================================================
# Manager
# ============================================================================


class ScheduleManager:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        generator: Optional[ScheduleGenerator] = None,
        pairing_tracker: Optional[PairingHistoryTracker] = None,
        backup_service: Optional[ScheduleBackupService] = None,
        status_store: Optional[RegenerationStatusStore] = None,
    ):
        self._session_factory = session_factory
        self.generator = generator or ScheduleGenerator()
        self.pairing_tracker = pairing_tracker or PairingHistoryTracker(session_factory)
        self.backup_service = backup_service or ScheduleBackupService(session_factory)
        self.status_store = status_store or RegenerationStatusStore()
        # week id -> (lock, number of callers holding or awaiting it)
        self._creation_locks: Dict[int, Tuple[asyncio.Lock, int]] = {}

    # ------------------------------------------------------------------------
    # Creation and retrieval
    # ------------------------------------------------------------------------

    async def create_weekly_schedule(
        self, week_id: int, options: Optional[CreateScheduleOptions] = None
    ) -> ScheduleSnapshot:
        """
        Create the schedule of a week, or return the existing one unchanged.

        Concurrent calls for the same week are serialized so only one schedule is created.
        Raises WeekNotFoundError, PreconditionValidationError or ScheduleGenerationError.
        """
        options = options or CreateScheduleOptions()

        async with self._creation_lock(week_id):
            async with self._session_factory() as session:
                week, players = await self._load_week_and_players(session, week_id)

                existing = await find_schedule_by_week(session, week_id)
                if existing:
                    logger.info("Schedule %s already exists for week %s", existing.id, week_id)
                    return await load_schedule_snapshot(session, existing)

                available = self.generator.filter_available_players(players, week)
                if options.validate_preconditions:
                    self._check_preconditions(week, players, available)

                candidate = await self._generate_candidate(week, players, available, options)

                schedule = Schedule(week_id=week_id)
                session.add(schedule)
                await session.flush()
                await replace_schedule_foursomes(session, schedule, snapshot_to_rows(candidate))
                candidate.id = schedule.id
                await self.pairing_tracker.track_schedule_pairings(week.season_id, candidate, session=session)
                await session.commit()

                logger.info(
                    "Created schedule %s for week %s: %s players in %s foursomes",
                    schedule.id,
                    week_id,
                    candidate.total_player_count(),
                    len(candidate.all_foursomes()),
                )
                return await load_schedule_snapshot(session, schedule)

    async def get_schedule(self, week_id: int) -> Optional[ScheduleSnapshot]:
        """None means the week has no schedule yet"""
        async with self._session_factory() as session:
            schedule = await find_schedule_by_week(session, week_id)
            if not schedule:
                return None
            return await load_schedule_snapshot(session, schedule)

    async def get_schedule_history(self, season_id: int) -> List[ScheduleSnapshot]:
        """All schedules of a season, ordered by week number"""
        async with self._session_factory() as session:
            schedules = (
                await session.exec(
                    select(Schedule)
                    .join(Week, Week.id == Schedule.week_id)
                    .where(Week.season_id == season_id)
                    .order_by(Week.week_number, Schedule.id)
                )
            ).all()
            return [await load_schedule_snapshot(session, s) for s in schedules]

    async def delete_schedule(self, week_id: int) -> bool:
        """
        Delete a week's schedule with its foursomes and backups.

        Recorded pairings are kept. Returns False when the week has no schedule.
        Raises RegenerationInProgressError while the week is claimed.
        """
        async with self._claim_week(week_id, "Deleting schedule"), self._session_factory() as session:
            schedule = await find_schedule_by_week(session, week_id)
            if not schedule:
                return False
            await replace_schedule_foursomes(session, schedule, [])
            backups = (await session.exec(select(ScheduleBackup).where(ScheduleBackup.schedule_id == schedule.id))).all()
            for backup in backups:
                await session.delete(backup)
            await session.delete(schedule)
            await session.commit()

        logger.info("Deleted schedule %s of week %s (%s backups)", schedule.id, week_id, len(backups))
        return True

    async def set_player_availability(self, week_id: int, player_id: int, available: bool) -> None:
        async with self._session_factory() as session:
            week = await session.get(Week, week_id)
            if not week:
                raise WeekNotFoundError(week_id)
            player = await session.get(Player, player_id)
            if not player or player.season_id != week.season_id:
                raise LookupError(f"Player {player_id} not found in season {week.season_id}")
            await set_player_availability(session, week_id, player_id, available)
            await session.commit()
        logger.info("Player %s availability for week %s set to %s", player_id, week_id, available)

    # ------------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------------

    def validate_schedule_constraints(
        self, schedule: ScheduleSnapshot, available_players: Sequence[Player], week: Optional[WeekContext] = None
    ) -> ValidationResult:
        return self.generator.validate_schedule(schedule, available_players, week)

    async def validate_week_schedule(self, week_id: int) -> ValidationResult:
        """Check the stored schedule of a week against current availability"""
        async with self._session_factory() as session:
            week, players = await self._load_week_and_players(session, week_id)
            schedule = await self._require_schedule(session, week_id)
        available = self.generator.filter_available_players(players, week)
        return self.validate_schedule_constraints(schedule, available, week)

    async def validate_manual_edit(self, week_id: int, schedule: ScheduleSnapshot) -> ValidationResult:
        """Like validate_week_schedule for an edited copy; empty foursomes are warnings here"""
        async with self._session_factory() as session:
            week, players = await self._load_week_and_players(session, week_id)
        available = self.generator.filter_available_players(players, week)
        result = self.generator.validate_schedule(schedule, available, week, allow_empty_foursomes=True)
        if schedule.week_id != week_id:
            result.errors.append(f"Schedule belongs to week {schedule.week_id}, not week {week_id}")
            result.is_valid = False
        return result

    async def detect_conflicts(self, week_id: int, schedule: Optional[ScheduleSnapshot] = None) -> ConflictReport:
        """
        Find scheduled players who are no longer available, preference mismatches,
        duplicates and available players left out, with a suggested fix for each.
        """
        async with self._session_factory() as session:
            week, players = await self._load_week_and_players(session, week_id)
            if schedule is None:
                schedule = await self._require_schedule(session, week_id)

        report = ConflictReport(week_id=week_id)
        seen: Dict[int, int] = {}

        for foursome in schedule.all_foursomes():
            for player in foursome.players:
                if player.id in seen:
                    report.conflicts.append(
                        ScheduleConflict("duplicate_player", player.id, f"{player.full_name} is scheduled twice", foursome.id)
                    )
                    report.resolutions.append(
                        ConflictResolution(
                            "duplicate_player",
                            player.id,
                            EditType.remove_player.value,
                            f"Remove the second entry of {player.full_name}",
                        )
                    )
                    continue
                seen[player.id] = foursome.id

                if not week.is_player_available(player.id):
                    report.conflicts.append(
                        ScheduleConflict(
                            "unavailable_player",
                            player.id,
                            f"{player.full_name} is scheduled but not available",
                            foursome.id,
                        )
                    )
                    report.resolutions.append(
                        ConflictResolution(
                            "unavailable_player",
                            player.id,
                            EditType.remove_player.value,
                            f"Remove {player.full_name} from the schedule",
                        )
                    )

                wrong_slot = _required_slot(player)
                if wrong_slot is not None and wrong_slot != foursome.time_slot:
                    report.conflicts.append(
                        ScheduleConflict(
                            "preference_mismatch",
                            player.id,
                            f"{player.full_name} prefers {TimePreference(player.time_preference).value} but is in the {foursome.time_slot}",
                            foursome.id,
                        )
                    )
                    target = _open_foursome(schedule, wrong_slot)
                    report.resolutions.append(
                        _placement_resolution("preference_mismatch", player, target, EditType.move_player)
                    )

        for player in players:
            if week.is_player_available(player.id) and player.id not in seen:
                report.conflicts.append(
                    ScheduleConflict("unscheduled_player", player.id, f"{player.full_name} is available but not scheduled")
                )
                slot = _required_slot(player)
                target = _open_foursome(schedule, slot) if slot else (
                    _open_foursome(schedule, TimeSlot.morning.value) or _open_foursome(schedule, TimeSlot.afternoon.value)
                )
                report.resolutions.append(_placement_resolution("unscheduled_player", player, target, EditType.add_player))

        return report

    # ------------------------------------------------------------------------
    # Manual edits
    # ------------------------------------------------------------------------

    async def apply_manual_edit(self, week_id: int, operation: ScheduleEditOperation) -> ScheduleSnapshot:
        """
        Apply one move/swap/add/remove edit to the stored schedule.

        The schedule is backed up first. Foursomes emptied by the edit are dropped and
        positions renumbered. Pairing history is not changed by manual edits.
        Raises RegenerationInProgressError while the week is claimed.
        """
        async with self._claim_week(week_id, "Applying manual edit"):
            return await self._apply_edit(week_id, operation)

    async def _apply_edit(self, week_id: int, operation: ScheduleEditOperation) -> ScheduleSnapshot:
        async with self._session_factory() as session:
            week, players = await self._load_week_and_players(session, week_id)
            current = await self._require_schedule(session, week_id)

        edited = _copy_schedule(current)
        by_id = {f.id: f for f in edited.all_foursomes()}
        roster = {p.id: p for p in players}
        location = {pid: f for f in edited.all_foursomes() for pid in f.player_ids}

        def _foursome(foursome_id: Optional[int]) -> FoursomeSnapshot:
            if foursome_id not in by_id:
                raise InvalidEditError(f"Foursome {foursome_id} is not part of this schedule")
            return by_id[foursome_id]

        def _scheduled(player_id: int) -> FoursomeSnapshot:
            if player_id not in location:
                raise InvalidEditError(f"Player {player_id} is not in this schedule")
            return location[player_id]

        def _take(foursome: FoursomeSnapshot, player_id: int) -> Player:
            player = next(p for p in foursome.players if p.id == player_id)
            foursome.players.remove(player)
            return player

        if operation.type == EditType.move_player:
            source = _foursome(operation.from_foursome_id) if operation.from_foursome_id else _scheduled(operation.player_id)
            if operation.player_id not in source.player_ids:
                raise InvalidEditError(f"Player {operation.player_id} is not in foursome {source.id}")
            target = _foursome(operation.to_foursome_id)
            if target is source:
                raise InvalidEditError("Source and target foursome are the same")
            if target.is_full():
                raise InvalidEditError(f"Foursome {target.id} is full")
            target.players.append(_take(source, operation.player_id))

        elif operation.type == EditType.swap_players:
            if operation.second_player_id is None:
                raise InvalidEditError("Swap requires second_player_id")
            first = _scheduled(operation.player_id)
            second = _scheduled(operation.second_player_id)
            if first is second:
                raise InvalidEditError("Both players are already in the same foursome")
            a = _take(first, operation.player_id)
            b = _take(second, operation.second_player_id)
            first.players.append(b)
            second.players.append(a)

        elif operation.type == EditType.add_player:
            if operation.player_id in location:
                raise InvalidEditError(f"Player {operation.player_id} is already scheduled")
            if operation.player_id not in roster:
                raise InvalidEditError(f"Player {operation.player_id} does not belong to this season")
            target = _foursome(operation.to_foursome_id)
            if target.is_full():
                raise InvalidEditError(f"Foursome {target.id} is full")
            target.players.append(roster[operation.player_id])

        elif operation.type == EditType.remove_player:
            source = _scheduled(operation.player_id)
            _take(source, operation.player_id)

        else:
            raise InvalidEditError(f"Unknown edit type: {operation.type}")

        validation = await self.validate_manual_edit(week_id, edited)
        if not validation.is_valid:
            raise InvalidEditError("; ".join(validation.errors))

        return await self._write_schedule(week_id, current, _compact(edited), f"manual edit {operation.type.value}")

    async def update_schedule(self, week_id: int, schedule: ScheduleSnapshot) -> ScheduleSnapshot:
        """Validated full replacement of a stored schedule's foursomes"""
        async with self._claim_week(week_id, "Updating schedule"):
            async with self._session_factory() as session:
                current = await self._require_schedule(session, week_id)

            validation = await self.validate_manual_edit(week_id, schedule)
            if not validation.is_valid:
                raise InvalidEditError("; ".join(validation.errors))

            return await self._write_schedule(week_id, current, _compact(schedule), "update")

    async def _write_schedule(
        self, week_id: int, current: ScheduleSnapshot, edited: ScheduleSnapshot, reason: str
    ) -> ScheduleSnapshot:
        # Caller holds the week claim
        backup = await self.backup_service.create_backup(current)
        async with self._session_factory() as session:
            schedule = await session.get(Schedule, current.id)
            await replace_schedule_foursomes(session, schedule, snapshot_to_rows(edited), keep_ids=True)
            schedule.updated_at = utc_now()
            session.add(schedule)
            await session.commit()
            logger.info("Schedule %s of week %s changed by %s (backup %s)", schedule.id, week_id, reason, backup.id)
            return await load_schedule_snapshot(session, schedule)

    async def restore_schedule(self, schedule_id: int, backup_id: int) -> bool:
        """
        Put a schedule back to the contents of one of its backups.

        Returns False when the backup does not belong to the schedule. Raises LookupError
        for an unknown schedule, RegenerationInProgressError while its week is claimed and
        RestoreError for a corrupted backup.
        """
        async with self._session_factory() as session:
            schedule = await session.get(Schedule, schedule_id)
        if schedule is None:
            raise LookupError(f"Schedule {schedule_id} not found")

        async with self._claim_week(schedule.week_id, "Restoring from backup"):
            restored = await self.backup_service.restore_from_backup(schedule_id, backup_id)
        if restored:
            logger.info("Schedule %s of week %s restored from backup %s", schedule_id, schedule.week_id, backup_id)
        return restored

    # ------------------------------------------------------------------------
    # Regeneration
    # ------------------------------------------------------------------------

    async def regenerate_schedule(
        self, week_id: int, options: Optional[RegenerationOptions] = None
    ) -> RegenerationResult:
        """
        Replace the contents of a week's schedule with a fresh generation.

        Never raises for expected failures; branch on RegenerationResult.success.
        Call only after the user confirmed: the week is claimed on entry.
        """
        options = options or RegenerationOptions()

        # Claimed before the first await
        claim = self.status_store.try_begin(week_id, RegenerationState.backing_up, "Loading schedule")
        if claim is None:
            logger.warning("Regeneration of week %s rejected: already in progress", week_id)
            return RegenerationResult(success=False, error=IN_PROGRESS_MESSAGE, failed_step="locked")

        logger.info(
            "Regenerating schedule for week %s (force_overwrite=%s, preserve_manual_edits=%s)",
            week_id,
            options.force_overwrite,
            options.preserve_manual_edits,
        )
        failed_step = "loading"
        current: Optional[ScheduleSnapshot] = None
        backup: Optional[BackupMetadata] = None

        try:
            async with self._session_factory() as session:
                week = await load_week_context(session, week_id)
                if not week:
                    raise WeekNotFoundError(week_id)
                current = await self._require_schedule(session, week_id)

            failed_step = RegenerationState.backing_up.value
            self.status_store.advance(claim, RegenerationState.backing_up, 10, "Creating backup")
            backup = await self.backup_service.create_backup(current)

            failed_step = RegenerationState.generating.value
            self.status_store.advance(claim, RegenerationState.generating, 40, "Generating new schedule")
            async with self._session_factory() as session:
                # Availability may have changed since the schedule was created
                week, players = await self._load_week_and_players(session, week_id)
            available = self.generator.filter_available_players(players, week)
            candidate = await self._generate_candidate(week, players, available, options)

            failed_step = RegenerationState.replacing.value
            self.status_store.advance(claim, RegenerationState.replacing, 70, "Replacing schedule")
            async with self._session_factory() as session:
                schedule = await session.get(Schedule, current.id)
                if schedule is None:
                    raise ScheduleNotFoundError(week_id)
                await replace_schedule_foursomes(session, schedule, snapshot_to_rows(candidate))
                schedule.updated_at = utc_now()
                session.add(schedule)
                candidate.id = schedule.id
                await self.pairing_tracker.track_schedule_pairings(week.season_id, candidate, session=session)
                await session.commit()

            self.status_store.advance(claim, RegenerationState.completed, 100, "Completed")
            changes = _detect_changes(current, candidate)
            logger.info(
                "Regenerated schedule %s for week %s (backup %s, +%s/-%s players)",
                current.id,
                week_id,
                backup.id,
                len(changes.players_added),
                len(changes.players_removed),
            )
            return RegenerationResult(
                success=True, new_schedule_id=current.id, backup_id=backup.id, changes_detected=changes
            )

        except Exception as e:
            logger.exception("Regeneration of week %s failed during %s", week_id, failed_step)
            self.status_store.advance(claim, RegenerationState.failed, claim.progress, failed_step, error=str(e))
            return await self._recover(week_id, current, backup, failed_step, e)

        finally:
            self.status_store.release(claim)

    async def _recover(
        self,
        week_id: int,
        current: Optional[ScheduleSnapshot],
        backup: Optional[BackupMetadata],
        failed_step: str,
        error: Exception,
    ) -> RegenerationResult:
        result = RegenerationResult(
            success=False,
            new_schedule_id=current.id if current else None,
            backup_id=backup.id if backup else None,
            error=str(error),
            failed_step=failed_step,
        )
        if backup is None or current is None:
            # Nothing was touched yet
            return result

        try:
            restored = await self.backup_service.restore_from_backup(current.id, backup.id)
            restore_error = None if restored else f"backup {backup.id} not found"
        except Exception as e:
            restore_error = str(e)

        if restore_error is None:
            logger.info("Schedule %s of week %s restored from backup %s", current.id, week_id, backup.id)
            return result

        logger.critical(
            "Restore of schedule %s from backup %s failed after regeneration failure: %s",
            current.id,
            backup.id,
            restore_error,
        )
        result.restore_failed = True
        result.error = (
            f"Regeneration failed: {error}. Restore from backup {backup.id} also failed: {restore_error}. "
            f"Schedule data may be lost"
        )
        return result

    # ------------------------------------------------------------------------
    # Locks
    # ------------------------------------------------------------------------

    def is_regeneration_allowed(self, week_id: int) -> bool:
        return not self.status_store.is_active(week_id)

    def set_regeneration_lock(self, week_id: int, locked: bool) -> None:
        """Low-level lock: locked marks the week as generating, unlocked clears it"""
        if locked:
            self.status_store.force_set(week_id, RegenerationState.generating, "Locked")
            logger.info("Regeneration lock set for week %s", week_id)
        else:
            self.status_store.clear(week_id)
            logger.info("Regeneration lock cleared for week %s", week_id)

    def get_regeneration_status(self, week_id: int) -> Optional[RegenerationStatus]:
        return self.status_store.get(week_id)

    def force_release_regeneration_lock(self, week_id: int) -> bool:
        released = self.status_store.clear(week_id)
        if released:
            logger.warning("Force-released regeneration lock for week %s", week_id)
        return released

    def force_cleanup_all_regeneration_statuses(self) -> int:
        active = self.status_store.active_week_ids()
        cleared = self.status_store.clear_all()
        if active:
            logger.warning("Force-cleared regeneration statuses of weeks %s", active)
        return cleared

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    @asynccontextmanager
    async def _claim_week(self, week_id: int, step: str) -> AsyncIterator[RegenerationStatus]:
        """Hold the week in the status store for a non-regeneration write"""
        claim = self.status_store.try_begin(week_id, RegenerationState.replacing, step)
        if claim is None:
            raise RegenerationInProgressError(week_id)
        try:
            yield claim
        finally:
            self.status_store.release(claim)

    @asynccontextmanager
    async def _creation_lock(self, week_id: int) -> AsyncIterator[None]:
        """Per-week creation lock, dropped once no caller holds or awaits it"""
        lock, users = self._creation_locks.get(week_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._creation_locks[week_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._creation_locks[week_id]
            if users == 1:
                del self._creation_locks[week_id]
            else:
                self._creation_locks[week_id] = (lock, users - 1)

    async def _load_week_and_players(self, session: AsyncSession, week_id: int) -> Tuple[WeekContext, List[Player]]:
        week = await load_week_context(session, week_id)
        if not week:
            raise WeekNotFoundError(week_id)
        return week, await find_players_by_season(session, week.season_id)

    async def _require_schedule(self, session: AsyncSession, week_id: int) -> ScheduleSnapshot:
        schedule = await find_schedule_by_week(session, week_id)
        if not schedule:
            raise ScheduleNotFoundError(week_id)
        return await load_schedule_snapshot(session, schedule)

    def _check_preconditions(self, week: WeekContext, players: Sequence[Player], available: Sequence[Player]) -> None:
        errors = []
        if players and not available:
            errors.append(f"No available players for week {week.week_number} ({len(players)} players in season)")
        if errors:
            raise PreconditionValidationError(errors)

    def _generator_for(self, overrides: GeneratorOverrides) -> ScheduleGenerator:
        flags = {
            name: getattr(overrides, name)
            for name in ("prioritize_complete_groups", "balance_time_slots", "optimize_pairings")
            if getattr(overrides, name) is not None
        }
        if not flags:
            return self.generator
        generator = copy.copy(self.generator)
        generator.options = replace(self.generator.options, **flags)
        return generator

    async def _generate_candidate(
        self,
        week: WeekContext,
        players: Sequence[Player],
        available: Sequence[Player],
        overrides: GeneratorOverrides,
    ) -> ScheduleSnapshot:
        generator = self._generator_for(overrides)
        pairing_counts = await self.pairing_tracker.get_pairing_matrix(week.season_id, [p.id for p in available])

        try:
            candidate = generator.generate_schedule_for_week(week, players, pairing_counts)
        except SchedulingError:
            raise
        except Exception as e:
            raise ScheduleGenerationError(f"Schedule generation failed: {e}") from e

        validation = generator.validate_schedule(candidate, available, week)
        if not validation.is_valid:
            raise ScheduleGenerationError(f"Generated schedule failed validation: {'; '.join(validation.errors)}")
        return candidate


# ============================================================================
# Helpers
# ============================================================================


def _copy_schedule(schedule: ScheduleSnapshot) -> ScheduleSnapshot:
    def _copy(f: FoursomeSnapshot) -> FoursomeSnapshot:
        return FoursomeSnapshot(time_slot=f.time_slot, position=f.position, players=list(f.players), id=f.id)

    return replace(
        schedule,
        morning=[_copy(f) for f in schedule.morning],
        afternoon=[_copy(f) for f in schedule.afternoon],
    )


def _compact(schedule: ScheduleSnapshot) -> ScheduleSnapshot:
    """Drop empty foursomes and renumber positions from 0 within each slot"""

    def _bucket(foursomes: List[FoursomeSnapshot], slot: TimeSlot) -> List[FoursomeSnapshot]:
        kept = [f for f in foursomes if f.players]
        return [
            FoursomeSnapshot(time_slot=slot.value, position=i, players=list(f.players), id=f.id)
            for i, f in enumerate(kept)
        ]

    return replace(
        schedule,
        morning=_bucket(schedule.morning, TimeSlot.morning),
        afternoon=_bucket(schedule.afternoon, TimeSlot.afternoon),
    )


def _detect_changes(before: ScheduleSnapshot, after: ScheduleSnapshot) -> ChangesDetected:
    old_ids = set(before.all_player_ids())
    new_ids = set(after.all_player_ids())
    return ChangesDetected(
        players_added=sorted(new_ids - old_ids),
        players_removed=sorted(old_ids - new_ids),
        players_before=len(old_ids),
        players_after=len(new_ids),
    )


def _required_slot(player: Player) -> Optional[str]:
    if player.time_preference == TimePreference.AM:
        return TimeSlot.morning.value
    if player.time_preference == TimePreference.PM:
        return TimeSlot.afternoon.value
    return None


def _open_foursome(schedule: ScheduleSnapshot, time_slot: str) -> Optional[FoursomeSnapshot]:
    bucket = schedule.morning if time_slot == TimeSlot.morning.value else schedule.afternoon
    return next((f for f in bucket if not f.is_full()), None)


def _placement_resolution(
    conflict_type: str, player: Player, target: Optional[FoursomeSnapshot], action: EditType
) -> ConflictResolution:
    if target is None:
        return ConflictResolution(
            conflict_type, player.id, "regenerate", f"No open foursome fits {player.full_name}; regenerate the schedule"
        )
    return ConflictResolution(
        conflict_type,
        player.id,
        action.value,
        f"Place {player.full_name} in {target.time_slot} foursome {target.position + 1}",
        target_foursome_id=target.id,
    )
