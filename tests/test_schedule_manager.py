"""
Tests for the Schedule Manager

Tests must prove:
1. Creation is idempotent and serialized per week
2. Generated schedules respect availability, preferences and never double-book
3. Regeneration replaces contents in place, and restores the original on failure
4. Concurrent regeneration of one week is rejected; different weeks run independently
5. Lock escape hatches and manual edits behave as documented
6. History-aware grouping spreads pairings more evenly than naive grouping
"""

import asyncio
from collections import Counter

import pytest
from sqlmodel import select

from golf_scheduler.models.foursome import Foursome
from golf_scheduler.models.schedule import Schedule
from golf_scheduler.services.errors import (
    BackupError,
    InvalidEditError,
    PreconditionValidationError,
    RegenerationInProgressError,
    RestoreError,
    ScheduleGenerationError,
    ScheduleNotFoundError,
    WeekNotFoundError,
)
from golf_scheduler.services.pairing_history import PairingHistoryTracker
from golf_scheduler.services.regeneration_status import RegenerationState
from golf_scheduler.services.schedule_backup import ScheduleBackupService
from golf_scheduler.services.schedule_generator import ScheduleGenerator
from golf_scheduler.services.schedule_manager import (
    IN_PROGRESS_MESSAGE,
    CreateScheduleOptions,
    EditType,
    ScheduleEditOperation,
    ScheduleManager,
)
from golf_scheduler.utils.league_queries import get_available_player_ids

MIXED = ["AM", "PM", "Either", "AM", "PM", "Either", "AM", "Either", "PM", "AM", "Either", "PM", "AM", "Either"]


class FailingGenerator(ScheduleGenerator):
    def generate_schedule(self, week_id, available_players, pairing_counts=None):
        raise ScheduleGenerationError("Generator exploded")


class FailingBackupService(ScheduleBackupService):
    async def create_backup(self, schedule):
        raise BackupError("Failed to create backup: disk full")


class BrokenRestoreBackupService(ScheduleBackupService):
    async def restore_from_backup(self, schedule_id, backup_id):
        raise RestoreError("Failed to restore backup: storage offline")


class GatedBackupService(ScheduleBackupService):
    """Holds every backup until the gate opens, so a test can act mid-write"""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def create_backup(self, schedule):
        self.entered.set()
        await self.gate.wait()
        return await super().create_backup(schedule)


class ExplodingPairingTracker(PairingHistoryTracker):
    """Records pairings, then fails once armed"""

    armed = False

    async def track_schedule_pairings(self, season_id, schedule, session=None):
        await super().track_schedule_pairings(season_id, schedule, session=session)
        if self.armed:
            raise RuntimeError("Pairing store unavailable")


# ============================================================================
# Creation
# ============================================================================


@pytest.mark.asyncio
async def test_create_is_idempotent(manager, session_factory, seed):
    league = await seed(MIXED)

    first = await manager.create_weekly_schedule(league.week_ids[0])
    second = await manager.create_weekly_schedule(league.week_ids[0])

    assert first.id == second.id
    assert first.membership() == second.membership()
    async with session_factory() as session:
        rows = (await session.exec(select(Foursome).where(Foursome.schedule_id == first.id))).all()
    assert len(rows) == len(first.all_foursomes())


@pytest.mark.asyncio
async def test_concurrent_create_makes_one_schedule(manager, session_factory, seed):
    league = await seed(MIXED)
    week_id = league.week_ids[0]

    results = await asyncio.gather(*(manager.create_weekly_schedule(week_id) for _ in range(3)))

    assert len({s.id for s in results}) == 1
    assert manager._creation_locks == {}
    async with session_factory() as session:
        schedules = (await session.exec(select(Schedule).where(Schedule.week_id == week_id))).all()
    assert len(schedules) == 1


@pytest.mark.asyncio
async def test_only_available_players_are_scheduled(manager, seed):
    # Index 2 is undecided (no availability row); 5 and 6 too
    league = await seed(["AM", "PM", "AM", "Either", "PM", "AM", "AM"], available=[0, 1, 3, 4])

    schedule = await manager.create_weekly_schedule(league.week_ids[0])

    expected = {league.player_ids[i] for i in (0, 1, 3, 4)}
    assert set(schedule.all_player_ids()) == expected


@pytest.mark.asyncio
async def test_available_player_ids_follow_availability_updates(manager, session_factory, seed):
    league = await seed(["AM", "PM", "Either"], available=[0, 1])
    week_id = league.week_ids[0]

    await manager.set_player_availability(week_id, league.player_ids[0], False)
    await manager.set_player_availability(week_id, league.player_ids[2], True)

    async with session_factory() as session:
        assert await get_available_player_ids(session, week_id) == league.player_ids[1:]


@pytest.mark.asyncio
async def test_no_double_booking_and_preferences_hold(manager, seed):
    league = await seed(MIXED)

    schedule = await manager.create_weekly_schedule(league.week_ids[0])

    ids = [pid for f in schedule.all_foursomes() for pid in f.player_ids]
    assert len(ids) == len(set(ids)) == len(MIXED)
    for foursome in schedule.morning:
        assert all(p.time_preference in ("AM", "Either") for p in foursome.players)
    for foursome in schedule.afternoon:
        assert all(p.time_preference in ("PM", "Either") for p in foursome.players)
    for foursome in schedule.all_foursomes():
        assert 1 <= len(foursome.players) <= 4


@pytest.mark.asyncio
async def test_six_player_capacity_scenario(manager, seed):
    league = await seed(["AM", "AM", "PM", "PM", "Either", "Either"])

    schedule = await manager.create_weekly_schedule(league.week_ids[0])

    assert len(schedule.all_foursomes()) >= 1
    assert 4 <= schedule.total_player_count() <= 6


@pytest.mark.asyncio
async def test_no_available_players_fails_precondition(manager, seed):
    league = await seed(["AM", "PM", "Either"], available=[])

    with pytest.raises(PreconditionValidationError, match="^Precondition validation failed"):
        await manager.create_weekly_schedule(league.week_ids[0])
    assert await manager.get_schedule(league.week_ids[0]) is None


@pytest.mark.asyncio
async def test_preconditions_can_be_skipped(manager, seed):
    league = await seed(["AM", "PM"], available=[])

    schedule = await manager.create_weekly_schedule(
        league.week_ids[0], CreateScheduleOptions(validate_preconditions=False)
    )

    assert schedule.id is not None
    assert schedule.all_foursomes() == []


@pytest.mark.asyncio
async def test_empty_player_pool_gives_empty_schedule(manager, seed):
    league = await seed([])

    schedule = await manager.create_weekly_schedule(league.week_ids[0])

    assert schedule.all_foursomes() == []


@pytest.mark.asyncio
async def test_unknown_week_raises(manager):
    with pytest.raises(WeekNotFoundError):
        await manager.create_weekly_schedule(424242)


@pytest.mark.asyncio
async def test_get_schedule_is_none_before_creation(manager, seed):
    league = await seed(["AM"])
    assert await manager.get_schedule(league.week_ids[0]) is None


@pytest.mark.asyncio
async def test_creation_records_pairings(manager, seed):
    league = await seed(["AM"] * 5)

    schedule = await manager.create_weekly_schedule(league.week_ids[0])

    first = schedule.morning[0].player_ids
    assert await manager.pairing_tracker.get_pairing_count(league.season_id, first[0], first[1]) == 1
    partners = await manager.pairing_tracker.get_all_pairings_for_player(league.season_id, first[0])
    assert len(partners) == len(first) - 1


@pytest.mark.asyncio
async def test_schedule_history_is_ordered_by_week(manager, seed):
    league = await seed(["AM"] * 4, weeks=3)
    for week_id in reversed(league.week_ids):
        await manager.create_weekly_schedule(week_id)

    history = await manager.get_schedule_history(league.season_id)

    assert [s.week_id for s in history] == league.week_ids


@pytest.mark.asyncio
async def test_delete_schedule(manager, seed):
    league = await seed(["AM"] * 4)
    schedule = await manager.create_weekly_schedule(league.week_ids[0])
    await manager.backup_service.create_backup(schedule)

    assert await manager.delete_schedule(league.week_ids[0]) is True
    assert await manager.get_schedule(league.week_ids[0]) is None
    assert await manager.backup_service.list_backups(schedule_id=schedule.id) == []
    assert await manager.delete_schedule(league.week_ids[0]) is False


# ============================================================================
# Regeneration
# ============================================================================


@pytest.mark.asyncio
async def test_regeneration_keeps_schedule_id(manager, seed):
    league = await seed(MIXED)
    original = await manager.create_weekly_schedule(league.week_ids[0])

    result = await manager.regenerate_schedule(league.week_ids[0])

    assert result.success, result.error
    assert result.new_schedule_id == original.id
    assert result.backup_id is not None
    regenerated = await manager.get_schedule(league.week_ids[0])
    assert regenerated.id == original.id
    assert sorted(regenerated.all_player_ids()) == sorted(original.all_player_ids())
    assert manager.get_regeneration_status(league.week_ids[0]) is None
    assert manager.is_regeneration_allowed(league.week_ids[0])


@pytest.mark.asyncio
async def test_regeneration_picks_up_availability_changes(manager, seed):
    league = await seed(["AM"] * 6, available=range(5))
    week_id = league.week_ids[0]
    await manager.create_weekly_schedule(week_id)
    dropped, added = league.player_ids[0], league.player_ids[5]

    await manager.set_player_availability(week_id, dropped, False)
    await manager.set_player_availability(week_id, added, True)
    result = await manager.regenerate_schedule(week_id)

    assert result.success, result.error
    assert result.changes_detected.players_removed == [dropped]
    assert result.changes_detected.players_added == [added]
    assert result.changes_detected.players_before == 5
    assert result.changes_detected.players_after == 5
    assert dropped not in (await manager.get_schedule(week_id)).all_player_ids()


@pytest.mark.asyncio
async def test_regeneration_records_new_pairings(manager, seed):
    league = await seed(["AM"] * 4)
    a, b = league.player_ids[:2]
    await manager.create_weekly_schedule(league.week_ids[0])

    await manager.regenerate_schedule(league.week_ids[0])

    assert await manager.pairing_tracker.get_pairing_count(league.season_id, a, b) == 2


@pytest.mark.asyncio
async def test_generation_failure_restores_original(manager, seed):
    league = await seed(MIXED)
    week_id = league.week_ids[0]
    original = await manager.create_weekly_schedule(week_id)
    manager.generator = FailingGenerator()

    result = await manager.regenerate_schedule(week_id)

    assert not result.success
    assert "Generator exploded" in result.error
    assert result.failed_step == "generating"
    assert result.restore_failed is False
    after = await manager.get_schedule(week_id)
    assert after.id == original.id
    assert after.membership() == original.membership()
    assert [f.id for f in after.all_foursomes()] == [f.id for f in original.all_foursomes()]
    assert manager.is_regeneration_allowed(week_id)


@pytest.mark.asyncio
async def test_backup_failure_aborts_before_touching_schedule(session_factory, seed):
    manager = ScheduleManager(session_factory, backup_service=FailingBackupService(session_factory))
    league = await seed(MIXED)
    week_id = league.week_ids[0]
    original = await manager.create_weekly_schedule(week_id)

    result = await manager.regenerate_schedule(week_id)

    assert not result.success
    assert result.failed_step == "backing_up"
    assert "disk full" in result.error
    after = await manager.get_schedule(week_id)
    assert after.membership() == original.membership()
    assert after.updated_at == original.updated_at
    assert manager.is_regeneration_allowed(week_id)


@pytest.mark.asyncio
async def test_restore_failure_is_reported_as_double_failure(session_factory, seed):
    manager = ScheduleManager(
        session_factory,
        generator=FailingGenerator(),
        backup_service=BrokenRestoreBackupService(session_factory),
    )
    manager_ok = ScheduleManager(session_factory)
    league = await seed(MIXED)
    await manager_ok.create_weekly_schedule(league.week_ids[0])

    result = await manager.regenerate_schedule(league.week_ids[0])

    assert not result.success
    assert result.restore_failed is True
    assert "Generator exploded" in result.error
    assert "storage offline" in result.error
    assert manager.is_regeneration_allowed(league.week_ids[0])


@pytest.mark.asyncio
async def test_failure_while_replacing_restores_original_and_pairings(session_factory, seed):
    league = await seed(["AM"] * 8)
    week_id = league.week_ids[0]
    tracker = ExplodingPairingTracker(session_factory)
    manager = ScheduleManager(session_factory, pairing_tracker=tracker)
    original = await manager.create_weekly_schedule(week_id)
    pairings_before = await tracker.get_pairing_matrix(league.season_id, league.player_ids)

    tracker.armed = True
    result = await manager.regenerate_schedule(week_id)

    assert not result.success
    assert result.failed_step == "replacing"
    assert result.restore_failed is False
    assert "Pairing store unavailable" in result.error
    after = await manager.get_schedule(week_id)
    assert after.id == original.id
    assert after.membership() == original.membership()
    assert await tracker.get_pairing_matrix(league.season_id, league.player_ids) == pairings_before
    assert manager.is_regeneration_allowed(week_id)


@pytest.mark.asyncio
async def test_regenerate_without_schedule_fails(manager, seed):
    league = await seed(["AM"] * 4)

    result = await manager.regenerate_schedule(league.week_ids[0])

    assert not result.success
    assert result.failed_step == "loading"
    assert "Schedule not found" in result.error
    assert result.backup_id is None


@pytest.mark.asyncio
async def test_concurrent_regeneration_same_week(manager, seed):
    league = await seed(MIXED)
    week_id = league.week_ids[0]
    await manager.create_weekly_schedule(week_id)

    results = await asyncio.gather(manager.regenerate_schedule(week_id), manager.regenerate_schedule(week_id))

    assert sorted(r.success for r in results) == [False, True]
    failure = next(r for r in results if not r.success)
    assert failure.error == IN_PROGRESS_MESSAGE
    assert manager.is_regeneration_allowed(week_id)


@pytest.mark.asyncio
async def test_concurrent_regeneration_different_weeks(manager, seed):
    league = await seed(MIXED, weeks=2)
    for week_id in league.week_ids:
        await manager.create_weekly_schedule(week_id)

    results = await asyncio.gather(*(manager.regenerate_schedule(w) for w in league.week_ids))

    assert all(r.success for r in results), [r.error for r in results]


@pytest.mark.asyncio
async def test_regeneration_is_rejected_while_an_edit_is_writing(session_factory, seed):
    backups = GatedBackupService(session_factory)
    manager = ScheduleManager(session_factory, backup_service=backups)
    league = await seed(["AM"] * 8)
    week_id = league.week_ids[0]
    schedule = await manager.create_weekly_schedule(week_id)
    removed = schedule.morning[0].player_ids[0]

    edit = asyncio.create_task(
        manager.apply_manual_edit(week_id, ScheduleEditOperation(type=EditType.remove_player, player_id=removed))
    )
    await backups.entered.wait()

    blocked = await manager.regenerate_schedule(week_id)
    assert not blocked.success
    assert blocked.failed_step == "locked"
    assert not manager.is_regeneration_allowed(week_id)

    backups.gate.set()
    edited = await edit
    assert removed not in edited.all_player_ids()
    assert manager.is_regeneration_allowed(week_id)

    # The edit is the baseline of the next regeneration, not a write racing it
    result = await manager.regenerate_schedule(week_id)
    assert result.success, result.error
    assert result.changes_detected.players_added == [removed]
    assert (await manager.get_schedule(week_id)).total_player_count() == 8


@pytest.mark.asyncio
async def test_writes_are_rejected_while_regeneration_runs(session_factory, seed):
    backups = GatedBackupService(session_factory)
    manager = ScheduleManager(session_factory, backup_service=backups)
    league = await seed(["AM"] * 8)
    week_id = league.week_ids[0]
    schedule = await manager.create_weekly_schedule(week_id)
    backups.gate.set()
    earlier = await backups.create_backup(schedule)
    backups.gate.clear()
    backups.entered.clear()

    regeneration = asyncio.create_task(manager.regenerate_schedule(week_id))
    await backups.entered.wait()

    with pytest.raises(RegenerationInProgressError):
        await manager.apply_manual_edit(
            week_id, ScheduleEditOperation(type=EditType.remove_player, player_id=schedule.all_player_ids()[0])
        )
    with pytest.raises(RegenerationInProgressError):
        await manager.update_schedule(week_id, schedule)
    with pytest.raises(RegenerationInProgressError):
        await manager.restore_schedule(schedule.id, earlier.id)
    with pytest.raises(RegenerationInProgressError):
        await manager.delete_schedule(week_id)

    backups.gate.set()
    result = await regeneration
    assert result.success, result.error
    assert (await manager.get_schedule(week_id)).total_player_count() == 8


@pytest.mark.asyncio
async def test_restore_schedule_through_manager(manager, seed):
    league = await seed(["AM"] * 6)
    week_id = league.week_ids[0]
    original = await manager.create_weekly_schedule(week_id)
    backup = await manager.backup_service.create_backup(original)
    await manager.apply_manual_edit(
        week_id, ScheduleEditOperation(type=EditType.remove_player, player_id=original.all_player_ids()[0])
    )

    assert await manager.restore_schedule(original.id, backup.id) is True
    assert (await manager.get_schedule(week_id)).membership() == original.membership()
    assert await manager.restore_schedule(original.id, 9999) is False
    assert manager.is_regeneration_allowed(week_id)
    with pytest.raises(LookupError):
        await manager.restore_schedule(9999, backup.id)


@pytest.mark.asyncio
async def test_regeneration_lock_controls(manager, seed):
    league = await seed(["AM"] * 4, weeks=2)
    week_id, other_week = league.week_ids
    await manager.create_weekly_schedule(week_id)

    manager.set_regeneration_lock(week_id, True)
    assert not manager.is_regeneration_allowed(week_id)
    assert manager.get_regeneration_status(week_id).status == RegenerationState.generating
    assert manager.is_regeneration_allowed(other_week)

    blocked = await manager.regenerate_schedule(week_id)
    assert not blocked.success
    assert blocked.error == IN_PROGRESS_MESSAGE

    manager.set_regeneration_lock(week_id, False)
    assert manager.is_regeneration_allowed(week_id)
    assert (await manager.regenerate_schedule(week_id)).success


@pytest.mark.asyncio
async def test_force_release_and_cleanup(manager):
    manager.set_regeneration_lock(1, True)
    manager.set_regeneration_lock(2, True)
    manager.set_regeneration_lock(3, True)

    assert manager.force_release_regeneration_lock(1) is True
    assert manager.force_release_regeneration_lock(1) is False
    assert manager.force_cleanup_all_regeneration_statuses() == 2
    assert all(manager.is_regeneration_allowed(w) for w in (1, 2, 3))


@pytest.mark.asyncio
async def test_fairness_beats_naive_grouping(session_factory, seed):
    weeks = 4
    optimized_league = await seed(["AM"] * 8, weeks=weeks)
    naive_league = await seed(["AM"] * 8, weeks=weeks)
    manager = ScheduleManager(session_factory)

    for week_id in optimized_league.week_ids:
        await manager.create_weekly_schedule(week_id)
    for week_id in naive_league.week_ids:
        await manager.create_weekly_schedule(week_id, CreateScheduleOptions(optimize_pairings=False))

    async def max_pair_count(league):
        matrix = await manager.pairing_tracker.get_pairing_matrix(league.season_id, league.player_ids)
        return max(matrix.values())

    naive_max = await max_pair_count(naive_league)
    optimized_max = await max_pair_count(optimized_league)
    assert naive_max == weeks
    assert optimized_max < naive_max


# ============================================================================
# Validation, conflicts and manual edits
# ============================================================================


@pytest.mark.asyncio
async def test_validate_week_schedule_sees_availability_changes(manager, seed):
    league = await seed(["AM"] * 5)
    week_id = league.week_ids[0]
    await manager.create_weekly_schedule(week_id)
    assert (await manager.validate_week_schedule(week_id)).is_valid

    await manager.set_player_availability(week_id, league.player_ids[0], False)
    result = await manager.validate_week_schedule(week_id)

    assert not result.is_valid
    assert any("not in available players" in e for e in result.errors)


@pytest.mark.asyncio
async def test_validate_schedule_constraints_on_stored_schedule(manager, seed):
    league = await seed(MIXED)
    schedule = await manager.create_weekly_schedule(league.week_ids[0])
    players = [p for f in schedule.all_foursomes() for p in f.players]

    result = manager.validate_schedule_constraints(schedule, players)

    assert result.is_valid, result.errors


@pytest.mark.asyncio
async def test_detect_conflicts_suggests_fixes(manager, seed):
    league = await seed(["AM"] * 6, available=range(5))
    week_id = league.week_ids[0]
    await manager.create_weekly_schedule(week_id)
    gone, newcomer = league.player_ids[0], league.player_ids[5]
    await manager.set_player_availability(week_id, gone, False)
    await manager.set_player_availability(week_id, newcomer, True)

    report = await manager.detect_conflicts(week_id)

    types = Counter((c.type, c.player_id) for c in report.conflicts)
    assert types == Counter({("unavailable_player", gone): 1, ("unscheduled_player", newcomer): 1})
    actions = {r.player_id: r.action for r in report.resolutions}
    assert actions[gone] == EditType.remove_player.value
    assert actions[newcomer] == EditType.add_player.value


async def six_am_schedule(manager, seed, extra=()):
    """6 AM players -> morning foursomes of 4 and 2"""
    league = await seed(["AM"] * 6 + list(extra), available=range(6))
    schedule = await manager.create_weekly_schedule(league.week_ids[0])
    full, partial = schedule.morning
    assert (len(full.players), len(partial.players)) == (4, 2)
    return league, schedule, full, partial


@pytest.mark.asyncio
async def test_move_player(manager, seed):
    league, schedule, full, partial = await six_am_schedule(manager, seed)
    mover = full.player_ids[0]

    edited = await manager.apply_manual_edit(
        league.week_ids[0],
        ScheduleEditOperation(
            type=EditType.move_player, player_id=mover, from_foursome_id=full.id, to_foursome_id=partial.id
        ),
    )

    by_id = {f.id: f for f in edited.all_foursomes()}
    assert mover in by_id[partial.id].player_ids
    assert len(by_id[full.id].players) == 3
    assert edited.id == schedule.id
    assert len(await manager.backup_service.list_backups(schedule_id=schedule.id)) == 1


@pytest.mark.asyncio
async def test_move_into_full_foursome_is_rejected(manager, seed):
    league, _, full, partial = await six_am_schedule(manager, seed)

    with pytest.raises(InvalidEditError, match="full"):
        await manager.apply_manual_edit(
            league.week_ids[0],
            ScheduleEditOperation(type=EditType.move_player, player_id=partial.player_ids[0], to_foursome_id=full.id),
        )


@pytest.mark.asyncio
async def test_swap_players(manager, seed):
    league, _, full, partial = await six_am_schedule(manager, seed)
    a, b = full.player_ids[0], partial.player_ids[0]

    edited = await manager.apply_manual_edit(
        league.week_ids[0], ScheduleEditOperation(type=EditType.swap_players, player_id=a, second_player_id=b)
    )

    by_id = {f.id: f for f in edited.all_foursomes()}
    assert b in by_id[full.id].player_ids
    assert a in by_id[partial.id].player_ids


@pytest.mark.asyncio
async def test_add_player_requires_availability(manager, seed):
    league, _, _, partial = await six_am_schedule(manager, seed, extra=["AM"])
    week_id = league.week_ids[0]
    newcomer = league.player_ids[6]
    operation = ScheduleEditOperation(type=EditType.add_player, player_id=newcomer, to_foursome_id=partial.id)

    with pytest.raises(InvalidEditError, match="no availability data"):
        await manager.apply_manual_edit(week_id, operation)

    await manager.set_player_availability(week_id, newcomer, True)
    edited = await manager.apply_manual_edit(week_id, operation)

    assert newcomer in {f.id: f for f in edited.all_foursomes()}[partial.id].player_ids


@pytest.mark.asyncio
async def test_remove_players_drops_emptied_foursome(manager, seed):
    league, _, full, partial = await six_am_schedule(manager, seed)
    week_id = league.week_ids[0]

    for player_id in partial.player_ids:
        edited = await manager.apply_manual_edit(
            week_id, ScheduleEditOperation(type=EditType.remove_player, player_id=player_id)
        )

    assert [f.id for f in edited.morning] == [full.id]
    assert edited.morning[0].position == 0
    assert edited.total_player_count() == 4


@pytest.mark.asyncio
async def test_edit_violating_preference_is_rejected(manager, seed):
    league = await seed(["AM", "AM", "PM", "PM"])
    week_id = league.week_ids[0]
    schedule = await manager.create_weekly_schedule(week_id)
    am_player = schedule.morning[0].player_ids[0]

    with pytest.raises(InvalidEditError, match="AM preference"):
        await manager.apply_manual_edit(
            week_id,
            ScheduleEditOperation(
                type=EditType.move_player, player_id=am_player, to_foursome_id=schedule.afternoon[0].id
            ),
        )
    assert (await manager.get_schedule(week_id)).membership() == schedule.membership()


@pytest.mark.asyncio
async def test_edit_unknown_player_is_rejected(manager, seed):
    league, _, _, _ = await six_am_schedule(manager, seed)

    with pytest.raises(InvalidEditError, match="not in this schedule"):
        await manager.apply_manual_edit(
            league.week_ids[0], ScheduleEditOperation(type=EditType.remove_player, player_id=98765)
        )


@pytest.mark.asyncio
async def test_edits_blocked_during_regeneration(manager, seed):
    league, _, full, _ = await six_am_schedule(manager, seed)
    week_id = league.week_ids[0]
    manager.set_regeneration_lock(week_id, True)

    with pytest.raises(RegenerationInProgressError):
        await manager.apply_manual_edit(
            week_id, ScheduleEditOperation(type=EditType.remove_player, player_id=full.player_ids[0])
        )
    with pytest.raises(RegenerationInProgressError):
        await manager.delete_schedule(week_id)


@pytest.mark.asyncio
async def test_update_schedule_validates(manager, seed):
    league = await seed(["AM", "AM", "PM", "PM"])
    week_id = league.week_ids[0]
    schedule = await manager.create_weekly_schedule(week_id)
    schedule.morning[0].players.extend(schedule.afternoon[0].players)
    schedule.afternoon = []

    with pytest.raises(InvalidEditError, match="PM preference"):
        await manager.update_schedule(week_id, schedule)


@pytest.mark.asyncio
async def test_update_schedule_requires_existing_schedule(manager, seed):
    league = await seed(["AM"])
    with pytest.raises(ScheduleNotFoundError):
        await manager.update_schedule(league.week_ids[0], None)
