"""
Read/write helpers for the league records the scheduling core consumes:
players by season, weeks with their availability, and stored schedules.
"""
from typing import Dict, List, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from golf_scheduler.models._time import as_utc
from golf_scheduler.models.foursome import Foursome, TimeSlot
from golf_scheduler.models.player import Player
from golf_scheduler.models.schedule import Schedule
from golf_scheduler.models.week import Week, WeekAvailability
from golf_scheduler.services.types import FoursomeSnapshot, ScheduleSnapshot, WeekContext


async def find_players_by_season(session: AsyncSession, season_id: int) -> List[Player]:
    return list((await session.exec(select(Player).where(Player.season_id == season_id).order_by(Player.id))).all())


async def find_players_by_ids(session: AsyncSession, player_ids: List[int]) -> Dict[int, Player]:
    if not player_ids:
        return {}
    players = (await session.exec(select(Player).where(Player.id.in_(player_ids)))).all()
    return {p.id: p for p in players}


async def get_week_availability(session: AsyncSession, week_id: int) -> Dict[int, bool]:
    rows = (await session.exec(select(WeekAvailability).where(WeekAvailability.week_id == week_id))).all()
    return {row.player_id: bool(row.is_available) for row in rows}


async def load_week_context(session: AsyncSession, week_id: int) -> Optional[WeekContext]:
    week = await session.get(Week, week_id)
    if not week:
        return None
    return WeekContext(
        id=week.id,
        season_id=week.season_id,
        week_number=week.week_number,
        week_date=week.week_date,
        availability=await get_week_availability(session, week_id),
    )


async def get_available_player_ids(session: AsyncSession, week_id: int) -> List[int]:
    rows = (
        await session.exec(
            select(WeekAvailability.player_id)
            .where(WeekAvailability.week_id == week_id, WeekAvailability.is_available == True)  # noqa: E712
            .order_by(WeekAvailability.player_id)
        )
    ).all()
    return list(rows)


async def set_player_availability(session: AsyncSession, week_id: int, player_id: int, available: bool) -> WeekAvailability:
    """Upsert one availability row (caller commits)"""
    row = (
        await session.exec(
            select(WeekAvailability).where(WeekAvailability.week_id == week_id, WeekAvailability.player_id == player_id)
        )
    ).first()
    if row is None:
        row = WeekAvailability(week_id=week_id, player_id=player_id, is_available=available)
    else:
        row.is_available = available
    session.add(row)
    await session.flush()
    return row


async def find_schedule_by_week(session: AsyncSession, week_id: int) -> Optional[Schedule]:
    return (await session.exec(select(Schedule).where(Schedule.week_id == week_id).order_by(Schedule.id))).first()


async def load_schedule_snapshot(session: AsyncSession, schedule: Schedule) -> ScheduleSnapshot:
    """Resolve a stored schedule and its foursomes into a detached snapshot"""
    foursomes = (
        await session.exec(
            select(Foursome).where(Foursome.schedule_id == schedule.id).order_by(Foursome.time_slot, Foursome.position)
        )
    ).all()
    all_ids = [pid for f in foursomes for pid in f.player_ids]
    players = await find_players_by_ids(session, all_ids)

    snapshot = ScheduleSnapshot(
        id=schedule.id,
        week_id=schedule.week_id,
        created_at=as_utc(schedule.created_at),
        updated_at=as_utc(schedule.updated_at),
    )
    for row in foursomes:
        missing = [pid for pid in row.player_ids if pid not in players]
        if missing:
            raise LookupError(f"Foursome {row.id} references unknown players: {missing}")
        item = FoursomeSnapshot(
            id=row.id,
            time_slot=row.time_slot,
            position=row.position,
            players=[players[pid] for pid in row.player_ids],
        )
        if row.time_slot == TimeSlot.morning:
            snapshot.morning.append(item)
        else:
            snapshot.afternoon.append(item)
    return snapshot


async def replace_schedule_foursomes(
    session: AsyncSession, schedule: Schedule, foursomes: List[Dict], keep_ids: bool = False
) -> None:
    """
    Replace every foursome of a schedule (caller commits).

    Each item is {"time_slot", "position", "player_ids"} plus "id" when keep_ids is set
    (restore from backup reinstates the original foursome ids).
    """
    existing = (await session.exec(select(Foursome).where(Foursome.schedule_id == schedule.id))).all()
    for row in existing:
        await session.delete(row)
    await session.flush()

    for item in foursomes:
        row = Foursome(
            schedule_id=schedule.id,
            time_slot=item["time_slot"],
            position=item["position"],
            player_ids=list(item["player_ids"]),
        )
        if keep_ids and item.get("id") is not None:
            row.id = item["id"]
        session.add(row)
    await session.flush()


def snapshot_to_rows(snapshot: ScheduleSnapshot) -> List[Dict]:
    return [
        {"id": f.id, "time_slot": f.time_slot, "position": f.position, "player_ids": f.player_ids}
        for f in snapshot.all_foursomes()
    ]
