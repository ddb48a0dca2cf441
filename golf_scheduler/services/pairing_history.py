"""
Pairing History Tracker

Counts how often each unordered pair of players has shared a foursome within a
season. Counts feed the generator's pairing-cost function.

Pairings are recorded only for committed schedules, never for candidates.
Storage errors propagate: an undercount would bias later groupings.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from golf_scheduler.models._time import utc_now
from golf_scheduler.models.pairing_count import PairingCount
from golf_scheduler.models.player import Player
from golf_scheduler.services.schedule_generator import pair_key
from golf_scheduler.services.types import FoursomeSnapshot, ScheduleSnapshot
from golf_scheduler.utils.sql import scalar_int, session_scope

logger = logging.getLogger(__name__)


@dataclass
class PartnerPairing:
    partner_id: int
    count: int


@dataclass
class PairingMetrics:
    pairing_counts: Dict[Tuple[int, int], int]
    min_pairings: int
    max_pairings: int
    average_pairings: float


class PairingHistoryTracker:
    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def record_pairing(
        self, player_a: int, player_b: int, season_id: int, session: Optional[AsyncSession] = None
    ) -> int:
        """Increment the count for a pair, creating the row on first pairing. Returns the new count."""
        id_a, id_b = pair_key(player_a, player_b)

        async with session_scope(self._session_factory, session) as s:
            row = (
                await s.exec(
                    select(PairingCount).where(
                        PairingCount.season_id == season_id,
                        PairingCount.player_id_a == id_a,
                        PairingCount.player_id_b == id_b,
                    )
                )
            ).first()
            if row is None:
                row = PairingCount(season_id=season_id, player_id_a=id_a, player_id_b=id_b, count=0)
            row.count += 1
            row.updated_at = utc_now()
            s.add(row)
            await s.flush()
            return row.count

    async def get_pairing_count(self, season_id: int, player_a: int, player_b: int) -> int:
        if player_a == player_b:
            return 0
        id_a, id_b = pair_key(player_a, player_b)

        async with self._session_factory() as session:
            count = (
                await session.exec(
                    select(PairingCount.count).where(
                        PairingCount.season_id == season_id,
                        PairingCount.player_id_a == id_a,
                        PairingCount.player_id_b == id_b,
                    )
                )
            ).first()
        return count or 0

    async def get_all_pairings_for_player(self, season_id: int, player_id: int) -> List[PartnerPairing]:
        """Partners of a player with their counts, most frequent first"""
        async with self._session_factory() as session:
            rows = (
                await session.exec(
                    select(PairingCount).where(
                        PairingCount.season_id == season_id,
                        or_(PairingCount.player_id_a == player_id, PairingCount.player_id_b == player_id),
                    )
                )
            ).all()

        result = [
            PartnerPairing(
                partner_id=row.player_id_b if row.player_id_a == player_id else row.player_id_a, count=row.count
            )
            for row in rows
        ]
        return sorted(result, key=lambda p: (-p.count, p.partner_id))

    async def get_pairing_matrix(self, season_id: int, player_ids: Sequence[int]) -> Dict[Tuple[int, int], int]:
        """All recorded counts among the given players, keyed by ordered pair"""
        if len(player_ids) < 2:
            return {}
        ids = list(player_ids)

        async with self._session_factory() as session:
            rows = (
                await session.exec(
                    select(PairingCount).where(
                        PairingCount.season_id == season_id,
                        PairingCount.player_id_a.in_(ids),
                        PairingCount.player_id_b.in_(ids),
                    )
                )
            ).all()
        return {(row.player_id_a, row.player_id_b): row.count for row in rows}

    async def track_foursome_pairings(
        self, season_id: int, foursome: FoursomeSnapshot, session: Optional[AsyncSession] = None
    ) -> None:
        ids = foursome.player_ids
        async with session_scope(self._session_factory, session) as s:
            for i in range(len(ids)):
                for j in range(i + 1, len(ids)):
                    await self.record_pairing(ids[i], ids[j], season_id, session=s)

    async def track_schedule_pairings(
        self, season_id: int, schedule: ScheduleSnapshot, session: Optional[AsyncSession] = None
    ) -> None:
        async with session_scope(self._session_factory, session) as s:
            for foursome in schedule.all_foursomes():
                await self.track_foursome_pairings(season_id, foursome, session=s)
        logger.info(
            "Tracked pairings for schedule %s (week %s, %s foursomes)",
            schedule.id,
            schedule.week_id,
            len(schedule.all_foursomes()),
        )

    async def score_foursome(self, season_id: int, players: Sequence[Player]) -> int:
        """Sum of pair counts within a candidate group (lower is better)"""
        matrix = await self.get_pairing_matrix(season_id, [p.id for p in players])
        return sum(matrix.values())

    async def calculate_pairing_metrics(self, season_id: int, players: Sequence[Player]) -> PairingMetrics:
        matrix = await self.get_pairing_matrix(season_id, [p.id for p in players])
        counts: Dict[Tuple[int, int], int] = {}
        for i in range(len(players)):
            for j in range(i + 1, len(players)):
                key = pair_key(players[i].id, players[j].id)
                counts[key] = matrix.get(key, 0)

        values = list(counts.values())
        return PairingMetrics(
            pairing_counts=counts,
            min_pairings=min(values) if values else 0,
            max_pairings=max(values) if values else 0,
            average_pairings=sum(values) / len(values) if values else 0.0,
        )

    async def reset_pairing_history(self, season_id: int) -> int:
        """Delete all pairing counts of a season. Returns the number of pairs removed."""
        async with session_scope(self._session_factory) as session:
            removed = scalar_int(
                (
                    await session.exec(
                        select(func.count()).select_from(PairingCount).where(PairingCount.season_id == season_id)
                    )
                ).one()
            )
            await session.execute(delete(PairingCount).where(PairingCount.season_id == season_id))
        logger.info("Reset pairing history for season %s (%s pairs)", season_id, removed)
        return removed
