"""
API Routes for season pairing history
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from golf_scheduler.dependencies import get_schedule_manager
from golf_scheduler.services.schedule_manager import ScheduleManager

router = APIRouter()


class PartnerCount(BaseModel):
    partner_id: int
    count: int


class PlayerPairingsResponse(BaseModel):
    season_id: int
    player_id: int
    partners: List[PartnerCount]


class PairCountResponse(BaseModel):
    season_id: int
    player_a: int
    player_b: int
    count: int


@router.get("/seasons/{season_id}/pairings/{player_id}", response_model=PlayerPairingsResponse)
async def player_pairings(season_id: int, player_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    """Everyone a player has been grouped with this season, most frequent first"""
    partners = await manager.pairing_tracker.get_all_pairings_for_player(season_id, player_id)
    return PlayerPairingsResponse(
        season_id=season_id,
        player_id=player_id,
        partners=[PartnerCount(partner_id=p.partner_id, count=p.count) for p in partners],
    )


@router.get("/seasons/{season_id}/pairings/{player_a}/{player_b}", response_model=PairCountResponse)
async def pair_count(
    season_id: int, player_a: int, player_b: int, manager: ScheduleManager = Depends(get_schedule_manager)
):
    if player_a == player_b:
        raise HTTPException(status_code=400, detail="Cannot pair a player with themselves")
    count = await manager.pairing_tracker.get_pairing_count(season_id, player_a, player_b)
    return PairCountResponse(season_id=season_id, player_a=player_a, player_b=player_b, count=count)


@router.delete("/seasons/{season_id}/pairings")
async def reset_pairings(season_id: int, manager: ScheduleManager = Depends(get_schedule_manager)):
    """Explicit season reset of pairing history"""
    removed = await manager.pairing_tracker.reset_pairing_history(season_id)
    return {"season_id": season_id, "removed": removed}
