"""
Detached data shapes passed between the scheduling services.

ORM rows never leave a session; services exchange these snapshots instead.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from golf_scheduler.models.foursome import MAX_FOURSOME_SIZE, TimeSlot
from golf_scheduler.models.player import Player


@dataclass
class WeekContext:
    id: int
    season_id: int
    week_number: int
    week_date: date
    availability: Dict[int, bool] = field(default_factory=dict)  # player_id -> available

    def is_player_available(self, player_id: int) -> bool:
        return self.availability.get(player_id) is True

    def has_availability_data(self, player_id: int) -> bool:
        return player_id in self.availability


@dataclass
class FoursomeSnapshot:
    time_slot: str
    position: int
    players: List[Player] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def player_ids(self) -> List[int]:
        return [p.id for p in self.players]

    def is_full(self) -> bool:
        return len(self.players) >= MAX_FOURSOME_SIZE


@dataclass
class ScheduleSnapshot:
    week_id: int
    morning: List[FoursomeSnapshot] = field(default_factory=list)
    afternoon: List[FoursomeSnapshot] = field(default_factory=list)
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def all_foursomes(self) -> List[FoursomeSnapshot]:
        return [*self.morning, *self.afternoon]

    def all_player_ids(self) -> List[int]:
        seen: List[int] = []
        for foursome in self.all_foursomes():
            for player_id in foursome.player_ids:
                if player_id not in seen:
                    seen.append(player_id)
        return seen

    def total_player_count(self) -> int:
        return len(self.all_player_ids())

    def membership(self) -> Dict[Tuple[str, int], List[int]]:
        """(time_slot, position) -> sorted player ids; used for equality checks"""
        return {(f.time_slot, f.position): sorted(f.player_ids) for f in self.all_foursomes()}

    def to_dict(self) -> Dict[str, Any]:
        def _foursome(f: FoursomeSnapshot) -> Dict[str, Any]:
            return {"id": f.id, "time_slot": f.time_slot, "position": f.position, "player_ids": f.player_ids}

        return {
            "id": self.id,
            "week_id": self.week_id,
            "time_slots": {
                TimeSlot.morning.value: [_foursome(f) for f in self.morning],
                TimeSlot.afternoon.value: [_foursome(f) for f in self.afternoon],
            },
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class AvailabilityConflict:
    player_id: int
    player_name: str
    availability_status: Optional[bool]


@dataclass
class AvailabilityValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    conflicts: List[AvailabilityConflict] = field(default_factory=list)
