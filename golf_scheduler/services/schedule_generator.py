"""
Schedule Generator - Foursome Assignment for a League Week

Partitions the available players of a week into foursomes per time slot.

Algorithm (two-phase):
1. Time-slot assignment: AM -> morning, PM -> afternoon, Either -> the slot with
   fewer players so far (tie -> morning) when balancing, else morning.
2. Grouping within each slot: sizes come from compute_group_sizes(); members are
   picked greedily by lowest marginal pairing cost, then improved by pairwise
   swaps between foursomes of the same slot.

Deterministic for identical inputs. Never touches storage: pairing costs are
passed in by the caller.
"""

import logging
from dataclasses import dataclass
from math import ceil, floor
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from golf_scheduler.models.foursome import MAX_FOURSOME_SIZE, TimeSlot
from golf_scheduler.models.player import Player, TimePreference
from golf_scheduler.services.errors import ScheduleGenerationError
from golf_scheduler.services.types import (
    AvailabilityConflict,
    AvailabilityValidationResult,
    FoursomeSnapshot,
    ScheduleSnapshot,
    ValidationResult,
    WeekContext,
)

logger = logging.getLogger(__name__)

PairingCost = Callable[[int, int], int]


def pair_key(player_a: int, player_b: int) -> Tuple[int, int]:
    """Order-independent key for a player pair"""
    if player_a == player_b:
        raise ValueError("Cannot pair a player with themselves")
    return (player_a, player_b) if player_a < player_b else (player_b, player_a)


def cost_from_counts(pairing_counts: Optional[Mapping[Tuple[int, int], int]]) -> PairingCost:
    counts = pairing_counts or {}

    def _cost(player_a: int, player_b: int) -> int:
        if player_a == player_b:
            return 0
        return counts.get(pair_key(player_a, player_b), 0)

    return _cost


def total_pairing_cost(groups: Iterable[Sequence[Player]], cost: PairingCost) -> int:
    """Sum over all intra-group pairs of their historical co-occurrence count"""
    total = 0
    for group in groups:
        ids = [p.id for p in group]
        for i in range(len(ids)):
            for j in range(i + 1, len(ids)):
                total += cost(ids[i], ids[j])
    return total


# ============================================================================
# Group Sizes
# ============================================================================


def compute_group_sizes(player_count: int, prioritize_complete_groups: bool = True) -> List[int]:
    """
    Compute foursome sizes for a slot.

    prioritize_complete_groups=True:  as many foursomes of 4 as possible, one smaller leftover
        (10 -> [4, 4, 2])
    prioritize_complete_groups=False: ceil(n / 4) groups whose sizes differ by at most one
        (10 -> [4, 3, 3])
    """
    if player_count <= 0:
        return []

    if prioritize_complete_groups:
        sizes = [MAX_FOURSOME_SIZE] * (player_count // MAX_FOURSOME_SIZE)
        if player_count % MAX_FOURSOME_SIZE:
            sizes.append(player_count % MAX_FOURSOME_SIZE)
        return sizes

    groups_count = max(1, ceil(player_count / MAX_FOURSOME_SIZE))
    base_size = floor(player_count / groups_count)
    remainder = player_count % groups_count
    return [base_size + 1 if i < remainder else base_size for i in range(groups_count)]


# ============================================================================
# Generator
# ============================================================================


@dataclass
class ScheduleGeneratorOptions:
    prioritize_complete_groups: bool = True
    balance_time_slots: bool = True
    optimize_pairings: bool = True


class ScheduleGenerator:
    def __init__(self, options: Optional[ScheduleGeneratorOptions] = None, max_improvement_passes: int = 25):
        self.options = options or ScheduleGeneratorOptions()
        self.max_improvement_passes = max_improvement_passes

    def generate_schedule_for_week(
        self,
        week: WeekContext,
        players: Sequence[Player],
        pairing_counts: Optional[Mapping[Tuple[int, int], int]] = None,
    ) -> ScheduleSnapshot:
        """Filter players by the week's availability, then generate (not persisted)"""
        available = self.filter_available_players(players, week)
        logger.info(
            "Generating schedule for week %s: %s players, %s available", week.id, len(players), len(available)
        )
        return self.generate_schedule(week.id, available, pairing_counts)

    def generate_schedule(
        self,
        week_id: int,
        available_players: Sequence[Player],
        pairing_counts: Optional[Mapping[Tuple[int, int], int]] = None,
    ) -> ScheduleSnapshot:
        self._check_input(available_players)

        morning_players, afternoon_players = self.assign_players_to_time_slots(available_players)
        cost = cost_from_counts(pairing_counts)

        schedule = ScheduleSnapshot(
            week_id=week_id,
            morning=self.create_foursomes(morning_players, TimeSlot.morning.value, cost),
            afternoon=self.create_foursomes(afternoon_players, TimeSlot.afternoon.value, cost),
        )
        self._verify_assignment(available_players, schedule)

        logger.debug(
            "Week %s: %s morning / %s afternoon foursomes, pairing cost %s",
            week_id,
            len(schedule.morning),
            len(schedule.afternoon),
            total_pairing_cost([f.players for f in schedule.all_foursomes()], cost),
        )
        return schedule

    def filter_available_players(self, players: Sequence[Player], week: WeekContext) -> List[Player]:
        """Only players whose availability is explicitly True; undecided counts as unavailable"""
        return [p for p in players if week.is_player_available(p.id)]

    # ------------------------------------------------------------------------
    # Phase 1: time slots
    # ------------------------------------------------------------------------

    def assign_players_to_time_slots(self, players: Sequence[Player]) -> Tuple[List[Player], List[Player]]:
        morning: List[Player] = []
        afternoon: List[Player] = []
        either: List[Player] = []

        for player in players:
            preference = self._preference_of(player)
            if preference == TimePreference.AM:
                morning.append(player)
            elif preference == TimePreference.PM:
                afternoon.append(player)
            else:
                either.append(player)

        for player in either:
            if self.options.balance_time_slots and len(afternoon) < len(morning):
                afternoon.append(player)
            else:
                morning.append(player)

        return morning, afternoon

    # ------------------------------------------------------------------------
    # Phase 2: grouping
    # ------------------------------------------------------------------------

    def create_foursomes(
        self, players: Sequence[Player], time_slot: str, cost: Optional[PairingCost] = None
    ) -> List[FoursomeSnapshot]:
        if time_slot not in (TimeSlot.morning.value, TimeSlot.afternoon.value):
            raise ScheduleGenerationError(f"Invalid time slot: {time_slot}. Must be 'morning' or 'afternoon'")
        if not players:
            return []

        sizes = compute_group_sizes(len(players), self.options.prioritize_complete_groups)

        if self.options.optimize_pairings and cost is not None:
            groups = self._build_greedy_groups(players, sizes, cost)
            groups = self._improve_by_swaps(groups, cost)
        else:
            groups = []
            start = 0
            for size in sizes:
                groups.append(list(players[start : start + size]))
                start += size

        return [
            FoursomeSnapshot(time_slot=time_slot, position=position, players=group)
            for position, group in enumerate(groups)
        ]

    def _build_greedy_groups(
        self, players: Sequence[Player], sizes: List[int], cost: PairingCost
    ) -> List[List[Player]]:
        """
        Build groups one at a time.

        Seed: the remaining player with the highest total history against the other
        remaining players (most constrained first). Then repeatedly add the player
        with the lowest marginal cost to the forming group. Ties keep input order.
        """
        order = {p.id: index for index, p in enumerate(players)}
        remaining = list(players)
        groups: List[List[Player]] = []

        for size in sizes:
            seed = max(
                remaining,
                key=lambda p: (sum(cost(p.id, q.id) for q in remaining if q is not p), -order[p.id]),
            )
            group = [seed]
            remaining.remove(seed)

            while len(group) < size:
                best = min(remaining, key=lambda p: (self._marginal_cost(p, group, cost), order[p.id]))
                group.append(best)
                remaining.remove(best)

            groups.append(group)

        return groups

    def _improve_by_swaps(self, groups: List[List[Player]], cost: PairingCost) -> List[List[Player]]:
        """Swap players across groups while a swap lowers the total cost (sizes never change)"""
        for _ in range(self.max_improvement_passes):
            improved = False
            for gi in range(len(groups)):
                for gj in range(gi + 1, len(groups)):
                    for ai in range(len(groups[gi])):
                        for bi in range(len(groups[gj])):
                            a = groups[gi][ai]
                            b = groups[gj][bi]
                            rest_i = [p for p in groups[gi] if p is not a]
                            rest_j = [p for p in groups[gj] if p is not b]
                            before = self._marginal_cost(a, rest_i, cost) + self._marginal_cost(b, rest_j, cost)
                            after = self._marginal_cost(b, rest_i, cost) + self._marginal_cost(a, rest_j, cost)
                            if after < before:
                                groups[gi][ai], groups[gj][bi] = b, a
                                improved = True
            if not improved:
                break
        return groups

    @staticmethod
    def _marginal_cost(player: Player, group: Sequence[Player], cost: PairingCost) -> int:
        return sum(cost(player.id, other.id) for other in group if other is not player)

    # ------------------------------------------------------------------------
    # Structural checks
    # ------------------------------------------------------------------------

    def _preference_of(self, player: Player) -> TimePreference:
        try:
            return TimePreference(player.time_preference)
        except ValueError:
            raise ScheduleGenerationError(
                f"Player {player.id} has unrecognized time preference: {player.time_preference!r}"
            )

    def _check_input(self, players: Sequence[Player]) -> None:
        seen = set()
        for index, player in enumerate(players):
            if player is None or player.id is None:
                raise ScheduleGenerationError(f"Invalid player data at index {index}: missing id")
            if player.id in seen:
                raise ScheduleGenerationError(f"Duplicate player ID found: {player.id}")
            seen.add(player.id)
            self._preference_of(player)

    def _verify_assignment(self, players: Sequence[Player], schedule: ScheduleSnapshot) -> None:
        assigned = [pid for f in schedule.all_foursomes() for pid in f.player_ids]
        if len(assigned) != len(set(assigned)):
            raise ScheduleGenerationError("Duplicate player assignment across foursomes")
        if set(assigned) != {p.id for p in players}:
            raise ScheduleGenerationError(
                f"Player count mismatch: expected {len(players)}, assigned {len(assigned)}"
            )

    # ========================================================================
    # Validation
    # ========================================================================

    def validate_schedule(
        self,
        schedule: ScheduleSnapshot,
        available_players: Sequence[Player],
        week: Optional[WeekContext] = None,
        allow_empty_foursomes: bool = False,
    ) -> ValidationResult:
        """
        Check a schedule against the week's constraints.

        - every scheduled player is in available_players (and explicitly available when week is given)
        - no player appears twice
        - foursome sizes within [1, 4] (empty allowed only with allow_empty_foursomes)
        - morning has no PM players, afternoon has no AM players
        - each foursome carries the time-slot label of its bucket
        """
        errors: List[str] = []
        warnings: List[str] = []
        available_ids = {p.id for p in available_players}
        names = {p.id: p.full_name for p in available_players}

        def _label(player: Player) -> str:
            return f"{player.full_name} ({player.id})"

        counts: Dict[int, int] = {}
        for foursome in schedule.all_foursomes():
            for player in foursome.players:
                counts[player.id] = counts.get(player.id, 0) + 1

        for player_id in counts:
            if player_id not in available_ids:
                errors.append(f"Player {player_id} is in schedule but not in available players")
            if week is not None and not week.is_player_available(player_id):
                status = week.availability.get(player_id)
                if not week.has_availability_data(player_id):
                    errors.append(f"Player {names.get(player_id, player_id)} is scheduled but has no availability data")
                else:
                    errors.append(
                        f"Player {names.get(player_id, player_id)} is scheduled but is marked as unavailable "
                        f"(status: {status})"
                    )

        for player_id, count in counts.items():
            if count > 1:
                errors.append(f"Player {names.get(player_id, player_id)} ({player_id}) appears {count} times in schedule")

        for bucket, expected_slot in ((schedule.morning, TimeSlot.morning), (schedule.afternoon, TimeSlot.afternoon)):
            for index, foursome in enumerate(bucket):
                size = len(foursome.players)
                if size == 0:
                    message = f"{expected_slot.value.capitalize()} foursome at position {index} is empty"
                    (warnings if allow_empty_foursomes else errors).append(message)
                elif size > MAX_FOURSOME_SIZE:
                    errors.append(
                        f"{expected_slot.value.capitalize()} foursome at position {index} has {size} players "
                        f"(maximum {MAX_FOURSOME_SIZE})"
                    )
                if foursome.time_slot != expected_slot.value:
                    errors.append(
                        f"{expected_slot.value.capitalize()} foursome at position {index} has incorrect "
                        f"time slot: {foursome.time_slot}"
                    )

        for foursome in schedule.morning:
            for player in foursome.players:
                if player.time_preference == TimePreference.PM:
                    errors.append(f"Player {_label(player)} has PM preference but is scheduled in morning")
        for foursome in schedule.afternoon:
            for player in foursome.players:
                if player.time_preference == TimePreference.AM:
                    errors.append(f"Player {_label(player)} has AM preference but is scheduled in afternoon")

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def validate_schedule_availability(
        self, schedule: ScheduleSnapshot, week: WeekContext, players: Sequence[Player]
    ) -> AvailabilityValidationResult:
        names = {p.id: p.full_name for p in players}
        errors: List[str] = []
        conflicts: List[AvailabilityConflict] = []

        for player_id in schedule.all_player_ids():
            name = names.get(player_id, "Unknown Player")
            if not week.has_availability_data(player_id):
                errors.append(f"Player {name} ({player_id}) is scheduled but has no availability data")
                conflicts.append(AvailabilityConflict(player_id, name, None))
            elif not week.is_player_available(player_id):
                status = week.availability[player_id]
                errors.append(f"Player {name} ({player_id}) is scheduled but is marked as unavailable (status: {status})")
                conflicts.append(AvailabilityConflict(player_id, name, status))

        return AvailabilityValidationResult(is_valid=not errors, errors=errors, conflicts=conflicts)
