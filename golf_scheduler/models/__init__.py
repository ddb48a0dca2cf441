from golf_scheduler.models.foursome import MAX_FOURSOME_SIZE, Foursome, TimeSlot
from golf_scheduler.models.pairing_count import PairingCount
from golf_scheduler.models.player import Handedness, Player, TimePreference
from golf_scheduler.models.schedule import Schedule
from golf_scheduler.models.schedule_backup import ScheduleBackup
from golf_scheduler.models.season import Season
from golf_scheduler.models.week import Week, WeekAvailability

__all__ = [
    "Season",
    "Player",
    "Handedness",
    "TimePreference",
    "Week",
    "WeekAvailability",
    "Schedule",
    "Foursome",
    "TimeSlot",
    "MAX_FOURSOME_SIZE",
    "PairingCount",
    "ScheduleBackup",
]
