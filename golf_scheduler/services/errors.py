"""Exceptions raised by the scheduling services."""


class SchedulingError(Exception):
    """Base exception for scheduling errors"""

    pass


class WeekNotFoundError(SchedulingError, LookupError):
    def __init__(self, week_id: int):
        super().__init__(f"Week {week_id} not found")
        self.week_id = week_id


class ScheduleNotFoundError(SchedulingError, LookupError):
    def __init__(self, week_id: int):
        super().__init__(f"Schedule not found for week {week_id}")
        self.week_id = week_id


class PreconditionValidationError(SchedulingError, ValueError):
    """Input state cannot produce a schedule; do not retry without changing it"""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(f"Precondition validation failed: {'; '.join(self.errors)}")


class ScheduleGenerationError(SchedulingError, RuntimeError):
    pass


class BackupError(SchedulingError, RuntimeError):
    pass


class RestoreError(SchedulingError, RuntimeError):
    pass


class InvalidEditError(SchedulingError, ValueError):
    pass


class RegenerationInProgressError(SchedulingError, RuntimeError):
    def __init__(self, week_id: int):
        super().__init__("Another regeneration operation is currently in progress")
        self.week_id = week_id
