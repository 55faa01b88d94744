# Service Layer/Internal Errors
class MeetingsError(Exception):
    """Base exception for meeting errors"""

    default_message = ""

    def __init__(self, message: str | None = None):
        if message is None:
            message = self.default_message
        super().__init__(message)


class InvalidRuleError(MeetingsError):
    """Raised when a recurrence rule can't produce a finite, valid series"""

    default_message = "Invalid recurrence rule"


class NeverEndingRecurrenceError(InvalidRuleError):
    default_message = "Recurring meetings must end after a number of occurrences or on a date"


class EndDateBeforeStartError(InvalidRuleError):
    default_message = "Recurrence end date is before the first occurrence"


class UnresolvableMonthlyWeekdayError(InvalidRuleError):
    def __init__(self, year: int, month: int, weekday: str, position: int):
        super().__init__(
            f"Cannot resolve weekday {weekday!r} at position {position} in {year}-{month:02d}"
        )


class NotFoundError(MeetingsError):
    """Raised when a meeting or rule is missing or not owned by the caller"""

    default_message = "Meeting not found"


class NoRecurrenceConfiguredError(NotFoundError):
    default_message = "No recurrence configured for this meeting series"


class StorageError(MeetingsError):
    """Wraps a database failure, recording which sync step failed"""

    def __init__(self, step: str, message: str | None = None):
        self.step = step
        super().__init__(message or f"Storage failure during {step}")


# Service State Errors
class MeetingSeriesServiceStateError(MeetingsError):
    pass


class MeetingSeriesServiceNotInitializedError(MeetingSeriesServiceStateError):
    def __init__(self, message="Meeting series service is not initialized with a user"):
        super().__init__(message)
