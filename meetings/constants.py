from django.db.models import IntegerChoices, TextChoices


DEFAULT_MAX_OCCURRENCE_ITERATIONS = 1000


class RecurrenceFrequency(TextChoices):
    DAY = "day", "Daily"
    WEEK = "week", "Weekly"
    MONTH = "month", "Monthly"
    YEAR = "year", "Yearly"


class RecurrenceWeekday(TextChoices):
    SUNDAY = "su", "Sunday"
    MONDAY = "m", "Monday"
    TUESDAY = "t", "Tuesday"
    WEDNESDAY = "w", "Wednesday"
    THURSDAY = "th", "Thursday"
    FRIDAY = "f", "Friday"
    SATURDAY = "sa", "Saturday"


# Offset of each weekday from the start of a Sunday-based week
WEEKDAY_OFFSETS: dict[str, int] = {
    RecurrenceWeekday.SUNDAY: 0,
    RecurrenceWeekday.MONDAY: 1,
    RecurrenceWeekday.TUESDAY: 2,
    RecurrenceWeekday.WEDNESDAY: 3,
    RecurrenceWeekday.THURSDAY: 4,
    RecurrenceWeekday.FRIDAY: 5,
    RecurrenceWeekday.SATURDAY: 6,
}


class MonthlyOption(TextChoices):
    DAY_OF_MONTH = "day_of_month", "Same day of the month"
    WEEKDAY = "weekday", "Same weekday of the month"


class MonthlyWeekdayPosition(IntegerChoices):
    FIRST = 1, "1st"
    SECOND = 2, "2nd"
    THIRD = 3, "3rd"
    FOURTH = 4, "4th"
    FIFTH = 5, "5th"


class RecurrenceEndType(TextChoices):
    AFTER = "after", "After a number of occurrences"
    ON = "on", "On a date"


# Accepted by clients but never persisted: every series must end
NEVER_END_TYPE = "never"


class RecurrenceEditScope(TextChoices):
    SERIES = "series", "All events in the series"
    FOLLOWING = "following", "This and following events"


class SeriesSyncStep(TextChoices):
    RULE_WRITE = "rule_write", "Recurrence rule write"
    RECONCILE = "reconcile", "Series reconciliation"
    TEMPLATE_COPY = "template_copy", "Attendee and tag copy"
    SPLIT = "split", "Series split"
    DELETE = "delete", "Recurrence removal"


class AttendeeRole(TextChoices):
    ORGANIZER = "organizer", "Organizer"
    ATTENDEE = "attendee", "Attendee"
    OPTIONAL = "optional", "Optional"


class InvitationStatus(TextChoices):
    INVITED = "invited", "Invited"
    ACCEPTED = "accepted", "Accepted"
    DECLINED = "declined", "Declined"
    TENTATIVE = "tentative", "Tentative"


class AttendanceStatus(TextChoices):
    UNKNOWN = "unknown", "Unknown"
    ATTENDED = "attended", "Attended"
    ABSENT = "absent", "Absent"
