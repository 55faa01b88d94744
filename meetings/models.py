import zoneinfo

from django.core.exceptions import ValidationError
from django.db import models

from common.models import OwnedModel
from meetings.constants import (
    WEEKDAY_OFFSETS,
    AttendanceStatus,
    AttendeeRole,
    InvitationStatus,
    MonthlyOption,
    MonthlyWeekdayPosition,
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrenceWeekday,
)
from meetings.managers import MeetingManager
from meetings.services.dataclasses import RecurrenceRuleData


class Contact(OwnedModel):
    """
    Represents a person the user meets with.
    """

    first_name = models.CharField(max_length=255, blank=True)
    last_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    job_title = models.CharField(max_length=255, blank=True)

    def __str__(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email


class Tag(OwnedModel):
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)

    class Meta:
        unique_together = (("user", "name"),)

    def __str__(self):
        return self.name


class Meeting(OwnedModel):
    """
    Represents a meeting. Recurring meetings are stored as one row per occurrence,
    linked to the first meeting of the series (the series head).
    """

    title = models.CharField(max_length=255, blank=True)
    location = models.CharField(max_length=255, blank=True)
    meeting_at = models.DateTimeField(null=True, blank=True, db_index=True)
    summary = models.TextField(blank=True)
    meeting_reviewed = models.BooleanField(default=False)

    recurrence_parent = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="recurrence_children",
        help_text="The head of the recurring series this meeting belongs to, if any.",
    )
    recurrence_instance_index = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="1-based position of this meeting inside its recurring series.",
    )

    contacts: "models.ManyToManyField[Contact, MeetingAttendee]" = models.ManyToManyField(
        Contact,
        related_name="meetings",
        through="MeetingAttendee",
        blank=True,
    )
    tags: "models.ManyToManyField[Tag, MeetingTag]" = models.ManyToManyField(
        Tag,
        related_name="meetings",
        through="MeetingTag",
        blank=True,
    )

    objects: MeetingManager = MeetingManager()

    def __str__(self):
        return self.title or f"Meeting {self.pk}"

    @property
    def is_series_head(self) -> bool:
        return self.recurrence_parent_id is None and hasattr(self, "recurrence")

    @property
    def is_recurring_instance(self) -> bool:
        return self.recurrence_parent_id is not None

    @property
    def series_head_id(self) -> int:
        return self.recurrence_parent_id or self.pk


class MeetingAttendee(OwnedModel):
    """
    Represents a contact attending a meeting.
    """

    meeting = models.ForeignKey(Meeting, on_delete=models.CASCADE, related_name="attendees")
    contact = models.ForeignKey(Contact, on_delete=models.CASCADE, related_name="attendances")
    role = models.CharField(max_length=20, choices=AttendeeRole, default=AttendeeRole.ATTENDEE)
    invitation_status = models.CharField(
        max_length=20, choices=InvitationStatus, default=InvitationStatus.INVITED
    )
    attendance_status = models.CharField(
        max_length=20, choices=AttendanceStatus, default=AttendanceStatus.UNKNOWN
    )
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.contact} - {self.meeting} ({self.role})"


class MeetingTag(OwnedModel):
    meeting = models.ForeignKey(Meeting, on_delete=models.CASCADE, related_name="meeting_tags")
    tag = models.ForeignKey(Tag, on_delete=models.CASCADE, related_name="meeting_tags")

    class Meta:
        unique_together = (("meeting", "tag"),)

    def __str__(self):
        return f"{self.tag} on {self.meeting}"


class MeetingRecurrence(OwnedModel):
    """
    Represents the recurrence rule of a series head. Every rule terminates, either
    after a number of occurrences or on a date.
    """

    meeting = models.OneToOneField(Meeting, on_delete=models.CASCADE, related_name="recurrence")
    frequency = models.CharField(
        max_length=10,
        choices=RecurrenceFrequency,
        help_text="How often the meeting repeats (day, week, month, year)",
    )
    interval = models.PositiveIntegerField(
        default=1, help_text="The step between occurrences in units of frequency"
    )
    weekdays = models.JSONField(
        default=list,
        blank=True,
        help_text="Weekday codes for weekly recurrences (e.g. ['t', 'th'])",
    )
    monthly_option = models.CharField(
        max_length=20, choices=MonthlyOption, null=True, blank=True
    )
    monthly_day_of_month = models.PositiveSmallIntegerField(null=True, blank=True)
    monthly_weekday = models.CharField(
        max_length=2, choices=RecurrenceWeekday, null=True, blank=True
    )
    monthly_weekday_position = models.PositiveSmallIntegerField(
        choices=MonthlyWeekdayPosition, null=True, blank=True
    )
    end_type = models.CharField(max_length=10, choices=RecurrenceEndType)
    end_date = models.DateField(null=True, blank=True)
    occurrence_count = models.PositiveIntegerField(null=True, blank=True)
    starts_at = models.DateTimeField(help_text="The first occurrence of the series")
    timezone = models.CharField(max_length=64, default="UTC")

    def __str__(self):
        return f"Recurrence: every {self.interval} {self.frequency} for {self.meeting}"

    def to_rule_data(self) -> RecurrenceRuleData:
        return RecurrenceRuleData(
            frequency=self.frequency,
            starts_at=self.starts_at,
            end_type=self.end_type,
            interval=self.interval,
            weekdays=tuple(self.weekdays or ()),
            monthly_option=self.monthly_option,
            monthly_day_of_month=self.monthly_day_of_month,
            monthly_weekday=self.monthly_weekday,
            monthly_weekday_position=self.monthly_weekday_position,
            end_date=self.end_date,
            occurrence_count=self.occurrence_count,
            timezone=self.timezone,
        )

    def clean(self):
        """
        Validate the recurrence rule for common issues.
        """
        try:
            tz = zoneinfo.ZoneInfo(self.timezone)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
            raise ValidationError({"timezone": f"Invalid IANA timezone: {self.timezone}"}) from e

        if self.end_type not in RecurrenceEndType.values:
            raise ValidationError({"end_type": "Recurring meetings must have an end."})

        if self.end_type == RecurrenceEndType.AFTER and not self.occurrence_count:
            raise ValidationError(
                {"occurrence_count": "Required when the recurrence ends after a count."}
            )

        if self.end_type == RecurrenceEndType.ON:
            if not self.end_date:
                raise ValidationError(
                    {"end_date": "Required when the recurrence ends on a date."}
                )
            if self.starts_at and self.end_date < self.starts_at.astimezone(tz).date():
                raise ValidationError({"end_date": "End date must not be before the start."})

        invalid_weekdays = [day for day in self.weekdays or [] if day not in WEEKDAY_OFFSETS]
        if invalid_weekdays:
            raise ValidationError(
                {"weekdays": f"Invalid weekday codes: {', '.join(invalid_weekdays)}"}
            )

        if (
            self.monthly_day_of_month is not None
            and not 1 <= self.monthly_day_of_month <= 31
        ):
            raise ValidationError({"monthly_day_of_month": "Must be between 1 and 31."})
