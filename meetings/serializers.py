import zoneinfo

from rest_framework import serializers

from meetings.constants import (
    NEVER_END_TYPE,
    MonthlyOption,
    RecurrenceEditScope,
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrenceWeekday,
)
from meetings.models import Meeting, MeetingAttendee, MeetingRecurrence, MeetingTag
from meetings.services.dataclasses import RecurrenceRuleInputData


# Older clients send "day" for the same-day-of-month option
MONTHLY_OPTION_ALIASES = {"day": MonthlyOption.DAY_OF_MONTH}


class MeetingRecurrenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = MeetingRecurrence
        fields = (
            "id",
            "frequency",
            "interval",
            "weekdays",
            "monthly_option",
            "monthly_day_of_month",
            "monthly_weekday",
            "monthly_weekday_position",
            "end_type",
            "end_date",
            "occurrence_count",
            "starts_at",
            "timezone",
            "created",
            "modified",
        )
        read_only_fields = fields


class MeetingAttendeeSerializer(serializers.ModelSerializer):
    class Meta:
        model = MeetingAttendee
        fields = (
            "id",
            "contact",
            "role",
            "invitation_status",
            "attendance_status",
            "notes",
        )
        read_only_fields = fields


class MeetingTagSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="tag.name", read_only=True)

    class Meta:
        model = MeetingTag
        fields = ("id", "tag", "name")
        read_only_fields = fields


class MeetingSerializer(serializers.ModelSerializer):
    recurrence = MeetingRecurrenceSerializer(read_only=True)
    attendees = MeetingAttendeeSerializer(many=True, read_only=True)
    meeting_tags = MeetingTagSerializer(many=True, read_only=True)

    class Meta:
        model = Meeting
        fields = (
            "id",
            "title",
            "location",
            "meeting_at",
            "summary",
            "meeting_reviewed",
            "recurrence_parent",
            "recurrence_instance_index",
            "recurrence",
            "attendees",
            "meeting_tags",
            "created",
            "modified",
        )
        read_only_fields = fields


class MeetingRecurrenceInputSerializer(serializers.Serializer):
    """Validates a recurrence configuration sent for a meeting."""

    frequency = serializers.ChoiceField(choices=RecurrenceFrequency.choices)
    interval = serializers.IntegerField(min_value=1, default=1)
    weekdays = serializers.ListField(
        child=serializers.ChoiceField(choices=RecurrenceWeekday.choices),
        required=False,
        default=list,
        help_text="Weekday codes for weekly recurrences (su, m, t, w, th, f, sa)",
    )
    monthly_option = serializers.CharField(required=False, allow_null=True)
    monthly_day_of_month = serializers.IntegerField(
        min_value=1, max_value=31, required=False, allow_null=True
    )
    monthly_weekday = serializers.ChoiceField(
        choices=RecurrenceWeekday.choices, required=False, allow_null=True
    )
    monthly_weekday_position = serializers.IntegerField(
        min_value=1, max_value=5, required=False, allow_null=True
    )
    end_type = serializers.CharField(help_text="Either 'after' or 'on'")
    end_date = serializers.DateField(required=False, allow_null=True)
    occurrence_count = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    starts_at = serializers.DateTimeField(
        required=False,
        allow_null=True,
        help_text="Start of the series, used only when the meeting has no date",
    )
    timezone = serializers.CharField(default="UTC")
    scope = serializers.ChoiceField(
        choices=RecurrenceEditScope.choices, default=RecurrenceEditScope.SERIES
    )

    def validate_end_type(self, end_type):
        if end_type == NEVER_END_TYPE:
            raise serializers.ValidationError(
                "Recurring meetings must end after a number of occurrences or on a date."
            )
        if end_type not in RecurrenceEndType.values:
            raise serializers.ValidationError(f"Invalid end type: {end_type}")
        return end_type

    def validate_monthly_option(self, monthly_option):
        if not monthly_option:
            return None

        monthly_option = MONTHLY_OPTION_ALIASES.get(monthly_option, monthly_option)
        if monthly_option not in MonthlyOption.values:
            raise serializers.ValidationError(f"Invalid monthly option: {monthly_option}")
        return monthly_option

    def validate_timezone(self, timezone):
        try:
            zoneinfo.ZoneInfo(timezone)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
            raise serializers.ValidationError(f"Invalid timezone: {timezone}") from e

        return timezone

    def validate(self, attrs):
        if attrs["end_type"] == RecurrenceEndType.ON and not attrs.get("end_date"):
            raise serializers.ValidationError(
                {"end_date": "End date is required when the recurrence ends on a date."}
            )
        if attrs["end_type"] == RecurrenceEndType.AFTER and not attrs.get("occurrence_count"):
            raise serializers.ValidationError(
                {
                    "occurrence_count": (
                        "Occurrence count is required when the recurrence ends after a count."
                    )
                }
            )

        if attrs["frequency"] == RecurrenceFrequency.WEEK and not attrs.get("weekdays"):
            # weekly rules without weekdays repeat on the weekday of the series anchor
            meeting = self.context.get("meeting")
            anchors = [attrs.get("starts_at")]
            if meeting is not None:
                anchors.append(meeting.meeting_at)
                if meeting.recurrence_parent_id:
                    anchors.append(meeting.recurrence_parent.meeting_at)
            if not any(anchors):
                raise serializers.ValidationError(
                    {"weekdays": "At least one weekday is required for weekly recurrences."}
                )

        return attrs

    def to_input_data(self) -> RecurrenceRuleInputData:
        data = self.validated_data
        return RecurrenceRuleInputData(
            frequency=data["frequency"],
            end_type=data["end_type"],
            starts_at=data.get("starts_at"),
            interval=data["interval"],
            weekdays=list(data.get("weekdays") or []),
            monthly_option=data.get("monthly_option"),
            monthly_day_of_month=data.get("monthly_day_of_month"),
            monthly_weekday=data.get("monthly_weekday"),
            monthly_weekday_position=data.get("monthly_weekday_position"),
            end_date=data.get("end_date") if data["end_type"] == RecurrenceEndType.ON else None,
            occurrence_count=(
                data.get("occurrence_count")
                if data["end_type"] == RecurrenceEndType.AFTER
                else None
            ),
            timezone=data["timezone"],
        )


class RecurrenceUpsertResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    meeting_id = serializers.IntegerField()
    series_head_id = serializers.IntegerField()
    generated_count = serializers.IntegerField()
    scope = serializers.ChoiceField(choices=RecurrenceEditScope.choices)
    inserted_ids = serializers.ListField(child=serializers.IntegerField())


class StorageErrorSerializer(serializers.Serializer):
    detail = serializers.CharField()
    step = serializers.CharField()
