"""Django admin interface for meetings and their recurring series."""

from django.contrib import admin

from meetings.models import Contact, Meeting, MeetingAttendee, MeetingRecurrence, MeetingTag, Tag


class MeetingAttendeeInline(admin.TabularInline):
    model = MeetingAttendee
    fields = ("contact", "role", "invitation_status", "attendance_status", "notes")
    raw_id_fields = ("contact",)
    extra = 0


class MeetingTagInline(admin.TabularInline):
    model = MeetingTag
    fields = ("tag",)
    raw_id_fields = ("tag",)
    extra = 0


class MeetingRecurrenceInline(admin.StackedInline):
    """Recurrence rules are written by the series service, so they are read-only here."""

    model = MeetingRecurrence
    fields = (
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
    )
    readonly_fields = fields
    can_delete = False
    extra = 0

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Meeting)
class MeetingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "user",
        "meeting_at",
        "recurrence_parent",
        "recurrence_instance_index",
        "meeting_reviewed",
    )
    list_filter = ("meeting_reviewed",)
    search_fields = ("title", "location", "user__email")
    raw_id_fields = ("user", "recurrence_parent")
    readonly_fields = ("recurrence_parent", "recurrence_instance_index", "created", "modified")
    inlines = (MeetingRecurrenceInline, MeetingAttendeeInline, MeetingTagInline)


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ("id", "first_name", "last_name", "email", "user")
    search_fields = ("first_name", "last_name", "email", "user__email")
    raw_id_fields = ("user",)


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "user")
    search_fields = ("name", "user__email")
    raw_id_fields = ("user",)
