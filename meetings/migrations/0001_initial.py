import django.db.models.deletion
import django.utils.timezone
import model_utils.fields
from django.conf import settings
from django.db import migrations, models


def timestamp_fields():
    return [
        (
            "created",
            model_utils.fields.AutoCreatedField(
                db_index=True,
                default=django.utils.timezone.now,
                editable=False,
                verbose_name="created",
            ),
        ),
        (
            "modified",
            model_utils.fields.AutoLastModifiedField(
                db_index=True,
                default=django.utils.timezone.now,
                editable=False,
                verbose_name="modified",
            ),
        ),
        ("meta", models.JSONField(blank=True, default=dict, verbose_name="meta")),
    ]


def id_field():
    return (
        "id",
        models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID"),
    )


def owner_field():
    return (
        "user",
        models.ForeignKey(
            help_text="The user that owns this record. Queries should be scoped by this field.",
            on_delete=django.db.models.deletion.CASCADE,
            related_name="+",
            to=settings.AUTH_USER_MODEL,
        ),
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Contact",
            fields=[
                id_field(),
                *timestamp_fields(),
                ("first_name", models.CharField(blank=True, max_length=255)),
                ("last_name", models.CharField(blank=True, max_length=255)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("job_title", models.CharField(blank=True, max_length=255)),
                owner_field(),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Tag",
            fields=[
                id_field(),
                *timestamp_fields(),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True)),
                owner_field(),
            ],
            options={
                "unique_together": {("user", "name")},
            },
        ),
        migrations.CreateModel(
            name="Meeting",
            fields=[
                id_field(),
                *timestamp_fields(),
                ("title", models.CharField(blank=True, max_length=255)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("meeting_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("summary", models.TextField(blank=True)),
                ("meeting_reviewed", models.BooleanField(default=False)),
                (
                    "recurrence_instance_index",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="1-based position of this meeting inside its recurring series.",
                        null=True,
                    ),
                ),
                (
                    "recurrence_parent",
                    models.ForeignKey(
                        blank=True,
                        help_text="The head of the recurring series this meeting belongs to, if any.",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="recurrence_children",
                        to="meetings.meeting",
                    ),
                ),
                owner_field(),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="MeetingAttendee",
            fields=[
                id_field(),
                *timestamp_fields(),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("organizer", "Organizer"),
                            ("attendee", "Attendee"),
                            ("optional", "Optional"),
                        ],
                        default="attendee",
                        max_length=20,
                    ),
                ),
                (
                    "invitation_status",
                    models.CharField(
                        choices=[
                            ("invited", "Invited"),
                            ("accepted", "Accepted"),
                            ("declined", "Declined"),
                            ("tentative", "Tentative"),
                        ],
                        default="invited",
                        max_length=20,
                    ),
                ),
                (
                    "attendance_status",
                    models.CharField(
                        choices=[
                            ("unknown", "Unknown"),
                            ("attended", "Attended"),
                            ("absent", "Absent"),
                        ],
                        default="unknown",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                (
                    "contact",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attendances",
                        to="meetings.contact",
                    ),
                ),
                (
                    "meeting",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attendees",
                        to="meetings.meeting",
                    ),
                ),
                owner_field(),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="MeetingTag",
            fields=[
                id_field(),
                *timestamp_fields(),
                (
                    "meeting",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="meeting_tags",
                        to="meetings.meeting",
                    ),
                ),
                (
                    "tag",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="meeting_tags",
                        to="meetings.tag",
                    ),
                ),
                owner_field(),
            ],
            options={
                "unique_together": {("meeting", "tag")},
            },
        ),
        migrations.AddField(
            model_name="meeting",
            name="contacts",
            field=models.ManyToManyField(
                blank=True,
                related_name="meetings",
                through="meetings.MeetingAttendee",
                to="meetings.contact",
            ),
        ),
        migrations.AddField(
            model_name="meeting",
            name="tags",
            field=models.ManyToManyField(
                blank=True,
                related_name="meetings",
                through="meetings.MeetingTag",
                to="meetings.tag",
            ),
        ),
        migrations.CreateModel(
            name="MeetingRecurrence",
            fields=[
                id_field(),
                *timestamp_fields(),
                (
                    "frequency",
                    models.CharField(
                        choices=[
                            ("day", "Daily"),
                            ("week", "Weekly"),
                            ("month", "Monthly"),
                            ("year", "Yearly"),
                        ],
                        help_text="How often the meeting repeats (day, week, month, year)",
                        max_length=10,
                    ),
                ),
                (
                    "interval",
                    models.PositiveIntegerField(
                        default=1, help_text="The step between occurrences in units of frequency"
                    ),
                ),
                (
                    "weekdays",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Weekday codes for weekly recurrences (e.g. ['t', 'th'])",
                    ),
                ),
                (
                    "monthly_option",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("day_of_month", "Same day of the month"),
                            ("weekday", "Same weekday of the month"),
                        ],
                        max_length=20,
                        null=True,
                    ),
                ),
                ("monthly_day_of_month", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "monthly_weekday",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("su", "Sunday"),
                            ("m", "Monday"),
                            ("t", "Tuesday"),
                            ("w", "Wednesday"),
                            ("th", "Thursday"),
                            ("f", "Friday"),
                            ("sa", "Saturday"),
                        ],
                        max_length=2,
                        null=True,
                    ),
                ),
                (
                    "monthly_weekday_position",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        choices=[(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (5, "5th")],
                        null=True,
                    ),
                ),
                (
                    "end_type",
                    models.CharField(
                        choices=[
                            ("after", "After a number of occurrences"),
                            ("on", "On a date"),
                        ],
                        max_length=10,
                    ),
                ),
                ("end_date", models.DateField(blank=True, null=True)),
                ("occurrence_count", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "starts_at",
                    models.DateTimeField(help_text="The first occurrence of the series"),
                ),
                ("timezone", models.CharField(default="UTC", max_length=64)),
                (
                    "meeting",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="recurrence",
                        to="meetings.meeting",
                    ),
                ),
                owner_field(),
            ],
            options={
                "abstract": False,
            },
        ),
    ]
