import datetime
from dataclasses import dataclass
from dataclasses import field as dataclass_field

from meetings.constants import RecurrenceEditScope
from meetings.exceptions import InvalidRuleError


@dataclass(frozen=True)
class RecurrenceRuleData:
    """
    Plain description of a repeating meeting pattern, detached from storage.
    """

    frequency: str
    starts_at: datetime.datetime
    end_type: str
    interval: int = 1
    weekdays: tuple[str, ...] = ()
    monthly_option: str | None = None
    monthly_day_of_month: int | None = None
    monthly_weekday: str | None = None
    monthly_weekday_position: int | None = None
    end_date: datetime.date | None = None
    occurrence_count: int | None = None
    timezone: str = "UTC"


@dataclass
class RecurrenceRuleInputData:
    frequency: str
    end_type: str
    starts_at: datetime.datetime | None = None
    interval: int = 1
    weekdays: list[str] = dataclass_field(default_factory=list)
    monthly_option: str | None = None
    monthly_day_of_month: int | None = None
    monthly_weekday: str | None = None
    monthly_weekday_position: int | None = None
    end_date: datetime.date | None = None
    occurrence_count: int | None = None
    timezone: str = "UTC"

    def to_rule_data(self, starts_at: datetime.datetime | None = None) -> RecurrenceRuleData:
        starts_at = starts_at or self.starts_at
        if starts_at is None:
            raise InvalidRuleError("A start date is required for meetings without a date")

        return RecurrenceRuleData(
            frequency=self.frequency,
            starts_at=starts_at,
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


@dataclass
class ReconcileResult:
    inserted_ids: list[int] = dataclass_field(default_factory=list)
    updated_ids: list[int] = dataclass_field(default_factory=list)
    deleted_ids: list[int] = dataclass_field(default_factory=list)

    @property
    def write_count(self) -> int:
        return len(self.inserted_ids) + len(self.updated_ids) + len(self.deleted_ids)


@dataclass
class RecurrenceUpsertResult:
    meeting_id: int
    series_head_id: int
    generated_count: int
    scope: RecurrenceEditScope
    inserted_ids: list[int] = dataclass_field(default_factory=list)
    success: bool = True


@dataclass
class RecurrenceDeleteResult:
    meeting_id: int
    deleted_count: int
    success: bool = True
