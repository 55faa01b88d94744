"""Recurrence utilities: occurrence generation for recurring meetings.

This module implements the rule expansion used by the meeting series
service. Rules always terminate, either after a number of occurrences or on
an end date, and expansion is additionally bounded by a cycle cap.

Notes:
- The anchor (``starts_at``) is always the first occurrence.
- The anchor is expressed once in the rule's ``timezone``. Weekdays, month days
  and the end date are resolved on that wall clock, and every occurrence keeps
  the anchor's local time of day. Comparisons are made on absolute instants.
"""

import calendar
import datetime
import logging
import zoneinfo
from collections.abc import Iterator

from dateutil.relativedelta import relativedelta

from meetings.constants import (
    DEFAULT_MAX_OCCURRENCE_ITERATIONS,
    WEEKDAY_OFFSETS,
    MonthlyOption,
    RecurrenceEndType,
    RecurrenceFrequency,
)
from meetings.exceptions import (
    EndDateBeforeStartError,
    InvalidRuleError,
    NeverEndingRecurrenceError,
    UnresolvableMonthlyWeekdayError,
)
from meetings.services.dataclasses import RecurrenceRuleData


logger = logging.getLogger(__name__)


def sunday_based_weekday(date: datetime.date) -> int:
    """Return the weekday of ``date`` counting Sunday as 0."""
    return (date.weekday() + 1) % 7


def weekday_code_for(date: datetime.date) -> str:
    offset = sunday_based_weekday(date)
    return next(code for code, code_offset in WEEKDAY_OFFSETS.items() if code_offset == offset)


def weekday_position_for(date: datetime.date) -> int:
    """Return the ordinal of ``date``'s weekday inside its month (1st, 2nd, ...)."""
    return (date.day - 1) // 7 + 1


def resolve_monthly_weekday(year: int, month: int, weekday: str, position: int) -> datetime.date:
    """
    Resolve the ``position``-th ``weekday`` of a month.

    Positions past the last occurrence of the weekday fall back to the last one,
    so the 5th Friday of a month with four Fridays is its 4th Friday.
    """
    days_in_month = calendar.monthrange(year, month)[1]
    first_day = datetime.date(year, month, 1)
    first_match = 1 + (WEEKDAY_OFFSETS[weekday] - sunday_based_weekday(first_day)) % 7
    day = first_match + 7 * (position - 1)
    if day > days_in_month:
        day -= 7
    if day < 1 or day > days_in_month:
        raise UnresolvableMonthlyWeekdayError(year, month, weekday, position)
    return datetime.date(year, month, day)


def local_anchor(rule: RecurrenceRuleData) -> datetime.datetime:
    """Return ``rule.starts_at`` converted to the rule's IANA timezone."""
    try:
        tz = zoneinfo.ZoneInfo(rule.timezone or "UTC")
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidRuleError(f"Invalid timezone: {rule.timezone}") from e
    return rule.starts_at.astimezone(tz)


class OccurrenceGenerator:
    """Expands a ``RecurrenceRuleData`` into an ordered, finite list of datetimes."""

    def __init__(self, max_iterations: int = DEFAULT_MAX_OCCURRENCE_ITERATIONS) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be a positive integer")
        self.max_iterations = max_iterations

    def validate(self, rule: RecurrenceRuleData) -> None:
        if rule.end_type not in RecurrenceEndType.values:
            raise NeverEndingRecurrenceError()
        if rule.frequency not in RecurrenceFrequency.values:
            raise InvalidRuleError(f"Unsupported recurrence frequency: {rule.frequency!r}")
        if rule.starts_at.tzinfo is None or rule.starts_at.utcoffset() is None:
            raise InvalidRuleError("Recurrence start must be timezone-aware")
        if rule.interval is None or rule.interval < 1:
            raise InvalidRuleError("Recurrence interval must be a positive integer")
        anchor_date = local_anchor(rule).date()

        if rule.end_type == RecurrenceEndType.AFTER:
            if not rule.occurrence_count or rule.occurrence_count < 1:
                raise InvalidRuleError("Occurrence count must be a positive integer")
        else:
            if rule.end_date is None:
                raise InvalidRuleError("An end date is required for recurrences ending on a date")
            if rule.end_date < anchor_date:
                raise EndDateBeforeStartError()

        invalid_weekdays = [day for day in rule.weekdays if day not in WEEKDAY_OFFSETS]
        if invalid_weekdays:
            raise InvalidRuleError(f"Invalid weekdays: {', '.join(invalid_weekdays)}")

        if rule.frequency == RecurrenceFrequency.MONTH:
            if rule.monthly_option not in (None, *MonthlyOption.values):
                raise InvalidRuleError(f"Unsupported monthly option: {rule.monthly_option!r}")
            if rule.monthly_day_of_month is not None and not 1 <= rule.monthly_day_of_month <= 31:
                raise InvalidRuleError("Day of month must be between 1 and 31")
            if rule.monthly_weekday is not None and rule.monthly_weekday not in WEEKDAY_OFFSETS:
                raise InvalidRuleError(f"Invalid monthly weekday: {rule.monthly_weekday!r}")
            if rule.monthly_weekday_position is not None and rule.monthly_weekday_position < 1:
                raise InvalidRuleError("Monthly weekday position must be a positive integer")

    def generate(self, rule: RecurrenceRuleData) -> list[datetime.datetime]:
        """
        Return the occurrences of ``rule`` sorted ascending, starting with ``rule.starts_at``.

        Occurrences are expressed in the rule's timezone. Generation stops at the end
        boundary, at the target count, or silently after ``max_iterations`` cycles.
        """
        self.validate(rule)

        anchor = local_anchor(rule)
        occurrences = [anchor]

        target_count: int | None = None
        end_boundary: datetime.datetime | None = None
        if rule.end_type == RecurrenceEndType.AFTER:
            target_count = rule.occurrence_count
            if target_count == 1:
                return occurrences
        else:
            # the whole end date is included, in the rule's timezone
            end_boundary = datetime.datetime.combine(
                rule.end_date, datetime.time.max, tzinfo=anchor.tzinfo
            )

        for cycle_number, cycle_candidates in enumerate(self._iter_cycles(rule, anchor)):
            if cycle_number >= self.max_iterations:
                logger.warning(
                    "Stopped generating %s recurrence after %s cycles (%s occurrences)",
                    rule.frequency,
                    self.max_iterations,
                    len(occurrences),
                )
                break

            for candidate in cycle_candidates:
                if candidate <= anchor:
                    continue
                if end_boundary is not None and candidate > end_boundary:
                    return occurrences
                occurrences.append(candidate)
                if target_count is not None and len(occurrences) >= target_count:
                    return occurrences

        return occurrences

    def _iter_cycles(
        self, rule: RecurrenceRuleData, anchor: datetime.datetime
    ) -> Iterator[list[datetime.datetime]]:
        if rule.frequency == RecurrenceFrequency.DAY:
            return self._iter_daily_cycles(rule, anchor)
        if rule.frequency == RecurrenceFrequency.WEEK:
            return self._iter_weekly_cycles(rule, anchor)
        if rule.frequency == RecurrenceFrequency.MONTH:
            return self._iter_monthly_cycles(rule, anchor)
        return self._iter_yearly_cycles(rule, anchor)

    @staticmethod
    def _at_anchor_time(date: datetime.date, anchor: datetime.datetime) -> datetime.datetime:
        return datetime.datetime.combine(date, anchor.timetz())

    def _iter_daily_cycles(
        self, rule: RecurrenceRuleData, anchor: datetime.datetime
    ) -> Iterator[list[datetime.datetime]]:
        cycle = 1
        while True:
            date = anchor.date() + datetime.timedelta(days=cycle * rule.interval)
            yield [self._at_anchor_time(date, anchor)]
            cycle += 1

    def _iter_weekly_cycles(
        self, rule: RecurrenceRuleData, anchor: datetime.datetime
    ) -> Iterator[list[datetime.datetime]]:
        anchor_date = anchor.date()
        week_start = anchor_date - datetime.timedelta(days=sunday_based_weekday(anchor_date))

        weekdays = set(rule.weekdays) or {weekday_code_for(anchor_date)}
        offsets = sorted(WEEKDAY_OFFSETS[day] for day in weekdays)

        cycle = 0
        while True:
            cycle_start = week_start + datetime.timedelta(days=cycle * 7 * rule.interval)
            yield [
                self._at_anchor_time(cycle_start + datetime.timedelta(days=offset), anchor)
                for offset in offsets
            ]
            cycle += 1

    def _iter_monthly_cycles(
        self, rule: RecurrenceRuleData, anchor: datetime.datetime
    ) -> Iterator[list[datetime.datetime]]:
        anchor_date = anchor.date()
        first_of_anchor_month = anchor_date.replace(day=1)

        by_weekday = rule.monthly_option == MonthlyOption.WEEKDAY
        day_of_month = rule.monthly_day_of_month or anchor_date.day
        weekday = rule.monthly_weekday or weekday_code_for(anchor_date)
        position = rule.monthly_weekday_position or weekday_position_for(anchor_date)

        cycle = 1
        while True:
            target_month = first_of_anchor_month + relativedelta(months=cycle * rule.interval)
            if by_weekday:
                date = resolve_monthly_weekday(
                    target_month.year, target_month.month, weekday, position
                )
            else:
                days_in_month = calendar.monthrange(target_month.year, target_month.month)[1]
                date = target_month.replace(day=min(day_of_month, days_in_month))
            yield [self._at_anchor_time(date, anchor)]
            cycle += 1

    def _iter_yearly_cycles(
        self, rule: RecurrenceRuleData, anchor: datetime.datetime
    ) -> Iterator[list[datetime.datetime]]:
        date = anchor.date()
        while True:
            # chained from the previous occurrence: a clamped Feb 29 stays on Feb 28
            date = date + relativedelta(years=rule.interval)
            yield [self._at_anchor_time(date, anchor)]
