import datetime
import logging
import zoneinfo

import pytest

from meetings.constants import MonthlyOption, RecurrenceEndType, RecurrenceFrequency
from meetings.exceptions import (
    EndDateBeforeStartError,
    InvalidRuleError,
    NeverEndingRecurrenceError,
)
from meetings.recurrence_utils import (
    OccurrenceGenerator,
    resolve_monthly_weekday,
    weekday_code_for,
    weekday_position_for,
)
from meetings.services.dataclasses import RecurrenceRuleData


# Helpers
def _dt(year, month, day, hour=9, minute=0, tzinfo=datetime.UTC):
    return datetime.datetime(year, month, day, hour, minute, tzinfo=tzinfo)


def _rule(frequency, starts_at, end_type=RecurrenceEndType.AFTER, **kwargs):
    return RecurrenceRuleData(frequency=frequency, starts_at=starts_at, end_type=end_type, **kwargs)


@pytest.fixture
def generator():
    return OccurrenceGenerator()


def test_weekly_tuesday_thursday(generator):
    rule = _rule(
        RecurrenceFrequency.WEEK,
        _dt(2024, 1, 2),
        weekdays=("t", "th"),
        occurrence_count=4,
    )

    assert generator.generate(rule) == [
        _dt(2024, 1, 2),
        _dt(2024, 1, 4),
        _dt(2024, 1, 9),
        _dt(2024, 1, 11),
    ]


def test_weekly_with_interval_skips_weeks(generator):
    rule = _rule(
        RecurrenceFrequency.WEEK,
        _dt(2024, 1, 1),
        interval=2,
        weekdays=("w", "m"),
        occurrence_count=4,
    )

    assert generator.generate(rule) == [
        _dt(2024, 1, 1),
        _dt(2024, 1, 3),
        _dt(2024, 1, 15),
        _dt(2024, 1, 17),
    ]


def test_weekly_anchor_is_first_even_off_pattern(generator):
    # Jan 1 2024 is a Monday
    rule = _rule(
        RecurrenceFrequency.WEEK,
        _dt(2024, 1, 1),
        weekdays=("w",),
        occurrence_count=3,
    )

    assert generator.generate(rule) == [_dt(2024, 1, 1), _dt(2024, 1, 3), _dt(2024, 1, 10)]


def test_weekly_without_weekdays_repeats_anchor_weekday(generator):
    rule = _rule(RecurrenceFrequency.WEEK, _dt(2024, 1, 4), occurrence_count=3)

    assert generator.generate(rule) == [_dt(2024, 1, 4), _dt(2024, 1, 11), _dt(2024, 1, 18)]


def test_daily_with_interval(generator):
    rule = _rule(RecurrenceFrequency.DAY, _dt(2024, 1, 1), interval=3, occurrence_count=3)

    assert generator.generate(rule) == [_dt(2024, 1, 1), _dt(2024, 1, 4), _dt(2024, 1, 7)]


def test_count_of_one_returns_only_the_anchor(generator):
    rule = _rule(RecurrenceFrequency.DAY, _dt(2024, 1, 1), occurrence_count=1)

    assert generator.generate(rule) == [_dt(2024, 1, 1)]


def test_monthly_day_31_clamps_to_month_length(generator):
    rule = _rule(
        RecurrenceFrequency.MONTH,
        _dt(2024, 1, 31, hour=10),
        monthly_option=MonthlyOption.DAY_OF_MONTH,
        occurrence_count=4,
    )

    assert generator.generate(rule) == [
        _dt(2024, 1, 31, hour=10),
        _dt(2024, 2, 29, hour=10),
        _dt(2024, 3, 31, hour=10),
        _dt(2024, 4, 30, hour=10),
    ]


def test_monthly_explicit_day_of_month(generator):
    rule = _rule(
        RecurrenceFrequency.MONTH,
        _dt(2024, 1, 10),
        monthly_option=MonthlyOption.DAY_OF_MONTH,
        monthly_day_of_month=15,
        occurrence_count=3,
    )

    assert generator.generate(rule) == [_dt(2024, 1, 10), _dt(2024, 2, 15), _dt(2024, 3, 15)]


def test_monthly_fifth_weekday_falls_back_to_last(generator):
    # Mar 29 2024 is the 5th Friday of March; April 2024 has only four Fridays
    rule = _rule(
        RecurrenceFrequency.MONTH,
        _dt(2024, 3, 29),
        monthly_option=MonthlyOption.WEEKDAY,
        occurrence_count=3,
    )

    assert generator.generate(rule) == [_dt(2024, 3, 29), _dt(2024, 4, 26), _dt(2024, 5, 31)]


def test_monthly_explicit_weekday_and_position(generator):
    rule = _rule(
        RecurrenceFrequency.MONTH,
        _dt(2024, 1, 2),
        monthly_option=MonthlyOption.WEEKDAY,
        monthly_weekday="m",
        monthly_weekday_position=2,
        occurrence_count=3,
    )

    assert generator.generate(rule) == [_dt(2024, 1, 2), _dt(2024, 2, 12), _dt(2024, 3, 11)]


def test_yearly_feb_29_stays_on_feb_28_once_clamped(generator):
    rule = _rule(RecurrenceFrequency.YEAR, _dt(2024, 2, 29), occurrence_count=5)

    assert generator.generate(rule) == [
        _dt(2024, 2, 29),
        _dt(2025, 2, 28),
        _dt(2026, 2, 28),
        _dt(2027, 2, 28),
        _dt(2028, 2, 28),
    ]


def test_end_date_includes_the_whole_day(generator):
    rule = _rule(
        RecurrenceFrequency.DAY,
        _dt(2024, 1, 1, hour=23),
        end_type=RecurrenceEndType.ON,
        end_date=datetime.date(2024, 1, 5),
    )

    occurrences = generator.generate(rule)

    assert len(occurrences) == 5
    assert occurrences[-1] == _dt(2024, 1, 5, hour=23)


def test_end_date_on_start_date_returns_only_the_anchor(generator):
    rule = _rule(
        RecurrenceFrequency.WEEK,
        _dt(2024, 1, 2),
        end_type=RecurrenceEndType.ON,
        end_date=datetime.date(2024, 1, 2),
        weekdays=("t", "th"),
    )

    assert generator.generate(rule) == [_dt(2024, 1, 2)]


def test_end_date_before_start_is_rejected(generator):
    rule = _rule(
        RecurrenceFrequency.DAY,
        _dt(2024, 1, 10),
        end_type=RecurrenceEndType.ON,
        end_date=datetime.date(2024, 1, 9),
    )

    with pytest.raises(EndDateBeforeStartError):
        generator.generate(rule)


def test_never_ending_rule_is_rejected(generator):
    rule = _rule(RecurrenceFrequency.DAY, _dt(2024, 1, 1), end_type="never")

    with pytest.raises(NeverEndingRecurrenceError):
        generator.generate(rule)


@pytest.mark.parametrize(
    "overrides",
    [
        {"occurrence_count": 0},
        {"occurrence_count": 3, "interval": 0},
        {"occurrence_count": 3, "weekdays": ("xx",)},
        {"occurrence_count": 3, "frequency": "hour"},
        {"end_type": RecurrenceEndType.ON, "end_date": None},
    ],
)
def test_invalid_rules_are_rejected(generator, overrides):
    values = {"frequency": RecurrenceFrequency.WEEK, "starts_at": _dt(2024, 1, 1)}
    values.update(overrides)
    rule = _rule(
        values.pop("frequency"),
        values.pop("starts_at"),
        end_type=values.pop("end_type", RecurrenceEndType.AFTER),
        **values,
    )

    with pytest.raises(InvalidRuleError):
        generator.generate(rule)


def test_naive_start_is_rejected(generator):
    rule = _rule(RecurrenceFrequency.DAY, datetime.datetime(2024, 1, 1, 9), occurrence_count=2)

    with pytest.raises(InvalidRuleError, match="timezone-aware"):
        generator.generate(rule)


def test_iteration_cap_truncates_and_logs_warning(caplog):
    generator = OccurrenceGenerator(max_iterations=3)
    rule = _rule(RecurrenceFrequency.DAY, _dt(2024, 1, 1), occurrence_count=10)

    with caplog.at_level(logging.WARNING, logger="meetings.recurrence_utils"):
        occurrences = generator.generate(rule)

    assert occurrences == [_dt(2024, 1, 1), _dt(2024, 1, 2), _dt(2024, 1, 3), _dt(2024, 1, 4)]
    assert "Stopped generating" in caplog.text


def test_iteration_cap_must_be_positive():
    with pytest.raises(ValueError, match="max_iterations"):
        OccurrenceGenerator(max_iterations=0)


def test_occurrences_keep_anchor_wall_clock_and_tzinfo(generator):
    sao_paulo = zoneinfo.ZoneInfo("America/Sao_Paulo")
    anchor = _dt(2024, 1, 2, hour=8, minute=30, tzinfo=sao_paulo)
    rule = _rule(
        RecurrenceFrequency.WEEK,
        anchor,
        weekdays=("t",),
        occurrence_count=3,
        timezone="America/Sao_Paulo",
    )

    occurrences = generator.generate(rule)

    assert [occurrence.tzinfo for occurrence in occurrences] == [sao_paulo] * 3
    assert {(occurrence.hour, occurrence.minute) for occurrence in occurrences} == {(8, 30)}


def test_weekly_weekdays_follow_the_rule_timezone(generator):
    los_angeles = zoneinfo.ZoneInfo("America/Los_Angeles")
    # Tuesday 20:00 in Los Angeles is already Wednesday in UTC
    anchor = _dt(2024, 1, 3, hour=4)
    rule = _rule(
        RecurrenceFrequency.WEEK,
        anchor,
        weekdays=("t", "th"),
        occurrence_count=4,
        timezone="America/Los_Angeles",
    )

    occurrences = generator.generate(rule)

    assert occurrences == [
        _dt(2024, 1, 2, hour=20, tzinfo=los_angeles),
        _dt(2024, 1, 4, hour=20, tzinfo=los_angeles),
        _dt(2024, 1, 9, hour=20, tzinfo=los_angeles),
        _dt(2024, 1, 11, hour=20, tzinfo=los_angeles),
    ]
    assert [occurrence.tzinfo for occurrence in occurrences] == [los_angeles] * 4


def test_monthly_day_and_end_date_follow_the_rule_timezone(generator):
    los_angeles = zoneinfo.ZoneInfo("America/Los_Angeles")
    # Jan 31 21:00 in Los Angeles is Feb 1 in UTC
    rule = _rule(
        RecurrenceFrequency.MONTH,
        _dt(2024, 2, 1, hour=5),
        end_type=RecurrenceEndType.ON,
        end_date=datetime.date(2024, 3, 31),
        timezone="America/Los_Angeles",
    )

    assert generator.generate(rule) == [
        _dt(2024, 1, 31, hour=21, tzinfo=los_angeles),
        _dt(2024, 2, 29, hour=21, tzinfo=los_angeles),
        _dt(2024, 3, 31, hour=21, tzinfo=los_angeles),
    ]


def test_local_time_of_day_is_kept_across_dst(generator):
    new_york = zoneinfo.ZoneInfo("America/New_York")
    rule = _rule(
        RecurrenceFrequency.DAY,
        _dt(2024, 3, 9, hour=9, tzinfo=new_york),
        occurrence_count=2,
        timezone="America/New_York",
    )

    occurrences = generator.generate(rule)

    assert [occurrence.hour for occurrence in occurrences] == [9, 9]
    elapsed = occurrences[1].astimezone(datetime.UTC) - occurrences[0].astimezone(datetime.UTC)
    assert elapsed == datetime.timedelta(hours=23)


def test_invalid_rule_timezone_is_rejected(generator):
    rule = _rule(
        RecurrenceFrequency.DAY, _dt(2024, 1, 1), occurrence_count=2, timezone="Nowhere/City"
    )

    with pytest.raises(InvalidRuleError, match="timezone"):
        generator.generate(rule)


def test_generate_output_is_sorted_and_unique(generator):
    rule = _rule(
        RecurrenceFrequency.WEEK,
        _dt(2024, 1, 3),
        weekdays=("sa", "m", "w"),
        end_type=RecurrenceEndType.ON,
        end_date=datetime.date(2024, 3, 1),
    )

    occurrences = generator.generate(rule)

    assert occurrences == sorted(set(occurrences))
    assert occurrences[0] == _dt(2024, 1, 3)


def test_resolve_monthly_weekday():
    assert resolve_monthly_weekday(2024, 2, "th", 1) == datetime.date(2024, 2, 1)
    assert resolve_monthly_weekday(2024, 2, "th", 5) == datetime.date(2024, 2, 29)
    assert resolve_monthly_weekday(2024, 4, "f", 5) == datetime.date(2024, 4, 26)


def test_weekday_helpers():
    # Jan 31 2024 is the 5th Wednesday of January
    date = datetime.date(2024, 1, 31)

    assert weekday_code_for(date) == "w"
    assert weekday_position_for(date) == 5
    assert weekday_code_for(datetime.date(2024, 1, 7)) == "su"
