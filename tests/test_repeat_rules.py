from datetime import date, datetime

import pytest

from models import Alarm, CustomRule, HolidayRule, OnceRule, WeeklyRule
from repeat_rules import describe, occurrence_dates, weekday_index


def _alarm(repeat, **kwargs) -> Alarm:
    return Alarm(time="08:00", repeat=repeat, **kwargs)


def test_describe_once_without_date():
    assert describe(_alarm(OnceRule())) == "once"


def test_describe_once_with_date():
    assert describe(_alarm(OnceRule(date=date(2026, 2, 5)))) == "2026-02-05"


@pytest.mark.parametrize(
    "days, expected",
    [
        ([0, 1, 2, 3, 4, 5, 6], "daily"),
        ([6, 5, 4, 3, 2, 1, 0], "daily"),
        ([1, 2, 3, 4, 5], "weekdays"),
        ([0, 6], "weekend"),
        ([6, 0], "weekend"),
        ([1, 3, 5], "Mon, Wed, Fri"),
        ([5, 1, 3], "Mon, Wed, Fri"),
        ([0, 1], "Sun, Mon"),
        ([2], "Tue"),
    ],
)
def test_describe_weekly(days, expected):
    assert describe(_alarm(WeeklyRule(days=days))) == expected


def test_describe_weekly_without_days_falls_back():
    assert describe(_alarm(WeeklyRule())) == "unset"
    assert describe(_alarm(WeeklyRule(days=[]))) == "unset"


@pytest.mark.parametrize(
    "variant, expected",
    [
        ("all", "all legal holidays"),
        ("workday", "workday eve"),
        ("weekend", "weekend eve"),
        (None, "legal holidays"),
    ],
)
def test_describe_holiday(variant, expected):
    assert describe(_alarm(HolidayRule(variant=variant))) == expected


def test_describe_custom():
    assert describe(_alarm(CustomRule(interval=3))) == "every 3 days"
    assert describe(_alarm(CustomRule())) == "unset"


def test_weekday_index_is_sunday_first():
    assert weekday_index(date(2026, 2, 1)) == 0     # Sunday
    assert weekday_index(date(2026, 2, 5)) == 4     # Thursday
    assert weekday_index(date(2026, 2, 7)) == 6     # Saturday


def test_weekly_occurrences():
    alarm = _alarm(WeeklyRule(days=[1, 3, 5]))
    dates = occurrence_dates(alarm, date(2026, 2, 1), date(2026, 2, 14))
    assert dates == [
        date(2026, 2, 2), date(2026, 2, 4), date(2026, 2, 6),
        date(2026, 2, 9), date(2026, 2, 11), date(2026, 2, 13),
    ]


def test_once_occurrence_only_inside_range():
    alarm = _alarm(OnceRule(date=date(2026, 2, 10)))
    assert occurrence_dates(alarm, date(2026, 2, 1), date(2026, 2, 28)) == [date(2026, 2, 10)]
    assert occurrence_dates(alarm, date(2026, 2, 11), date(2026, 2, 28)) == []
    assert occurrence_dates(_alarm(OnceRule()), date(2026, 2, 1), date(2026, 2, 28)) == []


def test_holiday_occurrences_use_calendar():
    alarm = _alarm(HolidayRule(variant="all"))
    dates = occurrence_dates(alarm, date(2026, 1, 25), date(2026, 2, 10))
    assert dates[0] == date(2026, 1, 28)
    assert dates[-1] == date(2026, 2, 4)
    assert len(dates) == 8


@pytest.mark.parametrize("variant", ["workday", "weekend", None])
def test_holiday_eve_variants_have_no_occurrences(variant):
    alarm = _alarm(HolidayRule(variant=variant))
    assert occurrence_dates(alarm, date(2026, 1, 1), date(2026, 12, 31)) == []


def test_custom_interval_counts_from_creation_day():
    alarm = _alarm(CustomRule(interval=3), created_at=datetime(2026, 2, 1, 12, 0))
    dates = occurrence_dates(alarm, date(2026, 2, 5), date(2026, 2, 15))
    assert dates == [date(2026, 2, 7), date(2026, 2, 10), date(2026, 2, 13)]


def test_custom_interval_stops_at_end_date():
    alarm = _alarm(
        CustomRule(interval=3, end_date=date(2026, 2, 11)),
        created_at=datetime(2026, 2, 1, 12, 0),
    )
    dates = occurrence_dates(alarm, date(2026, 2, 5), date(2026, 2, 28))
    assert dates == [date(2026, 2, 7), date(2026, 2, 10)]


def test_custom_interval_starts_at_anchor_inside_range():
    alarm = _alarm(CustomRule(interval=2), created_at=datetime(2026, 2, 10, 9, 0))
    dates = occurrence_dates(alarm, date(2026, 2, 1), date(2026, 2, 15))
    assert dates == [date(2026, 2, 10), date(2026, 2, 12), date(2026, 2, 14)]


def test_custom_without_interval_has_no_occurrences():
    alarm = _alarm(CustomRule(), created_at=datetime(2026, 2, 1))
    assert occurrence_dates(alarm, date(2026, 2, 1), date(2026, 3, 1)) == []


def test_reversed_range_is_empty():
    alarm = _alarm(WeeklyRule(days=[0, 1, 2, 3, 4, 5, 6]))
    assert occurrence_dates(alarm, date(2026, 2, 10), date(2026, 2, 1)) == []
