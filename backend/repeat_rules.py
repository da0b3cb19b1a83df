"""
repeat_rules.py
───────────────
Interpretation of an alarm's repeat rule.

  describe(alarm)                         -> display text
  occurrence_dates(alarm, start, end)     -> dates on which the alarm fires

Both are pure functions. Weekday indices follow the alarm model:
0=Sunday .. 6=Saturday.
"""

from datetime import date, timedelta
from typing import Iterator, List, Optional

from holiday_calendar import DEFAULT_CALENDAR, HolidayCalendar
from models import Alarm, CustomRule, HolidayRule, OnceRule, WeeklyRule

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
DAY_SEPARATOR = ", "

_FULL_WEEK = frozenset(range(7))
_WORKDAYS  = frozenset({1, 2, 3, 4, 5})
_WEEKEND   = frozenset({0, 6})

HOLIDAY_LABELS = {
    "all":     "all legal holidays",
    "workday": "workday eve",
    "weekend": "weekend eve",
}
GENERIC_HOLIDAY_LABEL = "legal holidays"
ONCE_LABEL  = "once"
UNSET_LABEL = "unset"


def weekday_index(day: date) -> int:
    """Sunday-first weekday index of a date (Sunday=0)."""
    return day.isoweekday() % 7


def describe(alarm: Alarm) -> str:
    rule = alarm.repeat

    if isinstance(rule, OnceRule):
        if rule.date:
            return rule.date.isoformat()
        return ONCE_LABEL

    if isinstance(rule, WeeklyRule) and rule.days:
        days = frozenset(rule.days)
        if days == _FULL_WEEK:
            return "daily"
        if days == _WORKDAYS:
            return "weekdays"
        if days == _WEEKEND:
            return "weekend"
        return DAY_SEPARATOR.join(DAY_NAMES[d] for d in sorted(days))

    if isinstance(rule, HolidayRule):
        return HOLIDAY_LABELS.get(rule.variant, GENERIC_HOLIDAY_LABEL)

    if isinstance(rule, CustomRule) and rule.interval:
        return f"every {rule.interval} days"

    return UNSET_LABEL


def occurrence_dates(
    alarm: Alarm,
    start: date,
    end: date,
    calendar: Optional[HolidayCalendar] = None,
) -> List[date]:
    """
    Dates in [start, end] on which the alarm's rule says it should fire.

    Holiday eve variants and rules without enough data resolve to no dates.
    """
    if end < start:
        return []
    rule = alarm.repeat
    calendar = calendar or DEFAULT_CALENDAR

    if isinstance(rule, OnceRule):
        if rule.date and start <= rule.date <= end:
            return [rule.date]
        return []

    if isinstance(rule, WeeklyRule):
        if not rule.days:
            return []
        wanted = set(rule.days)
        return [d for d in _date_range(start, end) if weekday_index(d) in wanted]

    if isinstance(rule, HolidayRule):
        if rule.variant != "all":
            return []
        return [
            d for d in calendar.holiday_dates_in_range(start.year, end.year)
            if start <= d <= end
        ]

    if isinstance(rule, CustomRule):
        return _interval_dates(alarm.created_at.date(), rule, start, end)

    return []


def _interval_dates(anchor: date, rule: CustomRule, start: date, end: date) -> List[date]:
    if not rule.interval:
        return []
    if rule.end_date and rule.end_date < end:
        end = rule.end_date
    step = timedelta(days=rule.interval)

    current = anchor
    if start > anchor:
        # jump to the first step on or after start
        steps = -(-(start - anchor).days // rule.interval)
        current = anchor + step * steps

    dates = []
    while current <= end:
        dates.append(current)
        current += step
    return dates


def _date_range(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
