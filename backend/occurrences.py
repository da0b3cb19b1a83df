"""
occurrences.py
──────────────
Turns an alarm plus "now" into concrete fire instants for the notification
scheduler, and decides when a one-off alarm has expired.

A dated one-off alarm whose instant has passed is expired (it gets disabled by
the sweep). An undated one-off alarm never expires: it always means "the next
time the clock shows this time".
"""

from datetime import date, datetime, timedelta
from typing import List, NamedTuple, Optional, Set, Union

from holiday_calendar import HolidayCalendar
from models import Alarm, CustomRule, HolidayRule, OnceRule, WeeklyRule
from repeat_rules import occurrence_dates

# Most platforms cap pending local notifications per app at 64
MAX_PENDING_PER_ALARM = 64
DEFAULT_HORIZON_DAYS  = 30


class OnceTrigger(NamedTuple):
    fire_at: datetime


class WeeklyTrigger(NamedTuple):
    weekday: int     # 0=Sun..6=Sat
    time: str        # "HH:MM"


Trigger = Union[OnceTrigger, WeeklyTrigger]


def combine(day: date, alarm: Alarm, now: Optional[datetime] = None) -> datetime:
    """Alarm time on ``day``, in the same tz flavour (naive/aware) as ``now``."""
    tzinfo = now.tzinfo if now is not None else None
    return datetime.combine(day, alarm.clock, tzinfo=tzinfo)


def next_fire_instant(alarm: Alarm, now: datetime) -> Optional[datetime]:
    """
    The single fire instant of a one-off alarm.

    Dated alarms return their instant even when it is in the past. Undated
    alarms return today's instant, or tomorrow's when today's is not strictly
    after ``now``. Repeating alarms return None.
    """
    rule = alarm.repeat
    if not isinstance(rule, OnceRule):
        return None
    if rule.date:
        return combine(rule.date, alarm, now)
    fire_at = combine(now.date(), alarm, now)
    if fire_at <= now:
        fire_at += timedelta(days=1)
    return fire_at


def weekly_trigger_specs(alarm: Alarm) -> Set[WeeklyTrigger]:
    rule = alarm.repeat
    if not isinstance(rule, WeeklyRule) or not rule.days:
        return set()
    return {WeeklyTrigger(day, alarm.time) for day in rule.days}


def is_expired(alarm: Alarm, now: datetime) -> bool:
    rule = alarm.repeat
    if not isinstance(rule, OnceRule) or not rule.date:
        return False
    return combine(rule.date, alarm, now) < now


def registration_requests(
    alarm: Alarm,
    now: datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    calendar: Optional[HolidayCalendar] = None,
) -> List[Trigger]:
    """Every trigger that should be registered for an enabled alarm."""
    rule = alarm.repeat

    if isinstance(rule, OnceRule):
        if is_expired(alarm, now):
            return []
        return [OnceTrigger(next_fire_instant(alarm, now))]

    if isinstance(rule, WeeklyRule):
        return sorted(weekly_trigger_specs(alarm))

    if isinstance(rule, (HolidayRule, CustomRule)):
        today = now.date()
        days = occurrence_dates(alarm, today, today + timedelta(days=horizon_days), calendar)
        instants = [combine(day, alarm, now) for day in days]
        return [OnceTrigger(at) for at in instants if at > now][:MAX_PENDING_PER_ALARM]

    return []
