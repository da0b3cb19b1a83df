"""
holiday_calendar.py
───────────────────
Static table of statutory public holidays (China, 2026).

Entries tagged "workday" are compensatory working days and never count as
holidays. The 2026 table carries holiday entries only. Years outside the
table are simply "not a holiday"; extending the table is a data task.
"""

from datetime import date
from typing import Iterable, List, NamedTuple, Optional


class HolidayDate(NamedTuple):
    date: date
    name: str
    type: str        # "holiday" | "workday"


HOLIDAYS_2026 = (
    HolidayDate(date(2026, 1, 1),   "New Year's Day",               "holiday"),
    # Spring Festival
    HolidayDate(date(2026, 1, 28),  "Spring Festival",              "holiday"),
    HolidayDate(date(2026, 1, 29),  "Spring Festival",              "holiday"),
    HolidayDate(date(2026, 1, 30),  "Spring Festival",              "holiday"),
    HolidayDate(date(2026, 1, 31),  "Spring Festival",              "holiday"),
    HolidayDate(date(2026, 2, 1),   "Spring Festival",              "holiday"),
    HolidayDate(date(2026, 2, 2),   "Spring Festival",              "holiday"),
    HolidayDate(date(2026, 2, 3),   "Spring Festival",              "holiday"),
    HolidayDate(date(2026, 2, 4),   "Spring Festival",              "holiday"),
    # Qingming
    HolidayDate(date(2026, 4, 4),   "Qingming Festival",            "holiday"),
    HolidayDate(date(2026, 4, 5),   "Qingming Festival",            "holiday"),
    HolidayDate(date(2026, 4, 6),   "Qingming Festival",            "holiday"),
    # Labour Day
    HolidayDate(date(2026, 5, 1),   "Labour Day",                   "holiday"),
    HolidayDate(date(2026, 5, 2),   "Labour Day",                   "holiday"),
    HolidayDate(date(2026, 5, 3),   "Labour Day",                   "holiday"),
    HolidayDate(date(2026, 5, 4),   "Labour Day",                   "holiday"),
    HolidayDate(date(2026, 5, 5),   "Labour Day",                   "holiday"),
    # Dragon Boat
    HolidayDate(date(2026, 5, 31),  "Dragon Boat Festival",         "holiday"),
    HolidayDate(date(2026, 6, 1),   "Dragon Boat Festival",         "holiday"),
    HolidayDate(date(2026, 6, 2),   "Dragon Boat Festival",         "holiday"),
    # Mid-Autumn runs into National Day
    HolidayDate(date(2026, 10, 1),  "Mid-Autumn / National Day",    "holiday"),
    HolidayDate(date(2026, 10, 2),  "National Day",                 "holiday"),
    HolidayDate(date(2026, 10, 3),  "National Day",                 "holiday"),
    HolidayDate(date(2026, 10, 4),  "National Day",                 "holiday"),
    HolidayDate(date(2026, 10, 5),  "National Day",                 "holiday"),
    HolidayDate(date(2026, 10, 6),  "National Day",                 "holiday"),
    HolidayDate(date(2026, 10, 7),  "National Day",                 "holiday"),
    HolidayDate(date(2026, 10, 8),  "National Day",                 "holiday"),
)


class HolidayCalendar:
    def __init__(self, entries: Iterable[HolidayDate] = HOLIDAYS_2026):
        self._entries = {entry.date: entry for entry in entries}

    def is_holiday(self, day: date) -> bool:
        entry = self._entries.get(day)
        return entry is not None and entry.type == "holiday"

    def holiday_name(self, day: date) -> Optional[str]:
        if not self.is_holiday(day):
            return None
        return self._entries[day].name

    def holiday_dates_in_range(self, start_year: int, end_year: int) -> List[date]:
        return sorted(
            entry.date
            for entry in self._entries.values()
            if entry.type == "holiday" and start_year <= entry.date.year <= end_year
        )

    def holidays_in_year(self, year: int) -> List[HolidayDate]:
        return sorted(
            (e for e in self._entries.values() if e.type == "holiday" and e.date.year == year),
            key=lambda e: e.date,
        )


DEFAULT_CALENDAR = HolidayCalendar()


def is_holiday(day: date) -> bool:
    return DEFAULT_CALENDAR.is_holiday(day)


def holiday_dates_in_range(start_year: int, end_year: int) -> List[date]:
    return DEFAULT_CALENDAR.holiday_dates_in_range(start_year, end_year)
