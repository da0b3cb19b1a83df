from datetime import date

from holiday_calendar import (
    HOLIDAYS_2026,
    HolidayCalendar,
    HolidayDate,
    holiday_dates_in_range,
    is_holiday,
)


def test_is_holiday():
    assert is_holiday(date(2026, 1, 1))
    assert is_holiday(date(2026, 10, 8))
    assert not is_holiday(date(2026, 3, 1))


def test_years_outside_table_are_not_holidays():
    assert not is_holiday(date(2027, 1, 1))
    assert holiday_dates_in_range(2027, 2030) == []


def test_holiday_dates_sorted_and_complete():
    dates = holiday_dates_in_range(2026, 2026)
    assert dates == sorted(dates)
    assert len(dates) == len(HOLIDAYS_2026)
    assert holiday_dates_in_range(2020, 2030) == dates
    assert {entry.type for entry in HOLIDAYS_2026} == {"holiday"}


def test_compensatory_workdays_are_not_holidays():
    calendar = HolidayCalendar([
        HolidayDate(date(2026, 1, 1), "New Year's Day", "holiday"),
        HolidayDate(date(2026, 1, 4), "Make-up workday", "workday"),
    ])
    assert calendar.is_holiday(date(2026, 1, 1))
    assert not calendar.is_holiday(date(2026, 1, 4))
    assert calendar.holiday_dates_in_range(2026, 2026) == [date(2026, 1, 1)]
    assert calendar.holiday_name(date(2026, 1, 4)) is None


def test_holiday_name_and_year_listing():
    calendar = HolidayCalendar()
    assert calendar.holiday_name(date(2026, 5, 1)) == "Labour Day"
    year = calendar.holidays_in_year(2026)
    assert year[0].date == date(2026, 1, 1)
    assert all(h.type == "holiday" for h in year)
