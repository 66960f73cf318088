"""Victorian public holidays, used to pre-fill booking blackout dates."""

from datetime import date, timedelta

from agency.schemas.booking_schema import BlackoutDateCreate

MONDAY = 0
TUESDAY = 1


def easter_sunday(year: int) -> date:
    """Easter Sunday via the anonymous Gregorian algorithm."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    el = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * el) // 451
    month, day = divmod(h + el - 7 * m + 114, 31)
    return date(year, month, day + 1)


def nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """The n-th given weekday (Monday=0) of a month."""
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


def get_australian_holidays(year: int) -> dict[date, str]:
    easter = easter_sunday(year)
    holidays = {
        date(year, 1, 1): "New Year's Day",
        date(year, 1, 26): "Australia Day",
        nth_weekday(year, 3, MONDAY, 2): "Labour Day (VIC)",
        easter - timedelta(days=2): "Good Friday",
        easter + timedelta(days=1): "Easter Monday",
        date(year, 4, 25): "Anzac Day",
        nth_weekday(year, 6, MONDAY, 2): "King's Birthday",
        nth_weekday(year, 11, TUESDAY, 1): "Melbourne Cup Day (VIC)",
        date(year, 12, 25): "Christmas Day",
        date(year, 12, 26): "Boxing Day",
    }
    return dict(sorted(holidays.items()))


def holidays_as_blackouts(year: int) -> list[BlackoutDateCreate]:
    return [
        BlackoutDateCreate(date=day, reason=name)
        for day, name in get_australian_holidays(year).items()
    ]
