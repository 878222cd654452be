"""
Which dates may take a new installation booking.

Two independent rules apply: the rolling notice window (3 to 30 days out by
default, inclusive) and the shop's non-working days (weekends plus a fixed
set of US holidays). A date is eligible only when it passes both.
"""

from datetime import date, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from .errors import BookingError


THURSDAY = 3

FIXED_HOLIDAYS = {
    "new_years_day": ((1, 1), "New Year's Day"),
    "independence_day": ((7, 4), "Independence Day"),
    "veterans_day": ((11, 11), "Veterans Day"),
    "christmas_eve": ((12, 24), "Christmas Eve"),
    "christmas_day": ((12, 25), "Christmas Day"),
    "new_years_eve": ((12, 31), "New Year's Eve"),
}


def today() -> date:
    return timezone.localdate()


def booking_window(ref: Optional[date] = None) -> tuple[date, date]:
    ref = ref or today()
    start = ref + timedelta(days=settings.INSTALL_MIN_NOTICE_DAYS)
    end = ref + timedelta(days=settings.INSTALL_MAX_NOTICE_DAYS)
    return start, end


def is_bookable_date(target: date, ref: Optional[date] = None) -> bool:
    start, end = booking_window(ref)
    return start <= target <= end


def thanksgiving(year: int) -> date:
    """Fourth Thursday of November, counted from November 1."""
    thursdays = 0
    day = date(year, 11, 1)
    while True:
        if day.weekday() == THURSDAY:
            thursdays += 1
            if thursdays == 4:
                return day
        day += timedelta(days=1)


def holiday_name(target: date) -> Optional[str]:
    observed = settings.INSTALL_OBSERVED_HOLIDAYS
    for key, ((month, day), name) in FIXED_HOLIDAYS.items():
        if key in observed and (target.month, target.day) == (month, day):
            return name
    if "thanksgiving" in observed and target.month == 11 and target == thanksgiving(target.year):
        return "Thanksgiving"
    return None


def is_weekend(target: date) -> bool:
    return target.weekday() >= 5


def is_excluded_day(target: date) -> bool:
    return is_weekend(target) or holiday_name(target) is not None


def check_date(target: date, ref: Optional[date] = None) -> Optional[BookingError]:
    if not is_bookable_date(target, ref):
        return BookingError.OUTSIDE_WINDOW
    if is_excluded_day(target):
        return BookingError.EXCLUDED_DAY
    return None


def is_eligible(target: date, ref: Optional[date] = None) -> bool:
    return check_date(target, ref) is None
