import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, Optional

from . import policy


@dataclass(frozen=True)
class CalendarDay:
    date: date
    is_weekend: bool
    holiday: Optional[str]
    in_window: bool

    @property
    def is_excluded(self) -> bool:
        return self.is_weekend or self.holiday is not None

    @property
    def bookable(self) -> bool:
        return self.in_window and not self.is_excluded


def iter_dates(start: date, end: date) -> Iterator[date]:
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def describe_day(target: date, ref: date) -> CalendarDay:
    return CalendarDay(
        date=target,
        is_weekend=policy.is_weekend(target),
        holiday=policy.holiday_name(target),
        in_window=policy.is_bookable_date(target, ref),
    )


def generate_days(start: date, end: date, ref: Optional[date] = None) -> list[CalendarDay]:
    ref = ref or policy.today()
    return [describe_day(d, ref) for d in iter_dates(start, end)]
