"""
Per-slot occupancy for a date range.

Nothing here is stored: counts are rebuilt from the project table on every
call, so the result always reflects the current bookings.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, NamedTuple, Optional

from django.conf import settings

from apps.projects.models import Project

from .days import CalendarDay


class Booking(NamedTuple):
    install_date: date
    install_slot: str
    project_id: int


@dataclass(frozen=True)
class SlotAvailability:
    key: str
    label: str
    scheduled_count: int
    capacity: int
    day_bookable: bool
    project_ids: tuple[int, ...] = ()

    @property
    def is_full(self) -> bool:
        return self.scheduled_count >= self.capacity

    @property
    def bookable(self) -> bool:
        return self.day_bookable and not self.is_full


@dataclass(frozen=True)
class DayAvailability:
    day: CalendarDay
    slots: tuple[SlotAvailability, ...]

    @property
    def date(self) -> date:
        return self.day.date

    @property
    def bookable(self) -> bool:
        return self.day.bookable

    def slot(self, key: str) -> SlotAvailability:
        for slot in self.slots:
            if slot.key == key:
                return slot
        raise KeyError(key)


def slot_capacity() -> int:
    return settings.INSTALL_SLOT_CAPACITY


def load_bookings(start: date, end: date) -> list[Booking]:
    rows = (
        Project.objects.active_bookings()
        .in_install_range(start, end)
        .order_by("install_date", "install_slot", "id")
        .values_list("install_date", "install_slot", "id")
    )
    return [Booking(*row) for row in rows]


def count_slot(install_date: date, install_slot: str) -> int:
    return (
        Project.objects.active_bookings()
        .filter(install_date=install_date, install_slot=install_slot)
        .count()
    )


def resolve_availability(
    days: Iterable[CalendarDay],
    bookings: Iterable[Booking],
    capacity: Optional[int] = None,
) -> list[DayAvailability]:
    capacity = slot_capacity() if capacity is None else capacity

    holders: dict[tuple[date, str], list[int]] = defaultdict(list)
    for booking in bookings:
        holders[(booking.install_date, booking.install_slot)].append(booking.project_id)

    result = []
    for day in days:
        slots = tuple(
            SlotAvailability(
                key=key,
                label=label,
                scheduled_count=len(holders.get((day.date, key), ())),
                capacity=capacity,
                day_bookable=day.bookable,
                project_ids=tuple(holders.get((day.date, key), ())),
            )
            for key, label in Project.InstallSlot.choices
        )
        result.append(DayAvailability(day=day, slots=slots))
    return result
