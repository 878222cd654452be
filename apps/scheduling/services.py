"""
Read path for the installation calendar.

Admins and customers get the same counts; the customer variant narrows each
slot's holders to the caller's own projects, so nothing about other
customers' projects leaves this module on the customer path.
"""

from dataclasses import replace
from datetime import date
from typing import Optional

from apps.projects.models import Project
from apps.users.identity import Admin, Identity

from .availability import DayAvailability, load_bookings, resolve_availability
from .days import generate_days
from .serializers import AdminCalendarDaySerializer, CustomerCalendarDaySerializer


def _availability(start: date, end: date, today: Optional[date]) -> list[DayAvailability]:
    days = generate_days(start, end, today)
    return resolve_availability(days, load_bookings(start, end))


def admin_schedule(start: date, end: date, today: Optional[date] = None) -> list[DayAvailability]:
    return _availability(start, end, today)


def customer_schedule(
    start: date, end: date, user_id: int, today: Optional[date] = None
) -> list[DayAvailability]:
    own = set(
        Project.objects.owned_by(user_id)
        .in_install_range(start, end)
        .values_list("id", flat=True)
    )
    return [
        replace(
            day,
            slots=tuple(
                replace(slot, project_ids=tuple(pid for pid in slot.project_ids if pid in own))
                for slot in day.slots
            ),
        )
        for day in _availability(start, end, today)
    ]


def schedule_for(
    identity: Identity, start: date, end: date, today: Optional[date] = None
) -> list[dict]:
    if isinstance(identity, Admin):
        days = admin_schedule(start, end, today)
        held = {pid for day in days for slot in day.slots for pid in slot.project_ids}
        holders = Project.objects.select_related("user").in_bulk(held)
        return AdminCalendarDaySerializer(days, many=True, context={"projects": holders}).data

    days = customer_schedule(start, end, identity.user_id, today)
    return CustomerCalendarDaySerializer(days, many=True).data
