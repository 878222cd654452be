"""
Booking transitions for a project's installation slot.

A project is Unscheduled (no install date) or Scheduled (date and slot set).
`book_install` moves Unscheduled -> Scheduled, `cancel_install` moves back.
There is no move: a Scheduled project must be cancelled before it can book
again. Refusals come back as a BookingResult carrying a BookingError; the
project row is left exactly as it was.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.db import transaction

from apps.projects.models import Project

from . import policy
from .availability import count_slot, slot_capacity
from .errors import BookingError
from .models import SlotLock


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingResult:
    project: Project
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None


def _lock_project(project: Project) -> Project:
    return Project.objects.select_for_update().get(pk=project.pk)


def _lock_slot(install_date: date, install_slot: str) -> SlotLock:
    lock, _ = SlotLock.objects.get_or_create(date=install_date, slot=install_slot)
    return SlotLock.objects.select_for_update().get(pk=lock.pk)


def _reject(project: Project, error: BookingError, install_date, install_slot) -> BookingResult:
    logger.warning(
        "Installation booking rejected",
        extra={
            "project_id": project.pk,
            "install_date": str(install_date) if install_date else None,
            "install_slot": install_slot,
            "reason": error.value,
        },
    )
    return BookingResult(project=project, error=error)


def book_install(
    project: Project,
    install_date: date,
    install_slot: str,
    today: Optional[date] = None,
) -> BookingResult:
    ref = today or policy.today()

    if install_date is None or install_slot not in Project.InstallSlot.values:
        return _reject(project, BookingError.VALIDATION, install_date, install_slot)

    with transaction.atomic():
        current = _lock_project(project)

        if not current.is_installable:
            return _reject(current, BookingError.NOT_INSTALLABLE, install_date, install_slot)
        if current.is_scheduled:
            return _reject(current, BookingError.ALREADY_BOOKED, install_date, install_slot)

        error = policy.check_date(install_date, ref)
        if error is not None:
            return _reject(current, error, install_date, install_slot)

        # Serializes every booking of this (date, slot) until commit.
        _lock_slot(install_date, install_slot)
        if count_slot(install_date, install_slot) >= slot_capacity():
            return _reject(current, BookingError.SLOT_FULL, install_date, install_slot)

        current.set_schedule(install_date, install_slot)

    logger.info(
        "Installation booked",
        extra={
            "project_id": current.pk,
            "install_date": str(install_date),
            "install_slot": install_slot,
        },
    )
    return BookingResult(project=current)


def cancel_install(project: Project) -> BookingResult:
    with transaction.atomic():
        current = _lock_project(project)
        if not current.is_scheduled:
            return BookingResult(project=current)
        previous_date, previous_slot = current.install_date, current.install_slot
        current.set_schedule(None, None)

    logger.info(
        "Installation cancelled",
        extra={
            "project_id": current.pk,
            "install_date": str(previous_date),
            "install_slot": previous_slot,
        },
    )
    return BookingResult(project=current)


def change_schedule(
    project: Project,
    install_date: Optional[date],
    install_slot: Optional[str],
    today: Optional[date] = None,
) -> BookingResult:
    """Apply a PATCH of the two scheduling fields: nulls cancel, values book."""
    if install_date is None and not install_slot:
        return cancel_install(project)
    if install_date is None or not install_slot:
        return _reject(project, BookingError.VALIDATION, install_date, install_slot)
    return book_install(project, install_date, install_slot, today=today)
