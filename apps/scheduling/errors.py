from enum import Enum

from django.conf import settings


class BookingError(str, Enum):
    """Why a booking change was refused. Values are the wire `reason` codes."""

    NOT_INSTALLABLE = "not_installable"
    ALREADY_BOOKED = "already_booked"
    OUTSIDE_WINDOW = "outside_window"
    EXCLUDED_DAY = "excluded_day"
    SLOT_FULL = "slot_full"
    VALIDATION = "validation_error"

    @property
    def message(self) -> str:
        return MESSAGES[self].format(
            min_days=settings.INSTALL_MIN_NOTICE_DAYS,
            max_days=settings.INSTALL_MAX_NOTICE_DAYS,
        )


MESSAGES = {
    BookingError.NOT_INSTALLABLE: (
        "This project is not ready to schedule yet. "
        "Installation can be booked once the project reaches the Installation stage."
    ),
    BookingError.ALREADY_BOOKED: (
        "This project already has a scheduled installation. "
        "Please cancel the existing appointment first, then book a new time."
    ),
    BookingError.OUTSIDE_WINDOW: (
        "Installations can only be booked between {min_days} and {max_days} days from today."
    ),
    BookingError.EXCLUDED_DAY: "Installations cannot be booked on weekends or holidays.",
    BookingError.SLOT_FULL: (
        "This installation slot is already taken. Please choose another slot or day."
    ),
    BookingError.VALIDATION: "install_date and install_slot must be provided together.",
}
