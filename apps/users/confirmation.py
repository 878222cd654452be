"""
Email confirmation with short numeric codes.

A code is six digits, stored only as a password-style hash, and valid for
EMAIL_CONFIRMATION_CODE_TTL_MINUTES. Each account may be sent at most
EMAIL_CONFIRMATION_MAX_SENDS codes per EMAIL_CONFIRMATION_WINDOW_MINUTES.
Failures are returned as ConfirmationError values, like booking refusals.
"""

import logging
import secrets
from datetime import timedelta
from enum import Enum
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import check_password, make_password
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone


logger = logging.getLogger(__name__)

CODE_LENGTH = 6


class ConfirmationError(str, Enum):
    ALREADY_CONFIRMED = "already_confirmed"
    INVALID_CODE = "invalid_code"
    EXPIRED_CODE = "expired_code"
    TOO_MANY_SENDS = "too_many_sends"

    @property
    def message(self) -> str:
        return MESSAGES[self]


MESSAGES = {
    ConfirmationError.ALREADY_CONFIRMED: "Email already confirmed.",
    ConfirmationError.INVALID_CODE: "That confirmation code is not valid.",
    ConfirmationError.EXPIRED_CODE: "That confirmation code has expired. Request a new one.",
    ConfirmationError.TOO_MANY_SENDS: "Too many codes sent. Please wait and try again.",
}


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


def send_confirmation_code(user, now=None) -> Optional[ConfirmationError]:
    now = now or timezone.now()
    window = timedelta(minutes=settings.EMAIL_CONFIRMATION_WINDOW_MINUTES)

    with transaction.atomic():
        user = get_user_model().objects.select_for_update().get(pk=user.pk)
        if user.is_email_confirmed:
            return ConfirmationError.ALREADY_CONFIRMED

        started = user.email_confirmation_window_started_at
        if started is None or now - started >= window:
            user.email_confirmation_window_started_at = now
            user.email_confirmation_send_count = 0
        if user.email_confirmation_send_count >= settings.EMAIL_CONFIRMATION_MAX_SENDS:
            logger.warning("Confirmation code limit reached", extra={"user_id": user.pk})
            return ConfirmationError.TOO_MANY_SENDS

        code = generate_code()
        user.email_confirmation_code_digest = make_password(code)
        user.email_confirmation_sent_at = now
        user.email_confirmation_expires_at = now + timedelta(
            minutes=settings.EMAIL_CONFIRMATION_CODE_TTL_MINUTES
        )
        user.email_confirmation_send_count += 1
        user.save(
            update_fields=[
                "email_confirmation_code_digest",
                "email_confirmation_sent_at",
                "email_confirmation_expires_at",
                "email_confirmation_window_started_at",
                "email_confirmation_send_count",
            ]
        )

    send_mail(
        subject="Your confirmation code",
        message=(
            f"Hi {user.first_name or user.email},\n\n"
            f"Your confirmation code is {code}. "
            f"It expires in {settings.EMAIL_CONFIRMATION_CODE_TTL_MINUTES} minutes.\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    logger.info(
        "Confirmation code sent",
        extra={"user_id": user.pk, "send_count": user.email_confirmation_send_count},
    )
    return None


def confirm_email(user, code: str, now=None) -> Optional[ConfirmationError]:
    now = now or timezone.now()
    if user.is_email_confirmed:
        return ConfirmationError.ALREADY_CONFIRMED
    if not user.email_confirmation_code_digest or not check_password(
        code, user.email_confirmation_code_digest
    ):
        logger.info("Confirmation code rejected", extra={"user_id": user.pk})
        return ConfirmationError.INVALID_CODE
    if user.email_confirmation_expires_at is None or now > user.email_confirmation_expires_at:
        return ConfirmationError.EXPIRED_CODE

    user.email_confirmed_at = now
    user.email_confirmation_code_digest = ""
    user.email_confirmation_expires_at = None
    user.save(
        update_fields=[
            "email_confirmed_at",
            "email_confirmation_code_digest",
            "email_confirmation_expires_at",
        ]
    )
    logger.info("Email confirmed", extra={"user_id": user.pk})
    return None
