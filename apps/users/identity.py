"""
Who is asking, reduced to what the schedule read path cares about.

Booking rules never vary by role; only the response shape does.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Admin:
    user_id: int


@dataclass(frozen=True)
class Customer:
    user_id: int


Identity = Union[Admin, Customer]


def identity_for(user) -> Identity:
    if getattr(user, "is_admin", False):
        return Admin(user_id=user.pk)
    return Customer(user_id=user.pk)
