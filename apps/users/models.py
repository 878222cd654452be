from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        ADMIN = "admin", "Admin"

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CUSTOMER)
    email_confirmed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    email_confirmation_code_digest = models.CharField(max_length=128, blank=True)
    email_confirmation_sent_at = models.DateTimeField(null=True, blank=True)
    email_confirmation_expires_at = models.DateTimeField(null=True, blank=True)
    email_confirmation_window_started_at = models.DateTimeField(null=True, blank=True)
    email_confirmation_send_count = models.PositiveIntegerField(default=0)

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    @property
    def is_email_confirmed(self) -> bool:
        return self.email_confirmed_at is not None

    @property
    def display_name(self) -> str:
        full = self.get_full_name()
        return full or self.email
