from django.db import models

from apps.projects.models import Project


class SlotLock(models.Model):
    """
    One row per (date, slot) that has ever been booked.

    Holds no availability data; bookings take a row lock on it so the
    capacity check and the write for a slot happen one request at a time.
    """

    date = models.DateField()
    slot = models.CharField(max_length=2, choices=Project.InstallSlot.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["date", "slot"], name="unique_slot_lock_date_slot"),
        ]

    def __str__(self):
        return f"{self.date} {self.slot}"
