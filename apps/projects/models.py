from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class ProjectQuerySet(models.QuerySet):
    def owned_by(self, user):
        return self.filter(user=user)

    def in_install_range(self, start, end):
        return self.filter(install_date__gte=start, install_date__lte=end)

    def active_bookings(self):
        """Scheduled projects that still hold their slot."""
        return self.filter(install_date__isnull=False, install_slot__isnull=False).exclude(
            status=Project.Status.CANCELLED
        )


class Project(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        ACQUIRING_PERMITS = "acquiring_permits", "Acquiring Permits"
        PRODUCTION = "production", "Production"
        INSTALLATION = "installation", "Installation"
        COMPLETE = "complete", "Complete"
        CANCELLED = "cancelled", "Cancelled"

    class InstallSlot(models.TextChoices):
        AM = "am", "8:00 AM - 12:00 PM"
        PM = "pm", "12:00 PM - 4:00 PM"

    INSTALLABLE_STATUS = Status.INSTALLATION

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="projects"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_projects",
    )
    name = models.CharField(max_length=200)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    location = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    install_date = models.DateField(null=True, blank=True)
    install_slot = models.CharField(
        max_length=2, choices=InstallSlot.choices, null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProjectQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["install_date", "install_slot"], name="project_install_slot_idx"),
            models.Index(fields=["status"], name="project_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(install_date__isnull=True, install_slot__isnull=True)
                    | Q(install_date__isnull=False, install_slot__isnull=False)
                ),
                name="project_install_date_and_slot_together",
            ),
        ]

    def __str__(self):
        return self.name

    @property
    def is_installable(self) -> bool:
        return self.status == self.INSTALLABLE_STATUS

    @property
    def is_scheduled(self) -> bool:
        return self.install_date is not None and self.install_slot is not None

    def clean(self):
        super().clean()
        if (self.install_date is None) != (self.install_slot is None):
            raise ValidationError(
                "install_date and install_slot must be set together or both cleared."
            )

    def set_schedule(self, install_date, install_slot):
        """
        Write both scheduling fields in one UPDATE.

        Passing one value without the other raises ValidationError and leaves
        the row untouched.
        """
        if (install_date is None) != (install_slot is None):
            raise ValidationError(
                "install_date and install_slot must be set together or both cleared."
            )
        if install_slot is not None and install_slot not in self.InstallSlot.values:
            raise ValidationError(f"Unknown install slot {install_slot!r}.")
        self.install_date = install_date
        self.install_slot = install_slot
        self.save(update_fields=["install_date", "install_slot", "updated_at"])
        return self


def project_file_upload_to(instance, filename):
    return f"projects/{instance.project_id}/{filename}"


class ProjectFile(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="files")
    file = models.FileField(upload_to=project_file_upload_to)
    filename = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100, blank=True)
    byte_size = models.PositiveBigIntegerField(default=0)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="uploaded_project_files",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return self.filename
