import time

from django.core.management.base import BaseCommand
from django.db.models import Q

from apps.projects.models import Project


BATCH_SIZE = 1000

LEGACY_STATUSES = {
    "quote_sent": Project.Status.ACQUIRING_PERMITS,
    "in_production": Project.Status.PRODUCTION,
    "ready_for_install": Project.Status.INSTALLATION,
    "scheduled": Project.Status.INSTALLATION,
    "installed": Project.Status.COMPLETE,
    "completed": Project.Status.COMPLETE,
}


class Command(BaseCommand):
    help = "Maps legacy Project.status values onto the current lifecycle stages."

    def add_arguments(self, parser):
        parser.add_argument("--batch-size", type=int, default=BATCH_SIZE)
        parser.add_argument("--sleep", type=float, default=0.0)

    def handle(self, *args, **options):
        batch_size = options["batch_size"]
        self.stdout.write("Starting project status normalization...")

        for legacy, current in LEGACY_STATUSES.items():
            updated = self._migrate(Q(status=legacy), current, batch_size, options["sleep"])
            if updated:
                self.stdout.write(f"{legacy} -> {current}: {updated} projects")

        unknown = ~Q(status__in=Project.Status.values)
        updated = self._migrate(unknown, Project.Status.DRAFT, batch_size, options["sleep"])
        if updated:
            self.stdout.write(f"unknown -> {Project.Status.DRAFT}: {updated} projects")

        self.stdout.write("Project status normalization complete!")

    def _migrate(self, condition, new_status, batch_size, pause):
        queryset = Project.objects.filter(condition)
        total = 0
        while queryset.exists():
            batch_pks = list(queryset.values_list("pk", flat=True)[:batch_size])
            total += Project.objects.filter(pk__in=batch_pks).update(status=new_status)
            if pause:
                time.sleep(pause)
        return total
