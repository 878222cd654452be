from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone


class Command(BaseCommand):
    help = "Creates (or promotes) the initial admin account. Safe to run repeatedly."

    def add_arguments(self, parser):
        parser.add_argument("--email", default=settings.SEED_ADMIN_EMAIL)
        parser.add_argument("--password", default=settings.SEED_ADMIN_PASSWORD)

    def handle(self, *args, **options):
        User = get_user_model()
        email = options["email"].strip().lower()
        password = options["password"]

        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            if not password:
                raise CommandError("A password is required to create the admin (SEED_ADMIN_PASSWORD).")
            user = User.objects.create_user(
                username=email,
                email=email,
                password=password,
                role=User.Role.ADMIN,
                email_confirmed_at=timezone.now(),
            )
            self.stdout.write(f"Admin user created: {user.email}")
            return

        if user.role != User.Role.ADMIN:
            user.role = User.Role.ADMIN
            user.save(update_fields=["role"])
        self.stdout.write(f"Admin user: {user.email}")
