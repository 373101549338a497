from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from dialysis.models import User

TEST_SET = [
    ("admin1", "admin"),
    ("hod1", "hod"),
    ("doctor1", "doctor"),
    ("nurse1", "nurse"),
    ("tech1", "technician"),
]


class Command(BaseCommand):
    help = "Ensure test users exist, one per role, with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--password', default='123456')

    def handle(self, *args, **opts):
        password = make_password(opts['password'])
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": password, "is_active": True},
            )
            if not created:
                # reset password, active flag and role
                u.password = password
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
