from django.core.management.base import BaseCommand

from dialysis.services.slots import ensure_slots


class Command(BaseCommand):
    help = "Ensure the four treatment slots exist (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--capacity', type=int, default=None, help='Bed capacity for newly created slots')

    def handle(self, *args, **opts):
        created = ensure_slots(opts['capacity'])
        self.stdout.write(self.style.SUCCESS(f"Slots ensured ({created} created)."))
