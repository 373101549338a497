from django.conf import settings
from django.core.management.base import BaseCommand

from dialysis.sweeps import run_once, run_periodically


class SweepCommand(BaseCommand):
    """Shared ``--loop`` / ``--interval`` handling for sweep commands."""
    sweep_name = ''
    done_message = '{count} session(s) updated'

    def sweep(self) -> int:
        raise NotImplementedError

    def add_arguments(self, parser):
        parser.add_argument('--loop', action='store_true', help='Keep running on a timer')
        parser.add_argument('--interval', type=float, default=None,
                            help='Seconds between ticks (default SWEEP_INTERVAL_SECONDS)')
        parser.add_argument('--max-ticks', type=int, default=None, help='Stop after this many ticks')

    def handle(self, *args, **options):
        if options['loop']:
            interval = options['interval'] or getattr(settings, 'SWEEP_INTERVAL_SECONDS', 300)
            ticks = run_periodically(self.sweep_name, self.sweep, interval, max_ticks=options['max_ticks'])
            self.stdout.write(self.style.SUCCESS(f"{self.sweep_name}: stopped after {ticks} tick(s)"))
            return
        count = run_once(self.sweep_name, self.sweep)
        if count is None:
            self.stderr.write(self.style.ERROR(f"{self.sweep_name}: failed, see log"))
            return
        self.stdout.write(self.style.SUCCESS(f"{self.sweep_name}: " + self.done_message.format(count=count)))
