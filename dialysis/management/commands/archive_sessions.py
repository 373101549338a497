from dialysis.management.commands._sweep import SweepCommand
from dialysis.sweeps import archive_sweep


class Command(SweepCommand):
    help = "Move sessions dated before today that were never discharged into history."
    sweep_name = 'archive_sessions'
    done_message = '{count} session(s) moved to history'

    def sweep(self) -> int:
        return archive_sweep()
