from dialysis.management.commands._sweep import SweepCommand
from dialysis.sweeps import completion_sweep


class Command(SweepCommand):
    help = "Discharge sessions left in post-dialysis past POST_DIALYSIS_GRACE_MINUTES."
    sweep_name = 'complete_sessions'
    done_message = '{count} session(s) auto-discharged'

    def sweep(self) -> int:
        return completion_sweep()
