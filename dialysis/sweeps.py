"""
Periodic background sweeps.

Each sweep runs on its own timer in its own process (a management command
with ``--loop``), out of band from request handling.  A failing tick is
logged and the next tick tries again.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from django.db import close_old_connections

from dialysis.services.history import archive_past_sessions
from dialysis.services.notify import broadcast_refresh
from dialysis.services.phases import auto_discharge_overdue

logger = logging.getLogger(__name__)


def archive_sweep() -> int:
    count = archive_past_sessions()
    if count:
        broadcast_refresh(['schedule', 'history'])
    return count


def completion_sweep() -> int:
    count = auto_discharge_overdue()
    if count:
        broadcast_refresh(['schedule'])
    return count


def run_once(name: str, func: Callable[[], int]) -> Optional[int]:
    """Run one tick; returns the affected row count, or None when the tick failed."""
    close_old_connections()
    try:
        result = func()
    except Exception:
        logger.exception("sweep %s failed; retrying next tick", name)
        return None
    finally:
        close_old_connections()
    logger.debug("sweep %s touched %s row(s)", name, result)
    return result


def run_periodically(name: str, func: Callable[[], int], interval: float,
                     max_ticks: Optional[int] = None, sleep: Callable[[float], None] = time.sleep) -> int:
    """Call ``func`` every ``interval`` seconds; returns the number of ticks run."""
    logger.info("sweep %s started (every %ss)", name, interval)
    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        run_once(name, func)
        ticks += 1
        if max_ticks is not None and ticks >= max_ticks:
            break
        sleep(interval)
    logger.info("sweep %s stopped after %s tick(s)", name, ticks)
    return ticks
