"""History archiver: closes out sessions whose date has passed."""
from __future__ import annotations

import logging
from datetime import date

from django.db.models import Q
from django.utils import timezone

from dialysis.models import Session

logger = logging.getLogger(__name__)


def archive_past_sessions(today: date | None = None) -> int:
    """Mark every non-discharged session dated before ``today`` as discharged and archived.

    A single conditional UPDATE, so it is idempotent and cannot race a
    concurrent discharge into a double write.
    """
    today = today or timezone.localdate()
    now = timezone.now()
    count = Session.objects.filter(is_discharged=False, session_date__lt=today).update(
        is_discharged=True, is_moved_to_history=True, updated_at=now,
    )
    if count:
        logger.info("moved %s session(s) dated before %s to history", count, today)
    return count


def patient_history(patient_id=None):
    qs = Session.objects.filter(Q(is_moved_to_history=True) | Q(is_discharged=True))
    if patient_id is not None:
        qs = qs.filter(patient_id=patient_id)
    return qs.select_related('patient', 'slot').order_by('-session_date', '-slot_id')
