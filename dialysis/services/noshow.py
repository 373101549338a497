"""
Missed appointment handling.

``possible_no_shows`` only flags candidates; a session becomes missed when
staff confirm it with a reason.  Resolving a missed session records the
follow-up and leaves the phase where it was.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from dialysis.exceptions import ValidationError
from dialysis.models import MissedReason, Session, SessionPhase, Slot
from dialysis.services.audit import log_action
from dialysis.services.notify import broadcast_refresh
from dialysis.services.slots import slot_start

logger = logging.getLogger(__name__)


def grace_period(minutes: int | None = None) -> timedelta:
    if minutes is None:
        minutes = getattr(settings, 'NO_SHOW_GRACE_MINUTES', 15)
    return timedelta(minutes=minutes)


def minutes_late(slot: Slot, day: date, now: datetime | None = None) -> int | None:
    """Minutes past the slot start, rounded up, or None when not yet late."""
    now = now or timezone.now()
    seconds = (now - slot_start(slot, day)).total_seconds()
    return math.ceil(seconds / 60) if seconds > 0 else None


def possible_no_shows(day: date | None = None, now: datetime | None = None, grace_minutes: int | None = None) -> list[dict]:
    now = now or timezone.now()
    day = day or timezone.localdate(now)
    grace = grace_period(grace_minutes)
    candidates = (
        Session.objects.filter(
            session_date=day,
            phase=SessionPhase.PRE_DIALYSIS,
            is_discharged=False,
            is_missed=False,
            slot__isnull=False,
        )
        .select_related('patient', 'slot')
        .order_by('slot_id', 'bed_number', 'id')
    )
    rows = []
    for s in candidates:
        start = slot_start(s.slot, day)
        if now < start + grace:
            continue
        rows.append({
            'scheduleId': s.id,
            'patientId': s.patient_id,
            'patientName': s.patient.name,
            'contactNumber': s.patient.contact_number,
            'sessionDate': day.isoformat(),
            'slotId': s.slot_id,
            'slotName': s.slot.name,
            'bedNumber': s.bed_number,
            'slotStart': start.isoformat(),
            'minutesLate': minutes_late(s.slot, day, now),
        })
    return rows


def mark_missed(session: Session, reason: str, notes: str = '', user=None) -> Session:
    if reason not in MissedReason.values:
        raise ValidationError(f'Unknown missed reason: {reason!r}')
    with transaction.atomic():
        session = Session.objects.select_for_update().get(pk=session.pk)
        if session.is_discharged:
            raise ValidationError('Discharged sessions cannot be marked as missed')
        if session.phase != SessionPhase.PRE_DIALYSIS:
            raise ValidationError('Only sessions that have not started can be marked as missed')
        if session.is_missed:
            raise ValidationError('Session is already marked as missed')
        session.is_missed = True
        session.missed_reason = reason
        session.missed_notes = notes or ''
        session.missed_at = timezone.now()
        session.missed_marked_by = user if getattr(user, 'pk', None) else None
        session.save()
        log_action(user=user, action='missed_mark', object_type='session', object_id=session.pk,
                   detail={'reason': reason})
    logger.info("session %s marked missed (%s)", session.pk, reason)
    broadcast_refresh([f'schedule:{session.session_date.isoformat()}', 'missed'])
    return session


def resolve_missed(session: Session, notes: str = '', user=None) -> Session:
    with transaction.atomic():
        session = Session.objects.select_for_update().get(pk=session.pk)
        if not session.is_missed:
            raise ValidationError('Session is not marked as missed')
        if session.is_missed_resolved:
            raise ValidationError('Missed appointment is already resolved')
        session.is_missed_resolved = True
        session.missed_resolved_at = timezone.now()
        session.resolution_notes = notes or ''
        session.save(update_fields=['is_missed_resolved', 'missed_resolved_at', 'resolution_notes', 'updated_at'])
        log_action(user=user, action='missed_resolve', object_type='session', object_id=session.pk)
    broadcast_refresh(['missed'])
    return session


def missed_appointments(date_from: date | None = None, date_to: date | None = None, unresolved_only: bool = False):
    qs = Session.objects.filter(is_missed=True).select_related('patient', 'slot', 'missed_marked_by')
    if date_from:
        qs = qs.filter(session_date__gte=date_from)
    if date_to:
        qs = qs.filter(session_date__lte=date_to)
    if unresolved_only:
        qs = qs.filter(is_missed_resolved=False)
    return qs.order_by('-session_date', 'slot_id', 'id')
