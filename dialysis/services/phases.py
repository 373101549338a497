"""
Session phase state machine.

    PRE_DIALYSIS -> INTRA_DIALYSIS -> POST_DIALYSIS -> DISCHARGED

Each transition moves exactly one step forward.  Leaving PRE_DIALYSIS
locks the pre-dialysis fields and leaving INTRA_DIALYSIS locks monitoring;
neither lock is ever cleared.  Every mutating function re-reads the row
with ``select_for_update`` so two nurses acting on the same session are
serialised by the database.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from dialysis.exceptions import IncompleteDataError, ValidationError
from dialysis.models import MonitoringRecord, Session, SessionPhase
from dialysis.services.audit import log_action
from dialysis.services.notify import broadcast_refresh

logger = logging.getLogger(__name__)

NEXT_PHASE = {
    SessionPhase.PRE_DIALYSIS: SessionPhase.INTRA_DIALYSIS,
    SessionPhase.INTRA_DIALYSIS: SessionPhase.POST_DIALYSIS,
    SessionPhase.POST_DIALYSIS: SessionPhase.DISCHARGED,
}

PRE_FIELDS = (
    'pre_weight', 'pre_sbp', 'pre_dbp', 'pre_hr', 'pre_temp',
    'access_site', 'pre_assessment_notes', 'prescribed_duration', 'uf_goal',
)
PRE_REQUIRED = ('pre_weight', 'pre_sbp', 'pre_dbp', 'access_site')

POST_FIELDS = (
    'post_weight', 'post_sbp', 'post_dbp', 'post_hr', 'access_bleeding_time',
    'total_fluid_removed', 'post_access_status', 'discharge_notes',
)
POST_REQUIRED = ('post_weight', 'post_sbp', 'post_dbp', 'post_hr', 'post_access_status', 'total_fluid_removed')

MONITORING_FIELDS = (
    'recorded_at', 'bp_systolic', 'bp_diastolic', 'pulse', 'temperature', 'uf_volume',
    'venous_pressure', 'arterial_pressure', 'blood_flow_rate', 'notes',
)


def _locked(session: Session) -> Session:
    return Session.objects.select_for_update().select_related('patient').get(pk=session.pk)


def _missing(session: Session, required) -> list[str]:
    return [f for f in required if getattr(session, f) in (None, '')]


def _require_phase(session: Session, phase: str, action: str) -> None:
    if session.is_discharged:
        raise ValidationError(f'Session {session.pk} is discharged; cannot {action}')
    if session.phase != phase:
        raise ValidationError(
            f'Cannot {action} while session is in {SessionPhase(session.phase).label}'
        )


def _apply(session: Session, data: dict, allowed) -> list[str]:
    changed = [k for k in allowed if k in data]
    for k in changed:
        setattr(session, k, data[k])
    return changed


def _announce(session: Session, action: str, user) -> None:
    log_action(user=user, action=action, object_type='session', object_id=session.pk,
               detail={'phase': session.phase})
    broadcast_refresh([f'session:{session.pk}', f'schedule:{session.session_date.isoformat()}'])


def save_pre_dialysis(session: Session, data: dict, user=None) -> Session:
    with transaction.atomic():
        session = _locked(session)
        if session.is_pre_dialysis_locked:
            raise ValidationError('Pre-dialysis assessment is locked')
        _require_phase(session, SessionPhase.PRE_DIALYSIS, 'edit pre-dialysis data')
        changed = _apply(session, data, PRE_FIELDS)
        session.save()
        log_action(user=user, action='pre_dialysis_save', object_type='session', object_id=session.pk,
                   detail={'fields': changed})
    return session


def complete_pre_dialysis(session: Session, user=None) -> Session:
    """PRE_DIALYSIS -> INTRA_DIALYSIS once weight, blood pressure and access site are recorded."""
    with transaction.atomic():
        session = _locked(session)
        _require_phase(session, SessionPhase.PRE_DIALYSIS, 'start dialysis')
        if session.is_missed:
            raise ValidationError('Session was marked as missed')
        missing = _missing(session, PRE_REQUIRED)
        if missing:
            raise IncompleteDataError(missing)
        now = timezone.now()
        session.phase = SessionPhase.INTRA_DIALYSIS
        session.is_pre_dialysis_locked = True
        session.pre_dialysis_completed_at = now
        session.intra_dialysis_started_at = now
        session.save()
        _announce(session, 'pre_dialysis_complete', user)
    logger.info("session %s moved to INTRA_DIALYSIS", session.pk)
    return session


def add_monitoring_record(session: Session, data: dict, user=None) -> MonitoringRecord:
    with transaction.atomic():
        session = _locked(session)
        if session.is_intra_dialysis_locked:
            raise ValidationError('Intra-dialysis monitoring is locked')
        _require_phase(session, SessionPhase.INTRA_DIALYSIS, 'record monitoring')
        values = {k: data[k] for k in MONITORING_FIELDS if k in data}
        values.setdefault('recorded_at', timezone.now())
        record = MonitoringRecord.objects.create(session=session, recorded_by=user, **values)
    broadcast_refresh([f'session:{session.pk}'])
    return record


def start_post_dialysis(session: Session, user=None) -> Session:
    with transaction.atomic():
        session = _locked(session)
        _require_phase(session, SessionPhase.INTRA_DIALYSIS, 'start post-dialysis')
        session.phase = SessionPhase.POST_DIALYSIS
        session.is_intra_dialysis_locked = True
        session.post_dialysis_started_at = timezone.now()
        session.save()
        _announce(session, 'post_dialysis_start', user)
    logger.info("session %s moved to POST_DIALYSIS", session.pk)
    return session


def save_post_dialysis(session: Session, data: dict, user=None) -> Session:
    with transaction.atomic():
        session = _locked(session)
        _require_phase(session, SessionPhase.POST_DIALYSIS, 'edit post-dialysis data')
        changed = _apply(session, data, POST_FIELDS)
        session.save()
        log_action(user=user, action='post_dialysis_save', object_type='session', object_id=session.pk,
                   detail={'fields': changed})
    return session


def complete_post_dialysis(session: Session, user=None, auto_schedule: bool | None = None):
    """POST_DIALYSIS -> DISCHARGED.

    Returns ``(session, next_session_info)``; the second item is None when
    no follow-up was scheduled.
    """
    from dialysis.services.sessions import schedule_next_session

    with transaction.atomic():
        session = _locked(session)
        _require_phase(session, SessionPhase.POST_DIALYSIS, 'discharge')
        missing = _missing(session, POST_REQUIRED)
        if missing:
            raise IncompleteDataError(missing)
        if session.pre_weight is not None and session.post_weight is not None:
            session.weight_loss = Decimal(session.pre_weight) - Decimal(session.post_weight)
        session.phase = SessionPhase.DISCHARGED
        session.is_discharged = True
        session.discharged_at = timezone.now()
        session.save()
        _announce(session, 'discharge', user)
    logger.info("session %s discharged", session.pk)

    if auto_schedule is None:
        auto_schedule = getattr(settings, 'AUTO_SCHEDULE_NEXT_SESSION', True)
    next_info = schedule_next_session(session, user=user) if auto_schedule else None
    return session, next_info


_TRANSITIONS = {
    SessionPhase.INTRA_DIALYSIS: complete_pre_dialysis,
    SessionPhase.POST_DIALYSIS: start_post_dialysis,
    SessionPhase.DISCHARGED: lambda s, user=None: complete_post_dialysis(s, user=user)[0],
}


def advance_phase(session: Session, target, user=None) -> Session:
    """Move to ``target``, which must be the phase right after the current one."""
    try:
        target = SessionPhase(target)
    except ValueError:
        raise ValidationError(f'Unknown phase: {target!r}')
    if session.is_discharged:
        raise ValidationError(f'Session {session.pk} is discharged')
    if target == session.phase:
        return session
    expected = NEXT_PHASE.get(SessionPhase(session.phase))
    if target != expected:
        raise ValidationError(
            f'Cannot move from {session.phase} to {target}; next phase is {expected}'
        )
    return _TRANSITIONS[target](session, user=user)


def auto_discharge_overdue(now: datetime | None = None, grace: timedelta | None = None) -> int:
    """Discharge sessions left in POST_DIALYSIS longer than ``grace``.

    One conditional UPDATE: a session discharged by staff in the meantime no
    longer matches and is not touched twice.
    """
    now = now or timezone.now()
    if grace is None:
        grace = timedelta(minutes=getattr(settings, 'POST_DIALYSIS_GRACE_MINUTES', 60))
    count = Session.objects.filter(
        phase=SessionPhase.POST_DIALYSIS,
        is_discharged=False,
        post_dialysis_started_at__lte=now - grace,
    ).update(
        phase=SessionPhase.DISCHARGED,
        is_discharged=True,
        discharged_at=now,
        updated_at=now,
    )
    if count:
        logger.info("auto-discharged %s session(s) past %s in post-dialysis", count, grace)
    return count


def phase_status(session: Session) -> dict:
    def ts(value):
        return value.isoformat() if value else None

    nxt = NEXT_PHASE.get(SessionPhase(session.phase))
    return {
        'scheduleId': session.pk,
        'currentPhase': session.phase,
        'nextPhase': nxt.value if nxt else None,
        'isPreDialysisLocked': session.is_pre_dialysis_locked,
        'isIntraDialysisLocked': session.is_intra_dialysis_locked,
        'isDischarged': session.is_discharged,
        'isMovedToHistory': session.is_moved_to_history,
        'preDialysisCompletedAt': ts(session.pre_dialysis_completed_at),
        'intraDialysisStartedAt': ts(session.intra_dialysis_started_at),
        'postDialysisStartedAt': ts(session.post_dialysis_started_at),
        'dischargedAt': ts(session.discharged_at),
        'missingPreDialysisFields': _missing(session, PRE_REQUIRED) if session.phase == SessionPhase.PRE_DIALYSIS else [],
        'missingPostDialysisFields': _missing(session, POST_REQUIRED) if session.phase == SessionPhase.POST_DIALYSIS else [],
    }
