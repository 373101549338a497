"""
Session scheduling: create, update, delete and list sessions.

A patient may hold sessions in different slots on the same date, but never
two sessions in the same (date, slot).  Seat changes go through
``beds.assign_bed`` so bed conflicts are reported before the write.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from django.db import transaction
from django.db.models import QuerySet

from dialysis.exceptions import ConflictError, NotFoundError, ValidationError
from dialysis.models import Patient, Session, SessionPhase
from dialysis.services import beds, cycles
from dialysis.services.audit import log_action
from dialysis.services.notify import broadcast_refresh
from dialysis.services.phases import PRE_FIELDS

logger = logging.getLogger(__name__)

# Fields callers may set directly on create/update; seats and phase have their own paths.
EDITABLE_FIELDS = (
    'prescribed_duration', 'uf_goal', 'assigned_doctor', 'assigned_nurse',
)


def get_session(session_id, *, for_update: bool = False) -> Session:
    qs = Session.objects.select_related('patient', 'slot')
    if for_update:
        qs = Session.objects.select_for_update()
    try:
        return qs.get(pk=session_id)
    except (Session.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f'Session {session_id} not found')


def _ensure_unique_patient_slot(patient_id, day: date, slot_id, exclude_id=None) -> None:
    if slot_id is None:
        return
    qs = Session.objects.filter(patient_id=patient_id, session_date=day, slot_id=slot_id)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    other = qs.first()
    if other is not None:
        raise ConflictError(
            f'Patient already has a session in slot {slot_id} on {day}',
            conflict={'sessionId': other.id, 'patientId': patient_id, 'slotId': slot_id,
                      'sessionDate': day.isoformat()},
        )


def create_session(*, patient: Patient, session_date: date, slot_id=None, bed_number=None,
                   user=None, **fields) -> Session:
    if not patient.is_active:
        raise ValidationError('Cannot schedule an inactive patient')
    if bed_number is not None and slot_id is None:
        raise ValidationError('A bed number requires a slot')
    session = Session(patient=patient, session_date=session_date, created_by=user)
    for name in EDITABLE_FIELDS:
        if name in fields:
            setattr(session, name, fields[name])
    if 'is_auto_generated' in fields:
        session.is_auto_generated = fields['is_auto_generated']
        session.parent_session = fields.get('parent_session')

    with transaction.atomic():
        if slot_id is not None:
            _ensure_unique_patient_slot(patient.id, session_date, slot_id)
            beds.assign_bed(session, slot_id, bed_number)
        else:
            session.save()
        log_action(user=user, action='session_create', object_type='session', object_id=session.id,
                   detail={'patientId': patient.id, 'date': session_date.isoformat(),
                           'slotId': session.slot_id, 'bedNumber': session.bed_number})
    logger.info("session %s scheduled for patient %s on %s", session.id, patient.id, session_date)
    broadcast_refresh([f'schedule:{session_date.isoformat()}'])
    return session


def update_session(session: Session, data: dict, user=None) -> Session:
    """Apply prescription, staff or seat changes to a non-discharged session."""
    if session.is_discharged:
        raise ValidationError('Discharged sessions cannot be modified')
    with transaction.atomic():
        session = get_session(session.pk, for_update=True)
        if session.is_discharged:
            raise ValidationError('Discharged sessions cannot be modified')
        locked = sorted(k for k in data if k in PRE_FIELDS) if session.is_pre_dialysis_locked else []
        if locked:
            raise ValidationError(f"Pre-dialysis is locked; cannot change {', '.join(locked)}")
        for name in EDITABLE_FIELDS:
            if name in data:
                setattr(session, name, data[name])
        new_date = data.get('session_date', session.session_date)
        new_slot = data['slot_id'] if 'slot_id' in data else session.slot_id
        new_bed = data['bed_number'] if 'bed_number' in data else session.bed_number
        if new_bed is not None and new_slot is None:
            raise ValidationError('A bed number requires a slot')
        moved = (new_date, new_slot, new_bed) != (session.session_date, session.slot_id, session.bed_number)
        if moved and session.phase != SessionPhase.PRE_DIALYSIS:
            raise ValidationError('Only sessions in pre-dialysis can be rescheduled')
        session.session_date = new_date
        if moved and new_slot is not None:
            _ensure_unique_patient_slot(session.patient_id, new_date, new_slot, exclude_id=session.pk)
            beds.assign_bed(session, new_slot, new_bed)
        else:
            if new_slot is None:
                session.slot = None
                session.bed_number = None
            session.save()
        log_action(user=user, action='session_update', object_type='session', object_id=session.id,
                   detail={'fields': sorted(data)})
    broadcast_refresh([f'schedule:{session.session_date.isoformat()}'])
    return session


def delete_session(session: Session, user=None) -> None:
    sid, day = session.id, session.session_date
    with transaction.atomic():
        session.delete()
        log_action(user=user, action='session_delete', object_type='session', object_id=sid,
                   detail={'date': day.isoformat()})
    logger.info("session %s deleted", sid)
    broadcast_refresh([f'schedule:{day.isoformat()}'])


def list_sessions(*, day: Optional[date] = None, patient_id=None, active_only: bool = False) -> QuerySet:
    qs = Session.objects.select_related('patient', 'slot')
    if day is not None:
        qs = qs.filter(session_date=day)
    if patient_id is not None:
        qs = qs.filter(patient_id=patient_id)
    if active_only:
        qs = qs.filter(is_discharged=False)
    return qs.order_by('session_date', 'slot_id', 'bed_number', 'id')


def schedule_next_session(session: Session, user=None) -> dict | None:
    """Pre-schedule the follow-up of a discharged session from the patient's HD cycle.

    Keeps the slot and, when free, the bed; otherwise the next free bed by
    spacing order, or no bed when the slot is full.
    """
    patient = session.patient
    if not patient.hd_cycle or not patient.is_active:
        return None
    next_day = cycles.next_session_date(patient.hd_cycle, session.session_date)
    if next_day is None:
        return None
    existing = Session.objects.filter(patient=patient, session_date=next_day).order_by('id').first()
    if existing is not None:
        return {'scheduled': False, 'existingSessionId': existing.id, 'sessionDate': next_day.isoformat(),
                'message': 'Session already exists for next date'}

    bed = None
    if session.slot_id is not None:
        if session.bed_number and beds.check_bed(next_day, session.slot_id, session.bed_number).available:
            bed = session.bed_number
        else:
            bed = beds.next_available_bed(next_day, session.slot_id)
    follow_up = create_session(
        patient=patient, session_date=next_day, slot_id=session.slot_id, bed_number=bed, user=user,
        prescribed_duration=session.prescribed_duration, uf_goal=session.uf_goal,
        assigned_doctor=session.assigned_doctor, assigned_nurse=session.assigned_nurse,
        is_auto_generated=True, parent_session=session,
    )
    logger.info("auto-scheduled session %s for patient %s on %s", follow_up.id, patient.id, next_day)
    return {'scheduled': True, 'scheduleId': follow_up.id, 'sessionDate': next_day.isoformat(),
            'hdCycle': patient.hd_cycle, 'bedNumber': bed}
