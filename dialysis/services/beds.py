"""
Bed assignment checker.

A bed is occupied on (date, slot) when a non-discharged session holds it.
Sessions without a bed number are scheduled but not yet seated, so they
never count toward occupancy.  The partial unique constraint on
``Session`` backs the rule at the database level; the functions here give
callers a readable conflict before the insert is attempted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.db import IntegrityError, transaction

from dialysis.exceptions import ConflictError, ValidationError
from dialysis.models import Session
from dialysis.services.notify import broadcast_refresh
from dialysis.services.slots import get_slot, list_slots

logger = logging.getLogger(__name__)


@dataclass
class BedCheck:
    available: bool
    conflict: Optional[dict] = None

    def as_dict(self) -> dict:
        return {'available': self.available, 'conflict': self.conflict}


def _active(day: date, slot_id: int):
    return Session.objects.filter(
        session_date=day, slot_id=slot_id, is_discharged=False, bed_number__isnull=False
    )


def _conflict(session: Session) -> dict:
    return {
        'sessionId': session.id,
        'patientId': session.patient_id,
        'patientName': session.patient.name,
        'slotId': session.slot_id,
        'bedNumber': session.bed_number,
        'sessionDate': session.session_date.isoformat(),
    }


def occupied_beds(day: date, slot_id: int) -> set[int]:
    return set(_active(day, slot_id).values_list('bed_number', flat=True))


def available_beds(day: date, slot_id) -> list[int]:
    """Free bed numbers in 1..capacity for ``(day, slot)``, ascending."""
    slot = get_slot(slot_id)
    taken = occupied_beds(day, slot.id)
    return [n for n in range(1, slot.bed_capacity + 1) if n not in taken]


def _validate_bed_number(slot, bed_number) -> int:
    try:
        bed_number = int(bed_number)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid bed number: {bed_number!r}')
    if not 1 <= bed_number <= slot.bed_capacity:
        raise ValidationError(f'Bed number must be between 1 and {slot.bed_capacity}')
    return bed_number


def check_bed(day: date, slot_id, bed_number, exclude_session_id: int | None = None) -> BedCheck:
    slot = get_slot(slot_id)
    bed_number = _validate_bed_number(slot, bed_number)
    qs = _active(day, slot.id).filter(bed_number=bed_number).select_related('patient')
    if exclude_session_id is not None:
        qs = qs.exclude(pk=exclude_session_id)
    holder = qs.first()
    if holder is None:
        return BedCheck(available=True)
    return BedCheck(available=False, conflict=_conflict(holder))


def next_available_bed(day: date, slot_id) -> int | None:
    """First free bed, spreading patients out: odd beds first, then even."""
    slot = get_slot(slot_id)
    taken = occupied_beds(day, slot.id)
    beds = range(1, slot.bed_capacity + 1)
    for n in [b for b in beds if b % 2] + [b for b in beds if not b % 2]:
        if n not in taken:
            return n
    logger.warning("all %s beds occupied for slot %s on %s", slot.bed_capacity, slot.id, day)
    return None


def assign_bed(session: Session, slot_id, bed_number, *, save: bool = True) -> Session:
    """Seat ``session`` in ``(slot, bed)`` on its own date.

    Raises ConflictError when a different active session holds the bed and
    ValidationError when the bed is outside the slot's capacity or the
    session is already discharged.
    """
    slot = get_slot(slot_id)
    if bed_number is None:
        session.slot = slot
        session.bed_number = None
        if save:
            session.save()
        return session
    bed_number = _validate_bed_number(slot, bed_number)
    if session.is_discharged:
        raise ValidationError('Cannot assign a bed to a discharged session')

    with transaction.atomic():
        holders = list(
            _active(session.session_date, slot.id)
            .filter(bed_number=bed_number)
            .select_for_update()
        )
        holder = next((s for s in holders if s.pk != session.pk), None)
        if holder is not None:
            logger.warning(
                "bed %s slot %s on %s already held by session %s",
                bed_number, slot.id, session.session_date, holder.pk,
            )
            raise ConflictError(
                f'Bed {bed_number} in {slot.name} is already assigned on {session.session_date}',
                conflict=_conflict(holder),
            )
        session.slot = slot
        session.bed_number = bed_number
        if save:
            try:
                with transaction.atomic():
                    session.save()
            except IntegrityError:
                raise ConflictError(f'Bed {bed_number} in {slot.name} was just taken')
    logger.info("session %s seated at slot %s bed %s on %s", session.pk, slot.id, bed_number, session.session_date)
    if session.pk:
        broadcast_refresh([f'schedule:{session.session_date.isoformat()}'])
    return session


def bed_availability(day: date) -> list[dict]:
    rows = []
    for slot in list_slots():
        taken = occupied_beds(day, slot.id)
        rows.append({
            'slotId': slot.id,
            'slotName': slot.name,
            'timeRange': slot.time_range,
            'totalBeds': slot.bed_capacity,
            'occupiedBeds': len(taken),
            'availableBeds': [n for n in range(1, slot.bed_capacity + 1) if n not in taken],
        })
    return rows


def daily_schedule(day: date) -> dict:
    """Per-slot bed grid for the ward board."""
    sessions = (
        Session.objects.filter(session_date=day, is_discharged=False, bed_number__isnull=False)
        .select_related('patient')
    )
    by_seat = {(s.slot_id, s.bed_number): s for s in sessions}
    slots = []
    for slot in list_slots():
        beds = []
        for n in range(1, slot.bed_capacity + 1):
            s = by_seat.get((slot.id, n))
            if s is None:
                beds.append({'bedNumber': n, 'status': 'available', 'scheduleId': None, 'patient': None})
                continue
            beds.append({
                'bedNumber': n,
                'status': 'occupied',
                'scheduleId': s.id,
                'phase': s.phase,
                'isMissed': s.is_missed,
                'patient': {'id': s.patient_id, 'name': s.patient.name, 'age': s.patient.age},
            })
        slots.append({
            'slotId': slot.id,
            'slotName': slot.name,
            'timeRange': slot.time_range,
            'beds': beds,
        })
    return {'date': day.isoformat(), 'slots': slots}
