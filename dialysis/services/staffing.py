"""
Shift staffing: the ward roster, slot assignments and per-slot staffing status.

Each active roster entry counts toward the slot it is assigned to.  The
recommended head count scales with bed capacity: one doctor per six beds,
one nurse per four beds with at least two, and one technician per five
beds.
"""
from __future__ import annotations

import logging
import math
from typing import Optional

from django.db import transaction
from django.db.models import Count, Q

from dialysis.exceptions import NotFoundError, ValidationError
from dialysis.models import Slot, Staff
from dialysis.services.audit import log_action
from dialysis.services.notify import broadcast_refresh
from dialysis.services.slots import get_slot, list_slots

logger = logging.getLogger(__name__)

STAFF_FIELDS = ('name', 'role', 'contact_number', 'specialization', 'is_active')

CRITICAL_BELOW = 50
UNDERSTAFFED_BELOW = 80


def get_staff(staff_id) -> Staff:
    try:
        return Staff.objects.select_related('assigned_slot').get(pk=staff_id)
    except (Staff.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f'Staff {staff_id} not found')


def list_staff(*, role: Optional[str] = None, slot_id=None, active_only: bool = False):
    qs = Staff.objects.select_related('assigned_slot')
    if role:
        qs = qs.filter(role=role)
    if slot_id is not None:
        qs = qs.filter(assigned_slot_id=slot_id)
    if active_only:
        qs = qs.filter(is_active=True)
    return qs.order_by('name', 'id')


def create_staff(current_user, **data) -> Staff:
    with transaction.atomic():
        staff = Staff.objects.create(**{k: v for k, v in data.items() if k in STAFF_FIELDS})
        log_action(user=current_user, action='staff_create', object_type='staff', object_id=staff.id,
                   detail={'role': staff.role})
    logger.info("staff %s added to roster as %s", staff.id, staff.role)
    return staff


def update_staff(current_user, staff: Staff, data: dict) -> Staff:
    changed = [k for k in STAFF_FIELDS if k in data]
    for k in changed:
        setattr(staff, k, data[k])
    with transaction.atomic():
        staff.save()
        log_action(user=current_user, action='staff_update', object_type='staff', object_id=staff.id,
                   detail={'fields': changed})
    broadcast_refresh(['staffing'])
    return staff


def delete_staff(current_user, staff: Staff) -> None:
    sid = staff.id
    with transaction.atomic():
        staff.delete()
        log_action(user=current_user, action='staff_delete', object_type='staff', object_id=sid)
    logger.info("staff %s removed from roster", sid)
    broadcast_refresh(['staffing'])


def toggle_staff_status(current_user, staff: Staff) -> Staff:
    with transaction.atomic():
        staff = Staff.objects.select_for_update().get(pk=staff.pk)
        staff.is_active = not staff.is_active
        staff.save(update_fields=['is_active', 'updated_at'])
        log_action(user=current_user, action='staff_toggle_status', object_type='staff', object_id=staff.id,
                   detail={'isActive': staff.is_active})
    broadcast_refresh(['staffing'])
    return staff


def assign_slot(current_user, staff: Staff, slot_id) -> Staff:
    """Put ``staff`` on a slot's shift; ``slot_id=None`` takes them off shift."""
    slot = get_slot(slot_id) if slot_id is not None else None
    with transaction.atomic():
        staff = Staff.objects.select_for_update().get(pk=staff.pk)
        if slot is not None and not staff.is_active:
            raise ValidationError('Inactive staff cannot be assigned to a slot')
        previous = staff.assigned_slot_id
        staff.assigned_slot = slot
        staff.save(update_fields=['assigned_slot', 'updated_at'])
        log_action(user=current_user, action='staff_assign_slot', object_type='staff', object_id=staff.id,
                   detail={'from': previous, 'to': slot.id if slot else None})
    logger.info("staff %s moved from slot %s to slot %s", staff.id, previous, staff.assigned_slot_id)
    broadcast_refresh(['staffing'])
    return staff


def recommended_staffing(bed_capacity: int) -> dict:
    doctors = max(1, math.ceil(bed_capacity / 6))
    nurses = max(2, math.ceil(bed_capacity / 4))
    technicians = max(1, math.ceil(bed_capacity / 5))
    return {'doctor': doctors, 'nurse': nurses, 'technician': technicians,
            'total': doctors + nurses + technicians}


def staffing_level(total: int, recommended_total: int) -> tuple[int, str]:
    """Percentage of the recommended head count (floored) and its status label."""
    percentage = int(total * 100 / recommended_total) if recommended_total else 0
    if percentage < CRITICAL_BELOW:
        return percentage, 'Critical'
    if percentage < UNDERSTAFFED_BELOW:
        return percentage, 'Understaffed'
    return percentage, 'Adequate'


def _counts(slot_ids) -> dict:
    active = Q(staff__is_active=True)
    rows = Slot.objects.filter(id__in=slot_ids).annotate(
        doctors=Count('staff', filter=active & Q(staff__role=Staff.ROLE_DOCTOR)),
        nurses=Count('staff', filter=active & Q(staff__role=Staff.ROLE_NURSE)),
        technicians=Count('staff', filter=active & Q(staff__role=Staff.ROLE_TECHNICIAN)),
    ).values('id', 'doctors', 'nurses', 'technicians')
    return {r['id']: r for r in rows}


def _status(slot: Slot, counts: dict) -> dict:
    recommended = recommended_staffing(slot.bed_capacity)
    total = counts['doctors'] + counts['nurses'] + counts['technicians']
    percentage, label = staffing_level(total, recommended['total'])
    return {
        'slotId': slot.id,
        'slotName': slot.name,
        'timeRange': slot.time_range,
        'bedCapacity': slot.bed_capacity,
        'doctorCount': counts['doctors'],
        'nurseCount': counts['nurses'],
        'technicianCount': counts['technicians'],
        'totalStaff': total,
        'recommendedDoctors': recommended['doctor'],
        'recommendedNurses': recommended['nurse'],
        'recommendedTechnicians': recommended['technician'],
        'recommendedTotal': recommended['total'],
        'staffingPercentage': percentage,
        'status': label,
    }


def slot_staffing_status(slot_id) -> dict:
    slot = get_slot(slot_id)
    return _status(slot, _counts([slot.id])[slot.id])


def staffing_overview() -> list[dict]:
    slots = list_slots()
    counts = _counts([s.id for s in slots])
    return [_status(s, counts[s.id]) for s in slots]
