"""
Slot catalog: the four fixed daily treatment windows.

Slot times are local wall-clock times in ``settings.TIME_ZONE``.  The
night slot runs past midnight; its start still belongs to the session
date.
"""
from __future__ import annotations

from datetime import date, datetime, time

from django.conf import settings
from django.utils import timezone

from dialysis.exceptions import NotFoundError
from dialysis.models import Slot

DEFAULT_SLOTS = [
    (1, 'Morning Shift', time(6, 0), time(10, 0)),
    (2, 'Afternoon Shift', time(11, 0), time(15, 0)),
    (3, 'Evening Shift', time(16, 0), time(20, 0)),
    (4, 'Night Shift', time(21, 0), time(1, 0)),
]
SLOT_IDS = frozenset(s[0] for s in DEFAULT_SLOTS)


def ensure_slots(capacity: int | None = None) -> int:
    """Create any missing slot rows; returns how many were created."""
    capacity = capacity or getattr(settings, 'DEFAULT_BED_CAPACITY', 10)
    created = 0
    for slot_id, name, start, end in DEFAULT_SLOTS:
        _, was_created = Slot.objects.get_or_create(
            id=slot_id,
            defaults={'name': name, 'start_time': start, 'end_time': end, 'bed_capacity': capacity},
        )
        created += int(was_created)
    return created


def get_slot(slot_id) -> Slot:
    try:
        slot_id = int(slot_id)
    except (TypeError, ValueError):
        raise NotFoundError(f'Unknown slot: {slot_id!r}')
    if slot_id not in SLOT_IDS:
        raise NotFoundError(f'Unknown slot: {slot_id}')
    slot = Slot.objects.filter(id=slot_id).first()
    if slot is None:
        raise NotFoundError(f'Slot {slot_id} is not configured')
    return slot


def list_slots() -> list[Slot]:
    return list(Slot.objects.order_by('id'))


def slot_start(slot: Slot, day: date) -> datetime:
    """Aware datetime at which ``slot`` begins on ``day``."""
    return timezone.make_aware(datetime.combine(day, slot.start_time), timezone.get_default_timezone())


def serialize_slot(slot: Slot) -> dict:
    return {
        'slotId': slot.id,
        'slotName': slot.name,
        'startTime': slot.start_time.strftime('%H:%M'),
        'endTime': slot.end_time.strftime('%H:%M'),
        'timeRange': slot.time_range,
        'bedCapacity': slot.bed_capacity,
    }
