import logging
from typing import Optional

from django.db import transaction
from django.db.models import Q

from dialysis.exceptions import ConflictError, NotFoundError
from dialysis.models import Patient
from dialysis.services.audit import log_action

logger = logging.getLogger(__name__)

PATIENT_FIELDS = (
    'mrn', 'name', 'age', 'gender', 'contact_number', 'emergency_contact', 'address',
    'hd_cycle', 'hd_frequency', 'hd_start_date', 'dry_weight', 'access_type',
)


def get_patient(patient_id, *, include_inactive: bool = False) -> Patient:
    qs = Patient.objects.all() if include_inactive else Patient.objects.filter(is_active=True)
    try:
        return qs.get(pk=patient_id)
    except (Patient.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f'Patient {patient_id} not found')


def _ensure_mrn_free(mrn, exclude_id=None):
    if not mrn:
        return
    qs = Patient.objects.filter(mrn=mrn)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise ConflictError(f'MRN {mrn} is already registered', conflict={'mrn': mrn})


def create_patient(current_user, **data) -> Patient:
    _ensure_mrn_free(data.get('mrn'))
    with transaction.atomic():
        patient = Patient.objects.create(**{k: v for k, v in data.items() if k in PATIENT_FIELDS})
        log_action(user=current_user, action='patient_create', object_type='patient', object_id=patient.id)
    logger.info("patient %s registered", patient.id)
    return patient


def update_patient(current_user, patient: Patient, data: dict) -> Patient:
    if 'mrn' in data:
        _ensure_mrn_free(data['mrn'], exclude_id=patient.id)
    changed = [k for k in PATIENT_FIELDS if k in data]
    for k in changed:
        setattr(patient, k, data[k])
    with transaction.atomic():
        patient.save()
        log_action(user=current_user, action='patient_update', object_type='patient', object_id=patient.id,
                   detail={'fields': changed})
    return patient


def deactivate_patient(current_user, patient: Patient) -> Patient:
    """Soft delete: the record and its sessions stay for history."""
    patient.is_active = False
    with transaction.atomic():
        patient.save(update_fields=['is_active', 'updated_at'])
        log_action(user=current_user, action='patient_deactivate', object_type='patient', object_id=patient.id)
    logger.info("patient %s deactivated", patient.id)
    return patient


def list_patients(*, q: Optional[str] = None, include_inactive: bool = False):
    qs = Patient.objects.all() if include_inactive else Patient.objects.filter(is_active=True)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(mrn__icontains=q) | Q(contact_number__icontains=q))
    return qs.order_by('name', 'id')
