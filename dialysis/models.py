"""
Database models for the HD scheduler.

These models capture the clinic's core concepts: staff users, patients,
the four fixed treatment slots, dialysis sessions with their phase
lifecycle, intra-dialytic monitoring readings and an audit trail.
Field names favour the clinical vocabulary used on the ward so that the
JSON responses read naturally for the front-end.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q


class User(AbstractUser):
    """Clinic staff account.

    The role is issued as a claim in the JWT and gates which dashboards
    and actions the caller may use.
    """
    ROLE_ADMIN = 'admin'
    ROLE_HOD = 'hod'
    ROLE_DOCTOR = 'doctor'
    ROLE_NURSE = 'nurse'
    ROLE_TECHNICIAN = 'technician'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_HOD, 'Head of Department'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_TECHNICIAN, 'Technician'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_NURSE, db_index=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """Identity and dialysis profile of a patient.

    Patients are never hard-deleted from the API; ``is_active`` is cleared
    instead so historical sessions keep their owner.
    """
    mrn = models.CharField(max_length=32, blank=True, null=True, unique=True, help_text="Medical record number")
    name = models.CharField(max_length=255)
    age = models.PositiveIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    contact_number = models.CharField(max_length=32, blank=True)
    emergency_contact = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    # Recurring weekly pattern, e.g. "MWF", "TTS", "Daily", "Every 3 days", "3x/week"
    hd_cycle = models.CharField(max_length=64, blank=True)
    hd_frequency = models.PositiveSmallIntegerField(null=True, blank=True, help_text="Sessions per week")
    hd_start_date = models.DateField(null=True, blank=True)
    dry_weight = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    access_type = models.CharField(max_length=16, blank=True, help_text="AVF / AVG / CVC")
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.mrn or self.pk})"


class Slot(models.Model):
    """One of the four fixed daily treatment windows."""
    id = models.PositiveSmallIntegerField(primary_key=True)
    name = models.CharField(max_length=64)
    start_time = models.TimeField()
    end_time = models.TimeField()
    bed_capacity = models.PositiveSmallIntegerField(default=10)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.name} ({self.start_time:%H:%M}-{self.end_time:%H:%M})"

    @property
    def time_range(self) -> str:
        return f"{self.start_time:%H:%M} - {self.end_time:%H:%M}"


class Staff(models.Model):
    """Ward roster entry: a doctor, nurse or technician on one slot's shift.

    Roster entries are independent of login accounts; a staff member
    without ``assigned_slot`` is on the roster but not on a shift.
    """
    ROLE_DOCTOR = 'doctor'
    ROLE_NURSE = 'nurse'
    ROLE_TECHNICIAN = 'technician'
    ROLE_CHOICES = [
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_TECHNICIAN, 'Technician'),
    ]
    name = models.CharField(max_length=255)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, db_index=True)
    contact_number = models.CharField(max_length=32, blank=True)
    specialization = models.CharField(max_length=128, blank=True)
    assigned_slot = models.ForeignKey(Slot, on_delete=models.SET_NULL, null=True, blank=True, related_name='staff')
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name', 'id']

    def __str__(self) -> str:
        return f"{self.name} ({self.role})"


class SessionPhase(models.TextChoices):
    PRE_DIALYSIS = 'PRE_DIALYSIS', 'Pre-dialysis'
    INTRA_DIALYSIS = 'INTRA_DIALYSIS', 'Intra-dialysis'
    POST_DIALYSIS = 'POST_DIALYSIS', 'Post-dialysis'
    DISCHARGED = 'DISCHARGED', 'Discharged'


class MissedReason(models.TextChoices):
    SICK = 'Sick', 'Sick'
    EMERGENCY = 'Emergency', 'Emergency'
    TRANSPORTATION = 'Transportation', 'Transportation'
    UNKNOWN = 'Unknown', 'Unknown'
    OTHER = 'Other', 'Other'


class Session(models.Model):
    """A single patient's dialysis treatment on a calendar date.

    The session walks the phases PRE_DIALYSIS → INTRA_DIALYSIS →
    POST_DIALYSIS → DISCHARGED.  Leaving the pre and intra phases sets the
    matching lock flag so the vitals already reviewed by the next phase
    cannot be edited retroactively.  While not discharged and assigned a
    bed, the session occupies (session_date, slot, bed_number).
    """
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='sessions')
    session_date = models.DateField(db_index=True)
    slot = models.ForeignKey(Slot, null=True, blank=True, on_delete=models.PROTECT, related_name='sessions')
    bed_number = models.PositiveSmallIntegerField(null=True, blank=True)

    # Phase tracking
    phase = models.CharField(max_length=16, choices=SessionPhase.choices, default=SessionPhase.PRE_DIALYSIS, db_index=True)
    is_pre_dialysis_locked = models.BooleanField(default=False)
    is_intra_dialysis_locked = models.BooleanField(default=False)
    pre_dialysis_completed_at = models.DateTimeField(null=True, blank=True)
    intra_dialysis_started_at = models.DateTimeField(null=True, blank=True)
    post_dialysis_started_at = models.DateTimeField(null=True, blank=True)
    discharged_at = models.DateTimeField(null=True, blank=True)
    is_discharged = models.BooleanField(default=False, db_index=True)
    is_moved_to_history = models.BooleanField(default=False)

    # Prescription
    prescribed_duration = models.DecimalField(max_digits=4, decimal_places=2, null=True, blank=True, help_text="Hours")
    uf_goal = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, help_text="Litres")

    # Pre-dialysis assessment
    pre_weight = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    pre_sbp = models.PositiveSmallIntegerField(null=True, blank=True)
    pre_dbp = models.PositiveSmallIntegerField(null=True, blank=True)
    pre_hr = models.PositiveSmallIntegerField(null=True, blank=True)
    pre_temp = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    access_site = models.CharField(max_length=255, blank=True)
    pre_assessment_notes = models.TextField(blank=True)

    # Post-dialysis assessment
    post_weight = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    post_sbp = models.PositiveSmallIntegerField(null=True, blank=True)
    post_dbp = models.PositiveSmallIntegerField(null=True, blank=True)
    post_hr = models.PositiveSmallIntegerField(null=True, blank=True)
    access_bleeding_time = models.PositiveSmallIntegerField(null=True, blank=True, help_text="Minutes")
    total_fluid_removed = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, help_text="Litres")
    post_access_status = models.CharField(max_length=255, blank=True)
    discharge_notes = models.TextField(blank=True)
    weight_loss = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)

    # Missed appointment
    is_missed = models.BooleanField(default=False, db_index=True)
    missed_reason = models.CharField(max_length=16, choices=MissedReason.choices, blank=True)
    missed_notes = models.TextField(blank=True)
    missed_at = models.DateTimeField(null=True, blank=True)
    missed_marked_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='missed_sessions_marked'
    )
    is_missed_resolved = models.BooleanField(default=False)
    missed_resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(blank=True)

    # Staff & lineage
    assigned_doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_sessions'
    )
    assigned_nurse = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='nurse_sessions'
    )
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='sessions_created'
    )
    is_auto_generated = models.BooleanField(default=False)
    parent_session = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='follow_up_sessions'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['session_date', 'slot_id', 'bed_number']
        constraints = [
            models.UniqueConstraint(
                fields=['session_date', 'slot', 'bed_number'],
                condition=Q(is_discharged=False, bed_number__isnull=False),
                name='uniq_active_bed_per_slot_date',
            ),
        ]
        indexes = [
            models.Index(fields=['session_date', 'slot', 'is_discharged'], name='dialysis_se_session_3f0c1a_idx'),
            models.Index(fields=['patient', 'session_date'], name='dialysis_se_patient_8b2d4e_idx'),
        ]

    def __str__(self) -> str:
        return f"Session #{self.pk} p={self.patient_id} {self.session_date} slot={self.slot_id} bed={self.bed_number}"


class MonitoringRecord(models.Model):
    """Vital-sign reading taken while the session is INTRA_DIALYSIS."""
    session = models.ForeignKey(Session, on_delete=models.CASCADE, related_name='monitoring_records')
    recorded_at = models.DateTimeField()
    bp_systolic = models.PositiveSmallIntegerField(null=True, blank=True)
    bp_diastolic = models.PositiveSmallIntegerField(null=True, blank=True)
    pulse = models.PositiveSmallIntegerField(null=True, blank=True)
    temperature = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    uf_volume = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, help_text="Litres")
    venous_pressure = models.IntegerField(null=True, blank=True)
    arterial_pressure = models.IntegerField(null=True, blank=True)
    blood_flow_rate = models.PositiveSmallIntegerField(null=True, blank=True, help_text="mL/min")
    notes = models.TextField(blank=True)
    recorded_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='monitoring_records')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['recorded_at', 'id']
        indexes = [models.Index(fields=['session', 'recorded_at'], name='dialysis_mo_session_5a7e9c_idx')]

    def __str__(self) -> str:
        return f"Monitoring s={self.session_id} @ {self.recorded_at:%F %T}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='dialysis_au_action_1c6d2f_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='dialysis_au_object__7e4b0a_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
