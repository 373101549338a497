from decimal import Decimal

from rest_framework import serializers

from dialysis.models import MissedReason, MonitoringRecord, Session, SessionPhase, User
from dialysis.serializers.common import CleanTextField


def _decimal(**kwargs):
    kwargs.setdefault('max_digits', 5)
    kwargs.setdefault('decimal_places', 2)
    kwargs.setdefault('required', False)
    kwargs.setdefault('allow_null', True)
    kwargs.setdefault('min_value', 0)
    for bound in ('min_value', 'max_value'):
        if bound in kwargs:
            kwargs[bound] = Decimal(kwargs[bound])
    return serializers.DecimalField(**kwargs)


def _int(**kwargs):
    kwargs.setdefault('required', False)
    kwargs.setdefault('allow_null', True)
    return serializers.IntegerField(**kwargs)


class _StaffFields(serializers.Serializer):
    assignedDoctorId = serializers.PrimaryKeyRelatedField(
        source='assigned_doctor', queryset=User.objects.all(), required=False, allow_null=True
    )
    assignedNurseId = serializers.PrimaryKeyRelatedField(
        source='assigned_nurse', queryset=User.objects.all(), required=False, allow_null=True
    )
    prescribedDuration = _decimal(source='prescribed_duration', max_digits=4, max_value=12)
    ufGoal = _decimal(source='uf_goal')


class SessionCreateSerializer(_StaffFields):
    patientId = serializers.IntegerField()
    sessionDate = serializers.DateField(source='session_date')
    slotId = _int(source='slot_id', min_value=1)
    bedNumber = _int(source='bed_number', min_value=1)


class SessionUpdateSerializer(_StaffFields):
    sessionDate = serializers.DateField(source='session_date', required=False)
    slotId = _int(source='slot_id', min_value=1)
    bedNumber = _int(source='bed_number', min_value=1)
    phase = serializers.ChoiceField(choices=SessionPhase.choices, required=False)


class SessionListQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    patientId = serializers.IntegerField(required=False)
    active = serializers.BooleanField(required=False, default=False)


class PreDialysisSerializer(serializers.Serializer):
    preWeight = _decimal(source='pre_weight')
    preSBP = _int(source='pre_sbp', min_value=40, max_value=300)
    preDBP = _int(source='pre_dbp', min_value=20, max_value=200)
    preHR = _int(source='pre_hr', min_value=20, max_value=250)
    preTemperature = _decimal(source='pre_temp', max_digits=4, decimal_places=1, min_value=30, max_value=45)
    accessSite = CleanTextField(source='access_site', max_length=255)
    preAssessmentNotes = CleanTextField(source='pre_assessment_notes')
    prescribedDuration = _decimal(source='prescribed_duration', max_digits=4, max_value=12)
    ufGoal = _decimal(source='uf_goal')


class PostDialysisSerializer(serializers.Serializer):
    postWeight = _decimal(source='post_weight')
    postSBP = _int(source='post_sbp', min_value=40, max_value=300)
    postDBP = _int(source='post_dbp', min_value=20, max_value=200)
    postHR = _int(source='post_hr', min_value=20, max_value=250)
    accessBleedingTime = _int(source='access_bleeding_time', min_value=0)
    totalFluidRemoved = _decimal(source='total_fluid_removed')
    postAccessStatus = CleanTextField(source='post_access_status', max_length=255)
    dischargeNotes = CleanTextField(source='discharge_notes')


class MonitoringSerializer(serializers.Serializer):
    recordedAt = serializers.DateTimeField(source='recorded_at', required=False)
    bpSystolic = _int(source='bp_systolic', min_value=40, max_value=300)
    bpDiastolic = _int(source='bp_diastolic', min_value=20, max_value=200)
    pulse = _int(min_value=20, max_value=250)
    temperature = _decimal(max_digits=4, decimal_places=1, min_value=30, max_value=45)
    ufVolume = _decimal(source='uf_volume')
    venousPressure = _int(source='venous_pressure')
    arterialPressure = _int(source='arterial_pressure')
    bloodFlowRate = _int(source='blood_flow_rate', min_value=0)
    notes = CleanTextField()


class MarkMissedSerializer(serializers.Serializer):
    scheduleId = serializers.IntegerField()
    reason = serializers.ChoiceField(choices=MissedReason.choices)
    notes = CleanTextField()


class ResolveMissedSerializer(serializers.Serializer):
    scheduleId = serializers.IntegerField()
    resolutionNotes = CleanTextField()


class MissedListQuerySerializer(serializers.Serializer):
    unresolvedOnly = serializers.BooleanField(required=False, default=False)

    def get_fields(self):
        # "from" is a keyword, so the range fields are added here
        fields = super().get_fields()
        fields['from'] = serializers.DateField(source='date_from', required=False)
        fields['to'] = serializers.DateField(source='date_to', required=False)
        return fields

    def validate(self, attrs):
        lo, hi = attrs.get('date_from'), attrs.get('date_to')
        if lo and hi and lo > hi:
            raise serializers.ValidationError({'from': '"from" must not be after "to"'})
        return attrs


def _num(value):
    return float(value) if value is not None else None


def _ts(value):
    return value.isoformat() if value else None


def serialize_monitoring(m: MonitoringRecord) -> dict:
    return {
        'id': m.id,
        'scheduleId': m.session_id,
        'recordedAt': _ts(m.recorded_at),
        'bpSystolic': m.bp_systolic,
        'bpDiastolic': m.bp_diastolic,
        'pulse': m.pulse,
        'temperature': _num(m.temperature),
        'ufVolume': _num(m.uf_volume),
        'venousPressure': m.venous_pressure,
        'arterialPressure': m.arterial_pressure,
        'bloodFlowRate': m.blood_flow_rate,
        'notes': m.notes,
        'recordedBy': m.recorded_by_id,
    }


def serialize_session(s: Session, *, include_monitoring: bool = False) -> dict:
    data = {
        'scheduleId': s.id,
        'patientId': s.patient_id,
        'patientName': s.patient.name,
        'sessionDate': s.session_date.isoformat(),
        'slotId': s.slot_id,
        'slotName': s.slot.name if s.slot_id else None,
        'bedNumber': s.bed_number,
        'phase': s.phase,
        'isPreDialysisLocked': s.is_pre_dialysis_locked,
        'isIntraDialysisLocked': s.is_intra_dialysis_locked,
        'isDischarged': s.is_discharged,
        'isMovedToHistory': s.is_moved_to_history,
        'prescribedDuration': _num(s.prescribed_duration),
        'ufGoal': _num(s.uf_goal),
        'assignedDoctorId': s.assigned_doctor_id,
        'assignedNurseId': s.assigned_nurse_id,
        'preDialysis': {
            'preWeight': _num(s.pre_weight),
            'preSBP': s.pre_sbp,
            'preDBP': s.pre_dbp,
            'preHR': s.pre_hr,
            'preTemperature': _num(s.pre_temp),
            'accessSite': s.access_site,
            'preAssessmentNotes': s.pre_assessment_notes,
            'completedAt': _ts(s.pre_dialysis_completed_at),
        },
        'postDialysis': {
            'postWeight': _num(s.post_weight),
            'postSBP': s.post_sbp,
            'postDBP': s.post_dbp,
            'postHR': s.post_hr,
            'accessBleedingTime': s.access_bleeding_time,
            'totalFluidRemoved': _num(s.total_fluid_removed),
            'postAccessStatus': s.post_access_status,
            'dischargeNotes': s.discharge_notes,
            'weightLoss': _num(s.weight_loss),
            'startedAt': _ts(s.post_dialysis_started_at),
        },
        'dischargedAt': _ts(s.discharged_at),
        'missed': serialize_missed(s) if s.is_missed else None,
        'isAutoGenerated': s.is_auto_generated,
        'parentScheduleId': s.parent_session_id,
        'createdAt': _ts(s.created_at),
        'updatedAt': _ts(s.updated_at),
    }
    if include_monitoring:
        data['monitoring'] = [serialize_monitoring(m) for m in s.monitoring_records.all()]
    return data


def serialize_missed(s: Session) -> dict:
    return {
        'scheduleId': s.id,
        'patientId': s.patient_id,
        'patientName': s.patient.name,
        'sessionDate': s.session_date.isoformat(),
        'slotId': s.slot_id,
        'reason': s.missed_reason,
        'notes': s.missed_notes,
        'missedAt': _ts(s.missed_at),
        'markedBy': s.missed_marked_by_id,
        'isResolved': s.is_missed_resolved,
        'resolvedAt': _ts(s.missed_resolved_at),
        'resolutionNotes': s.resolution_notes,
    }
