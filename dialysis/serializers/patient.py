from decimal import Decimal

from rest_framework import serializers

from dialysis.models import Patient
from dialysis.serializers.common import CleanTextField, clean_text


class PatientWriteSerializer(serializers.Serializer):
    mrn = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=32)
    name = serializers.CharField(max_length=255)
    age = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=130)
    gender = serializers.CharField(required=False, allow_blank=True, max_length=16)
    contactNumber = serializers.CharField(source='contact_number', required=False, allow_blank=True, max_length=32)
    emergencyContact = CleanTextField(source='emergency_contact', max_length=255)
    address = CleanTextField()
    hdCycle = serializers.CharField(source='hd_cycle', required=False, allow_blank=True, max_length=64)
    hdFrequency = serializers.IntegerField(source='hd_frequency', required=False, allow_null=True, min_value=1, max_value=7)
    hdStartDate = serializers.DateField(source='hd_start_date', required=False, allow_null=True)
    dryWeight = serializers.DecimalField(source='dry_weight', max_digits=5, decimal_places=2, required=False, allow_null=True, min_value=Decimal('0'))
    accessType = serializers.CharField(source='access_type', required=False, allow_blank=True, max_length=16)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_mrn(self, v):
        v = (v or '').strip()
        return v or None


class PatientListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    includeInactive = serializers.BooleanField(required=False, default=False)


def serialize_patient(p: Patient) -> dict:
    return {
        'patientId': p.id,
        'mrn': p.mrn,
        'name': p.name,
        'age': p.age,
        'gender': p.gender,
        'contactNumber': p.contact_number,
        'emergencyContact': p.emergency_contact,
        'address': p.address,
        'hdCycle': p.hd_cycle,
        'hdFrequency': p.hd_frequency,
        'hdStartDate': p.hd_start_date.isoformat() if p.hd_start_date else None,
        'dryWeight': float(p.dry_weight) if p.dry_weight is not None else None,
        'accessType': p.access_type,
        'isActive': p.is_active,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
    }
