from rest_framework import serializers

from dialysis.models import Staff
from dialysis.serializers.common import clean_text


class StaffWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(choices=[c[0] for c in Staff.ROLE_CHOICES])
    contactNumber = serializers.CharField(source='contact_number', required=False, allow_blank=True, max_length=32)
    specialization = serializers.CharField(required=False, allow_blank=True, max_length=128)
    isActive = serializers.BooleanField(source='is_active', required=False)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v


class AssignSlotSerializer(serializers.Serializer):
    slotId = serializers.IntegerField(allow_null=True)


class StaffListQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=[c[0] for c in Staff.ROLE_CHOICES], required=False)
    slotId = serializers.IntegerField(required=False)
    activeOnly = serializers.BooleanField(required=False, default=False)


def serialize_staff(st: Staff) -> dict:
    slot = st.assigned_slot
    return {
        'staffId': st.id,
        'name': st.name,
        'role': st.role,
        'contactNumber': st.contact_number,
        'specialization': st.specialization,
        'assignedSlot': slot.id if slot else None,
        'slotName': slot.name if slot else None,
        'isActive': st.is_active,
        'createdAt': st.created_at.isoformat() if st.created_at else None,
    }
