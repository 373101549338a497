"""
Patient registry views.

Every clinic role may browse patients; registration and edits are open to
admins, the head of department, doctors and nurses.  DELETE is a soft
delete that keeps the patient's session history.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from dialysis.permissions import PatientWriteOrReadOnly
from dialysis.serializers.patient import PatientListQuerySerializer, PatientWriteSerializer, serialize_patient
from dialysis.services import patients as patient_service


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, PatientWriteOrReadOnly])
def patients(request):
    if request.method == 'POST':
        s = PatientWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = patient_service.create_patient(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_patient(patient)}, status=status.HTTP_201_CREATED)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = patient_service.list_patients(
        q=q.validated_data.get('q'), include_inactive=q.validated_data['includeInactive']
    )
    return Response({'ok': True, 'data': [serialize_patient(p) for p in qs]})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, PatientWriteOrReadOnly])
def patient_detail(request, patient_id: int):
    patient = patient_service.get_patient(patient_id, include_inactive=request.method == 'GET')
    if request.method == 'GET':
        data = serialize_patient(patient)
        data['activeSessions'] = patient.sessions.filter(is_discharged=False).count()
        return Response({'ok': True, 'data': data})
    if request.method == 'DELETE':
        patient_service.deactivate_patient(request.user, patient)
        return Response({'ok': True})
    s = PatientWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = patient_service.update_patient(request.user, patient, s.validated_data)
    return Response({'ok': True, 'data': serialize_patient(patient)})
