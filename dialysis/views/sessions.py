"""
HD session views.

Routes are registered under both ``api/hdschedule`` and
``api/HDSchedule`` for the ward front-end.  A ``phase`` in the PUT body
advances the session by exactly one phase.
"""
from __future__ import annotations

from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from dialysis.permissions import ClinicalWriteOrReadOnly, IsClinicStaff, SessionDetailAccess
from dialysis.serializers.session import (
    SessionCreateSerializer,
    SessionListQuerySerializer,
    SessionUpdateSerializer,
    serialize_session,
)
from dialysis.services import history, phases
from dialysis.services import sessions as session_service
from dialysis.services.patients import get_patient


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicalWriteOrReadOnly])
def sessions(request):
    if request.method == 'POST':
        s = SessionCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = dict(s.validated_data)
        patient = get_patient(vd.pop('patientId'))
        session = session_service.create_session(patient=patient, user=request.user, **vd)
        return Response({'ok': True, 'data': serialize_session(session)}, status=status.HTTP_201_CREATED)

    q = SessionListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = session_service.list_sessions(
        day=q.validated_data.get('date'),
        patient_id=q.validated_data.get('patientId'),
        active_only=q.validated_data['active'],
    )
    return Response({'ok': True, 'data': [serialize_session(x) for x in qs]})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, SessionDetailAccess])
def session_detail(request, session_id: int):
    session = session_service.get_session(session_id)
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_session(session, include_monitoring=True)})
    if request.method == 'DELETE':
        session_service.delete_session(session, user=request.user)
        return Response({'ok': True})

    s = SessionUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    target = vd.pop('phase', None)
    with transaction.atomic():
        if vd:
            session = session_service.update_session(session, vd, user=request.user)
        if target is not None:
            session = phases.advance_phase(session, target, user=request.user)
    session = session_service.get_session(session.pk)
    return Response({'ok': True, 'data': serialize_session(session)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def session_history(request):
    patient_id = request.query_params.get('patientId')
    if patient_id is not None:
        patient_id = get_patient(patient_id, include_inactive=True).id
    qs = history.patient_history(patient_id)
    return Response({'ok': True, 'data': [serialize_session(x) for x in qs]})
