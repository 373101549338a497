from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from dialysis.permissions import CanRecordMonitoring, IsClinicalStaff, IsClinicStaff
from dialysis.serializers.session import (
    MonitoringSerializer,
    PostDialysisSerializer,
    PreDialysisSerializer,
    serialize_monitoring,
    serialize_session,
)
from dialysis.services import phases
from dialysis.services.sessions import get_session


def _ok(session, **extra):
    session = get_session(session.pk)
    data = {'ok': True, 'data': serialize_session(session), 'phaseStatus': phases.phase_status(session)}
    data.update(extra)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def phase_status(request, session_id: int):
    session = get_session(session_id)
    return Response({'ok': True, 'data': phases.phase_status(session)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def pre_dialysis(request, session_id: int):
    s = PreDialysisSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    session = phases.save_pre_dialysis(get_session(session_id), s.validated_data, user=request.user)
    return _ok(session)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def complete_pre_dialysis(request, session_id: int):
    """Lock the pre-dialysis assessment and start treatment.

    Fields sent in the body are saved first, so a single call may submit
    and complete the assessment.
    """
    session = get_session(session_id)
    if request.data:
        s = PreDialysisSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        session = phases.save_pre_dialysis(session, s.validated_data, user=request.user)
    session = phases.complete_pre_dialysis(session, user=request.user)
    return _ok(session)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def start_post_dialysis(request, session_id: int):
    session = phases.start_post_dialysis(get_session(session_id), user=request.user)
    return _ok(session)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def post_dialysis(request, session_id: int):
    s = PostDialysisSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    session = phases.save_post_dialysis(get_session(session_id), s.validated_data, user=request.user)
    return _ok(session)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def complete_post_dialysis(request, session_id: int):
    """Discharge the patient; ``autoScheduleNext=false`` skips the follow-up booking."""
    session = get_session(session_id)
    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    auto = data.pop('autoScheduleNext', None)
    if isinstance(auto, list):
        auto = auto[0] if auto else None
    if isinstance(auto, str):
        auto = auto.lower() not in ('0', 'false', 'no')
    if data:
        s = PostDialysisSerializer(data=data, partial=True)
        s.is_valid(raise_exception=True)
        session = phases.save_post_dialysis(session, s.validated_data, user=request.user)
    session, next_session = phases.complete_post_dialysis(session, user=request.user, auto_schedule=auto)
    return _ok(session, nextSession=next_session)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanRecordMonitoring])
def monitoring(request, session_id: int):
    session = get_session(session_id)
    if request.method == 'GET':
        records = session.monitoring_records.all()
        return Response({'ok': True, 'data': [serialize_monitoring(m) for m in records]})
    s = MonitoringSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = phases.add_monitoring_record(session, s.validated_data, user=request.user)
    return Response({'ok': True, 'data': serialize_monitoring(record)}, status=status.HTTP_201_CREATED)
