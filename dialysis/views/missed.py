from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from dialysis.permissions import IsClinicalStaff, IsClinicStaff
from dialysis.serializers.common import DateQuerySerializer
from dialysis.serializers.session import (
    MarkMissedSerializer,
    MissedListQuerySerializer,
    ResolveMissedSerializer,
    serialize_missed,
)
from dialysis.services import noshow
from dialysis.services.sessions import get_session


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def missed_list(request):
    q = MissedListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = noshow.missed_appointments(vd.get('date_from'), vd.get('date_to'), unresolved_only=vd['unresolvedOnly'])
    return Response({'ok': True, 'data': [serialize_missed(s) for s in qs]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def possible_no_shows(request):
    """Sessions past slot start plus the grace period with no pre-dialysis started."""
    q = DateQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    day = q.validated_data.get('date') or timezone.localdate()
    rows = noshow.possible_no_shows(day)
    return Response({'ok': True, 'data': rows, 'graceMinutes': int(noshow.grace_period().total_seconds() // 60)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def mark_missed(request):
    s = MarkMissedSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    session = noshow.mark_missed(get_session(vd['scheduleId']), vd['reason'], vd.get('notes', ''), user=request.user)
    return Response({'ok': True, 'data': serialize_missed(get_session(session.pk))})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def resolve_missed(request):
    s = ResolveMissedSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    session = noshow.resolve_missed(get_session(vd['scheduleId']), vd.get('resolutionNotes', ''), user=request.user)
    return Response({'ok': True, 'data': serialize_missed(get_session(session.pk))})
