"""
Ward schedule views: slot catalog, daily bed board, availability and the
manual history sweep.
"""
from __future__ import annotations

from django.core.cache import cache
from django.utils import timezone
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from dialysis.permissions import IsClinicalStaff, IsClinicStaff
from dialysis.serializers.common import DateQuerySerializer
from dialysis.services import beds, history
from dialysis.services.audit import log_action
from dialysis.services.notify import broadcast_refresh
from dialysis.services.slots import list_slots, serialize_slot

SLOTS_CACHE_KEY = 'schedule:slots'


class BedCheckQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    slotId = serializers.IntegerField()
    bedNumber = serializers.IntegerField(required=False)
    excludeScheduleId = serializers.IntegerField(required=False)


def _day(request):
    q = DateQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data.get('date') or timezone.localdate()


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def slots(request):
    cached = cache.get(SLOTS_CACHE_KEY)
    if cached:
        return Response(cached)
    payload = {'ok': True, 'data': [serialize_slot(s) for s in list_slots()]}
    cache.set(SLOTS_CACHE_KEY, payload, 300)
    return Response(payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def daily_schedule(request):
    return Response({'ok': True, 'data': beds.daily_schedule(_day(request))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def bed_availability(request):
    return Response({'ok': True, 'data': beds.bed_availability(_day(request))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def check_bed(request):
    """Validate one bed, or list the free beds of a slot when no bed is given."""
    q = BedCheckQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    day = vd.get('date') or timezone.localdate()
    if 'bedNumber' not in vd:
        return Response({'ok': True, 'data': {
            'date': day.isoformat(),
            'slotId': vd['slotId'],
            'availableBeds': beds.available_beds(day, vd['slotId']),
            'suggestedBed': beds.next_available_bed(day, vd['slotId']),
        }})
    result = beds.check_bed(day, vd['slotId'], vd['bedNumber'], exclude_session_id=vd.get('excludeScheduleId'))
    return Response({'ok': True, 'data': result.as_dict()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def move_to_history(request):
    count = history.archive_past_sessions()
    log_action(user=request.user, action='move_to_history', object_type='session', detail={'count': count})
    if count:
        broadcast_refresh(['schedule', 'history'])
    message = 'Completed sessions moved to history' if count else 'No sessions to move at this time'
    return Response({'ok': True, 'data': {'moved': count, 'message': message}})
