"""
Ward roster and shift staffing views.

Every clinic role may read the roster and the per-slot staffing status.
Adding, editing, assigning and toggling staff is for admins and the head
of department; removing a roster entry is for admins only.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from dialysis.permissions import IsClinicStaff, StaffRosterAccess
from dialysis.serializers.staff import (
    AssignSlotSerializer, StaffListQuerySerializer, StaffWriteSerializer, serialize_staff,
)
from dialysis.services import staffing


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, StaffRosterAccess])
def staff_list(request):
    if request.method == 'POST':
        s = StaffWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        member = staffing.create_staff(request.user, **s.validated_data)
        return Response({'ok': True, 'data': serialize_staff(member)}, status=status.HTTP_201_CREATED)

    q = StaffListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = staffing.list_staff(
        role=q.validated_data.get('role'),
        slot_id=q.validated_data.get('slotId'),
        active_only=q.validated_data['activeOnly'],
    )
    return Response({'ok': True, 'data': [serialize_staff(m) for m in qs]})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated, StaffRosterAccess])
def staff_detail(request, staff_id: int):
    member = staffing.get_staff(staff_id)
    if request.method == 'GET':
        return Response({'ok': True, 'data': serialize_staff(member)})
    if request.method == 'DELETE':
        staffing.delete_staff(request.user, member)
        return Response({'ok': True})
    s = StaffWriteSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    member = staffing.update_staff(request.user, member, s.validated_data)
    return Response({'ok': True, 'data': serialize_staff(member)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, StaffRosterAccess])
def assign_slot(request, staff_id: int):
    member = staffing.get_staff(staff_id)
    s = AssignSlotSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    member = staffing.assign_slot(request.user, member, s.validated_data['slotId'])
    return Response({'ok': True, 'data': serialize_staff(staffing.get_staff(member.pk))})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, StaffRosterAccess])
def toggle_status(request, staff_id: int):
    member = staffing.toggle_staff_status(request.user, staffing.get_staff(staff_id))
    return Response({'ok': True, 'data': serialize_staff(staffing.get_staff(member.pk))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def staffing_status(request):
    return Response({'ok': True, 'data': staffing.staffing_overview()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicStaff])
def slot_staffing_status(request, slot_id: int):
    return Response({'ok': True, 'data': staffing.slot_staffing_status(slot_id)})
