import pytest
from rest_framework.test import APIClient

from dialysis.exceptions import NotFoundError, ValidationError
from dialysis.models import AuditEvent, Slot, Staff
from dialysis.services import staffing

pytestmark = pytest.mark.django_db


def _roster(slot_id, doctors=0, nurses=0, technicians=0, active=True):
    for role, n in (('doctor', doctors), ('nurse', nurses), ('technician', technicians)):
        for i in range(n):
            Staff.objects.create(name=f'{role} {slot_id}-{i}', role=role, assigned_slot_id=slot_id, is_active=active)


@pytest.mark.parametrize('capacity,expected', [
    (10, {'doctor': 2, 'nurse': 3, 'technician': 2, 'total': 7}),
    (4, {'doctor': 1, 'nurse': 2, 'technician': 1, 'total': 4}),
    (12, {'doctor': 2, 'nurse': 3, 'technician': 3, 'total': 8}),
])
def test_recommended_staffing_scales_with_capacity(capacity, expected):
    assert staffing.recommended_staffing(capacity) == expected


@pytest.mark.parametrize('total,recommended,expected', [
    (3, 7, (42, 'Critical')),
    (4, 7, (57, 'Understaffed')),
    (5, 7, (71, 'Understaffed')),
    (6, 7, (85, 'Adequate')),
    (8, 7, (114, 'Adequate')),
    (0, 7, (0, 'Critical')),
])
def test_staffing_level_thresholds(total, recommended, expected):
    assert staffing.staffing_level(total, recommended) == expected


def test_slot_status_counts_only_active_staff_on_that_slot():
    _roster(1, doctors=2, nurses=3, technicians=1)
    _roster(1, nurses=2, active=False)
    _roster(2, doctors=1)
    Staff.objects.create(name='Floating Nurse', role='nurse')

    row = staffing.slot_staffing_status(1)
    assert row['bedCapacity'] == 10
    assert (row['doctorCount'], row['nurseCount'], row['technicianCount']) == (2, 3, 1)
    assert row['totalStaff'] == 6
    assert row['recommendedTotal'] == 7
    assert row['staffingPercentage'] == 85
    assert row['status'] == 'Adequate'

    overview = staffing.staffing_overview()
    assert [r['slotId'] for r in overview] == [1, 2, 3, 4]
    assert overview[1]['totalStaff'] == 1
    assert overview[1]['status'] == 'Critical'
    assert overview[3]['totalStaff'] == 0


def test_slot_status_unknown_slot():
    with pytest.raises(NotFoundError):
        staffing.slot_staffing_status(9)


def test_assign_and_unassign_slot_is_audited(make_user):
    hod = make_user('hod')
    member = Staff.objects.create(name='Anil Das', role='technician')
    member = staffing.assign_slot(hod, member, 3)
    assert member.assigned_slot_id == 3
    member = staffing.assign_slot(hod, member, None)
    assert member.assigned_slot_id is None
    events = list(AuditEvent.objects.filter(action='staff_assign_slot').order_by('id'))
    assert [e.detail for e in events] == [{'from': None, 'to': 3}, {'from': 3, 'to': None}]


def test_assign_slot_rejects_unknown_slot_and_inactive_staff():
    member = Staff.objects.create(name='Leela Rao', role='nurse', is_active=False)
    with pytest.raises(NotFoundError):
        staffing.assign_slot(None, member, 7)
    with pytest.raises(ValidationError):
        staffing.assign_slot(None, member, 1)
    member.refresh_from_db()
    assert member.assigned_slot_id is None


def test_list_staff_filters():
    _roster(1, doctors=1, nurses=1)
    _roster(2, nurses=1, active=False)
    assert staffing.list_staff(role='nurse').count() == 2
    assert staffing.list_staff(role='nurse', active_only=True).count() == 1
    assert staffing.list_staff(slot_id=2).count() == 1


# ---- HTTP ----

def test_roster_crud_over_api(make_user, client_for):
    hod = client_for(make_user('hod'))
    r = hod.post('/api/staff', {'name': 'Dr. Suresh Pillai', 'role': 'doctor', 'specialization': 'Nephrology'},
                 format='json')
    assert r.status_code == 201
    staff_id = r.data['data']['staffId']
    assert r.data['data']['assignedSlot'] is None

    r = hod.put(f'/api/staff/{staff_id}/assign-slot', {'slotId': 2}, format='json')
    assert r.status_code == 200
    assert r.data['data']['assignedSlot'] == 2
    assert r.data['data']['slotName'] == 'Afternoon Shift'

    r = hod.get('/api/staff', {'slotId': 2})
    assert [m['staffId'] for m in r.data['data']] == [staff_id]

    r = hod.put(f'/api/staff/{staff_id}', {'contactNumber': '9876543210'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['contactNumber'] == '9876543210'
    assert r.data['data']['role'] == 'doctor'

    r = hod.put(f'/api/staff/{staff_id}/toggle-status')
    assert r.data['data']['isActive'] is False

    r = hod.get('/api/staffing-status/2')
    assert r.status_code == 200
    assert r.data['data']['doctorCount'] == 0


def test_unassign_with_null_slot(make_user, client_for):
    admin = client_for(make_user('admin'))
    member = Staff.objects.create(name='Kavya Menon', role='nurse', assigned_slot_id=1)
    r = admin.put(f'/api/staff/{member.id}/assign-slot', {'slotId': None}, format='json')
    assert r.status_code == 200
    assert r.data['data']['assignedSlot'] is None
    r = admin.put(f'/api/staff/{member.id}/assign-slot', {'slotId': 5}, format='json')
    assert r.status_code == 404


def test_roster_write_roles(make_user, client_for):
    member = Staff.objects.create(name='Joseph Thomas', role='technician')
    nurse = client_for(make_user('nurse'))
    assert nurse.get('/api/staff').status_code == 200
    assert nurse.get('/api/staffing-status').status_code == 200
    assert nurse.post('/api/staff', {'name': 'New Nurse', 'role': 'nurse'}, format='json').status_code == 403
    assert nurse.put(f'/api/staff/{member.id}/assign-slot', {'slotId': 1}, format='json').status_code == 403

    hod = client_for(make_user('hod'))
    assert hod.delete(f'/api/staff/{member.id}').status_code == 403
    admin = client_for(make_user('admin'))
    assert admin.delete(f'/api/staff/{member.id}').status_code == 200
    assert not Staff.objects.filter(pk=member.id).exists()

    assert APIClient().get('/api/staffing-status').status_code == 401


def test_staffing_status_over_api(make_user, client_for):
    Slot.objects.filter(pk=3).update(bed_capacity=4)
    _roster(3, doctors=1, nurses=1)
    r = client_for(make_user('technician')).get('/api/staffing-status')
    assert r.status_code == 200
    evening = next(row for row in r.data['data'] if row['slotId'] == 3)
    assert evening['recommendedTotal'] == 4
    assert evening['staffingPercentage'] == 50
    assert evening['status'] == 'Understaffed'
    r = client_for(make_user('doctor')).get('/api/staffing-status/8')
    assert r.status_code == 404
