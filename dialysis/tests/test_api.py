"""
Integration tests for the HD scheduler API.

These exercise the ward workflow end to end over HTTP: booking beds,
walking a session through its phases, missed appointments, the patient
registry and role based access.  They use Django REST Framework's
APIClient within the APITestCase base class.

To run the tests:

```
pytest -q dialysis/tests
```
"""
from datetime import date
from decimal import Decimal

from rest_framework import status
from rest_framework.test import APITestCase

from dialysis.models import Patient, Session, SessionPhase, User

DAY = '2024-06-01'


class ScheduleAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username='admin1', password='adminpass', role='admin')
        self.nurse = User.objects.create_user(username='nurse1', password='nursepass', role='nurse')
        self.tech = User.objects.create_user(username='tech1', password='techpass', role='technician')
        self.hod = User.objects.create_user(username='hod1', password='hodpass', role='hod')
        self.p1 = Patient.objects.create(name='Ravi Kumar', age=61, hd_cycle='MWF')
        self.p2 = Patient.objects.create(name='Meera Nair', age=47, hd_cycle='TTS')
        self.client.force_authenticate(user=self.nurse)

    def _book(self, patient, slot=1, bed=None, day=DAY, base='hdschedule'):
        body = {'patientId': patient.id, 'sessionDate': day, 'slotId': slot}
        if bed is not None:
            body['bedNumber'] = bed
        return self.client.post(f'/api/{base}', body, format='json')

    def test_book_and_conflict(self):
        r = self._book(self.p1, bed=3)
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertTrue(r.data['ok'])
        first_id = r.data['data']['scheduleId']
        self.assertEqual(r.data['data']['bedNumber'], 3)
        self.assertEqual(r.data['data']['phase'], 'PRE_DIALYSIS')

        r = self._book(self.p2, bed=3)
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(r.data['ok'])
        self.assertEqual(r.data['error']['code'], 'conflict')
        self.assertEqual(r.data['error']['conflict']['sessionId'], first_id)
        self.assertEqual(r.data['error']['conflict']['patientName'], 'Ravi Kumar')

        r = self._book(self.p2, bed=4)
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Session.objects.filter(session_date=date(2024, 6, 1)).count(), 2)

    def test_unknown_slot_and_bad_input(self):
        r = self._book(self.p1, slot=5, bed=1)
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(r.data['error']['code'], 'not_found')

        r = self.client.post('/api/hdschedule', {'sessionDate': 'tomorrow'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error']['code'], 'validation_error')
        self.assertIn('patientId', r.data['error']['fields'])

    def test_daily_schedule_and_availability(self):
        self._book(self.p1, slot=2, bed=6)
        r = self.client.get('/api/schedule/daily', {'date': DAY})
        self.assertEqual(r.status_code, 200)
        slot2 = r.data['data']['slots'][1]
        self.assertEqual(slot2['slotId'], 2)
        self.assertEqual(slot2['beds'][5]['status'], 'occupied')
        self.assertEqual(slot2['beds'][5]['patient']['name'], 'Ravi Kumar')

        r = self.client.get('/api/schedule/availability', {'date': DAY})
        row = next(x for x in r.data['data'] if x['slotId'] == 2)
        self.assertEqual(row['occupiedBeds'], 1)
        self.assertNotIn(6, row['availableBeds'])

        r = self.client.get('/api/schedule/beds/check', {'date': DAY, 'slotId': 2, 'bedNumber': 6})
        self.assertFalse(r.data['data']['available'])
        r = self.client.get('/api/schedule/beds/check', {'date': DAY, 'slotId': 2})
        self.assertEqual(r.data['data']['suggestedBed'], 1)

    def test_slots_catalog(self):
        r = self.client.get('/api/schedule/slots')
        self.assertEqual(r.status_code, 200)
        self.assertEqual([s['slotId'] for s in r.data['data']], [1, 2, 3, 4])
        self.assertEqual(r.data['data'][3]['timeRange'], '21:00 - 01:00')

    def test_phase_workflow_over_http(self):
        sid = self._book(self.p1, bed=1, day='2024-06-03').data['data']['scheduleId']

        r = self.client.post(f'/api/HDSchedule/{sid}/complete-pre-dialysis', {}, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error']['code'], 'incomplete_data')
        self.assertIn('pre_weight', r.data['error']['missing'])

        r = self.client.put(f'/api/hdschedule/{sid}/pre-dialysis',
                            {'preWeight': '72.5', 'preSBP': 140, 'preDBP': 85, 'accessSite': 'AVF left'},
                            format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['preDialysis']['preSBP'], 140)

        r = self.client.post(f'/api/HDSchedule/{sid}/complete-pre-dialysis', {}, format='json')
        self.assertEqual(r.data['data']['phase'], 'INTRA_DIALYSIS')
        self.assertTrue(r.data['phaseStatus']['isPreDialysisLocked'])

        r = self.client.put(f'/api/hdschedule/{sid}/pre-dialysis', {'preWeight': '80'}, format='json')
        self.assertEqual(r.status_code, 400)

        self.client.force_authenticate(user=self.tech)
        r = self.client.post(f'/api/hdschedule/{sid}/monitoring',
                             {'bpSystolic': 130, 'bpDiastolic': 80, 'pulse': 72}, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        r = self.client.post(f'/api/hdschedule/{sid}/start-post-dialysis', {}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.nurse)
        r = self.client.post(f'/api/hdschedule/{sid}/start-post-dialysis', {}, format='json')
        self.assertEqual(r.data['data']['phase'], 'POST_DIALYSIS')

        r = self.client.post(f'/api/hdschedule/{sid}/complete-post-dialysis', {
            'postWeight': '70', 'postSBP': 125, 'postDBP': 80, 'postHR': 76,
            'postAccessStatus': 'Hemostasis achieved', 'totalFluidRemoved': '2.5',
        }, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['phase'], 'DISCHARGED')
        self.assertEqual(r.data['data']['postDialysis']['weightLoss'], 2.5)
        self.assertEqual(r.data['nextSession']['sessionDate'], '2024-06-05')

        r = self.client.get(f'/api/hdschedule/{sid}')
        self.assertEqual(len(r.data['data']['monitoring']), 1)

        r = self.client.get('/api/hdschedule/history', {'patientId': self.p1.id})
        self.assertEqual([x['scheduleId'] for x in r.data['data']], [sid])

    def test_complete_post_without_auto_schedule(self):
        sid = self._book(self.p1, bed=1, day='2024-06-03').data['data']['scheduleId']
        Session.objects.filter(pk=sid).update(phase=SessionPhase.POST_DIALYSIS, is_pre_dialysis_locked=True,
                                              is_intra_dialysis_locked=True)
        r = self.client.post(f'/api/hdschedule/{sid}/complete-post-dialysis', {
            'autoScheduleNext': False, 'postWeight': '70', 'postSBP': 125, 'postDBP': 80, 'postHR': 76,
            'postAccessStatus': 'ok', 'totalFluidRemoved': '2.0',
        }, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertIsNone(r.data['nextSession'])
        self.assertEqual(Session.objects.filter(patient=self.p1).count(), 1)

    def test_phase_put_moves_one_step(self):
        sid = self._book(self.p1, bed=2).data['data']['scheduleId']
        r = self.client.put(f'/api/hdschedule/{sid}', {'phase': 'POST_DIALYSIS'}, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error']['code'], 'validation_error')

        r = self.client.put(f'/api/hdschedule/{sid}', {'bedNumber': 9}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['bedNumber'], 9)

    def test_rejected_phase_put_leaves_session_untouched(self):
        sid = self._book(self.p1, bed=1).data['data']['scheduleId']
        Session.objects.filter(pk=sid).update(uf_goal=Decimal('2.00'))
        r = self.client.put(f'/api/hdschedule/{sid}',
                            {'ufGoal': '3.00', 'bedNumber': 4, 'phase': 'POST_DIALYSIS'}, format='json')
        self.assertEqual(r.status_code, 400)
        session = Session.objects.get(pk=sid)
        self.assertEqual(session.bed_number, 1)
        self.assertEqual(session.uf_goal, Decimal('2.00'))
        self.assertEqual(session.phase, SessionPhase.PRE_DIALYSIS)
        r = self._book(self.p2, bed=4)
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)

    def test_prescription_put_rejected_once_pre_dialysis_locked(self):
        sid = self._book(self.p1, bed=1, base='HDSchedule').data['data']['scheduleId']
        Session.objects.filter(pk=sid).update(uf_goal=Decimal('2.50'), prescribed_duration=Decimal('4.00'),
                                              phase=SessionPhase.INTRA_DIALYSIS, is_pre_dialysis_locked=True)
        r = self.client.put(f'/api/HDSchedule/{sid}', {'ufGoal': '3.50', 'prescribedDuration': '2.00'},
                            format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error']['code'], 'validation_error')
        session = Session.objects.get(pk=sid)
        self.assertEqual(session.uf_goal, Decimal('2.50'))
        self.assertEqual(session.prescribed_duration, Decimal('4.00'))

    def test_phase_status_endpoint(self):
        sid = self._book(self.p1, bed=2).data['data']['scheduleId']
        r = self.client.get(f'/api/HDSchedule/{sid}/phase-status')
        self.assertEqual(r.data['data']['currentPhase'], 'PRE_DIALYSIS')
        self.assertEqual(r.data['data']['nextPhase'], 'INTRA_DIALYSIS')

    def test_role_gating(self):
        self.client.force_authenticate(user=self.tech)
        r = self._book(self.p1, bed=1)
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(r.data['error']['code'], 'authorization_error')
        r = self.client.get('/api/hdschedule', {'date': DAY})
        self.assertEqual(r.status_code, 200)

        self.client.force_authenticate(user=self.nurse)
        sid = self._book(self.p1, bed=1).data['data']['scheduleId']
        r = self.client.delete(f'/api/hdschedule/{sid}')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(user=self.hod)
        r = self.client.delete(f'/api/HDSchedule/{sid}')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        r = self.client.delete(f'/api/hdschedule/{sid}')
        self.assertEqual(r.status_code, 200)
        self.assertFalse(Session.objects.filter(pk=sid).exists())

    def test_missing_session_is_404(self):
        r = self.client.get('/api/hdschedule/9999')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(r.data, {'ok': False, 'error': {'code': 'not_found', 'message': 'Session 9999 not found'}})

    def test_missed_mark_and_resolve(self):
        sid = self._book(self.p1, bed=5).data['data']['scheduleId']
        r = self.client.post('/api/MissedAppointment/mark',
                             {'scheduleId': sid, 'reason': 'Sick', 'notes': 'Fever'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['reason'], 'Sick')
        self.assertEqual(r.data['data']['markedBy'], self.nurse.id)

        r = self.client.post('/api/MissedAppointment/mark', {'scheduleId': sid, 'reason': 'Sick'}, format='json')
        self.assertEqual(r.status_code, 400)

        r = self.client.get('/api/MissedAppointment', {'unresolvedOnly': 'true'})
        self.assertEqual([x['scheduleId'] for x in r.data['data']], [sid])

        r = self.client.post('/api/MissedAppointment/resolve',
                             {'scheduleId': sid, 'resolutionNotes': 'Rebooked'}, format='json')
        self.assertTrue(r.data['data']['isResolved'])
        r = self.client.get('/api/MissedAppointment', {'unresolvedOnly': 'true'})
        self.assertEqual(r.data['data'], [])

        r = self.client.get('/api/MissedAppointment', {'from': '2024-06-05', 'to': '2024-06-01'})
        self.assertEqual(r.status_code, 400)

    def test_possible_no_shows_reports_grace(self):
        r = self.client.get('/api/MissedAppointment/possible-no-shows', {'date': '2030-01-01'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data'], [])
        self.assertEqual(r.data['graceMinutes'], 15)

    def test_move_to_history(self):
        self._book(self.p1, bed=1, day='2020-01-06')
        r = self.client.post('/api/schedule/move-to-history', {}, format='json')
        self.assertEqual(r.data['data']['moved'], 1)
        r = self.client.post('/api/schedule/move-to-history', {}, format='json')
        self.assertEqual(r.data['data']['moved'], 0)


class PatientAPITests(APITestCase):
    def setUp(self) -> None:
        self.hod = User.objects.create_user(username='hod1', password='hodpass', role='hod')
        self.tech = User.objects.create_user(username='tech1', password='techpass', role='technician')
        self.client.force_authenticate(user=self.hod)

    def test_register_update_and_deactivate(self):
        r = self.client.post('/api/patients', {
            'mrn': 'HD-0042', 'name': 'Sunil Das', 'age': 58, 'hdCycle': 'MWF',
            'dryWeight': '64.5', 'accessType': 'AVF',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        pid = r.data['data']['patientId']
        self.assertEqual(r.data['data']['dryWeight'], 64.5)

        r = self.client.post('/api/patients', {'mrn': 'HD-0042', 'name': 'Someone Else'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

        r = self.client.put(f'/api/patients/{pid}', {'hdCycle': 'TTS'}, format='json')
        self.assertEqual(r.data['data']['hdCycle'], 'TTS')

        r = self.client.get('/api/patients', {'q': 'sunil'})
        self.assertEqual([p['patientId'] for p in r.data['data']], [pid])

        r = self.client.delete(f'/api/patients/{pid}')
        self.assertEqual(r.status_code, 200)
        self.assertFalse(Patient.objects.get(pk=pid).is_active)
        r = self.client.get('/api/patients')
        self.assertEqual(r.data['data'], [])
        r = self.client.get('/api/patients', {'includeInactive': 'true'})
        self.assertEqual(len(r.data['data']), 1)

    def test_inactive_patient_cannot_be_booked(self):
        p = Patient.objects.create(name='Old Patient', is_active=False)
        self.client.force_authenticate(user=User.objects.create_user(username='n', password='x', role='nurse'))
        r = self.client.post('/api/hdschedule', {'patientId': p.id, 'sessionDate': DAY, 'slotId': 1},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_technician_cannot_register_patients(self):
        self.client.force_authenticate(user=self.tech)
        r = self.client.post('/api/patients', {'name': 'Blocked'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        r = self.client.get('/api/patients')
        self.assertEqual(r.status_code, 200)

    def test_name_is_sanitised(self):
        r = self.client.post('/api/patients', {'name': '<b>Anil</b> Rao'}, format='json')
        self.assertEqual(r.data['data']['name'], 'Anil Rao')
