from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from dialysis.exceptions import IncompleteDataError, ValidationError
from dialysis.models import MonitoringRecord, Session, SessionPhase
from dialysis.services import phases
from dialysis.services.sessions import update_session

pytestmark = pytest.mark.django_db


def _to_post(session, fill_pre):
    fill_pre(session)
    session = phases.complete_pre_dialysis(session)
    return phases.start_post_dialysis(session)


def test_full_phase_flow(make_session, fill_pre, fill_post, nurse):
    s = make_session(bed_number=1)
    assert s.phase == SessionPhase.PRE_DIALYSIS

    phases.save_pre_dialysis(s, {'pre_weight': Decimal('72.50'), 'pre_sbp': 140, 'pre_dbp': 85,
                                 'access_site': 'AVF'}, user=nurse)
    s = phases.complete_pre_dialysis(s, user=nurse)
    assert s.phase == SessionPhase.INTRA_DIALYSIS
    assert s.is_pre_dialysis_locked
    assert s.pre_dialysis_completed_at is not None

    phases.add_monitoring_record(s, {'bp_systolic': 130, 'bp_diastolic': 80, 'pulse': 78}, user=nurse)
    assert s.monitoring_records.count() == 1

    s = phases.start_post_dialysis(s, user=nurse)
    assert s.phase == SessionPhase.POST_DIALYSIS
    assert s.is_intra_dialysis_locked

    fill_post(s)
    s, _ = phases.complete_post_dialysis(s, user=nurse, auto_schedule=False)
    assert s.phase == SessionPhase.DISCHARGED
    assert s.is_discharged
    assert s.discharged_at is not None
    assert s.weight_loss == Decimal('2.50')


def test_complete_pre_requires_fields(make_session):
    s = make_session()
    phases.save_pre_dialysis(s, {'pre_weight': Decimal('70.00')})
    with pytest.raises(IncompleteDataError) as exc:
        phases.complete_pre_dialysis(s)
    assert exc.value.missing == ['pre_sbp', 'pre_dbp', 'access_site']
    s.refresh_from_db()
    assert s.phase == SessionPhase.PRE_DIALYSIS
    assert not s.is_pre_dialysis_locked


def test_pre_dialysis_locked_after_completion(make_session, fill_pre):
    s = fill_pre(make_session())
    phases.complete_pre_dialysis(s)
    with pytest.raises(ValidationError):
        phases.save_pre_dialysis(s, {'pre_weight': Decimal('80.00')})
    s.refresh_from_db()
    assert s.pre_weight == Decimal('72.50')


def test_monitoring_only_during_intra(make_session, fill_pre):
    s = make_session()
    with pytest.raises(ValidationError):
        phases.add_monitoring_record(s, {'pulse': 70})
    s = _to_post(s, fill_pre)
    with pytest.raises(ValidationError):
        phases.add_monitoring_record(s, {'pulse': 70})
    assert MonitoringRecord.objects.count() == 0


def test_missed_session_cannot_start(make_session, fill_pre):
    s = fill_pre(make_session())
    Session.objects.filter(pk=s.pk).update(is_missed=True, missed_reason='Sick')
    with pytest.raises(ValidationError):
        phases.complete_pre_dialysis(s)


def test_complete_post_requires_fields(make_session, fill_pre):
    s = _to_post(make_session(), fill_pre)
    with pytest.raises(IncompleteDataError) as exc:
        phases.complete_post_dialysis(s, auto_schedule=False)
    assert 'post_weight' in exc.value.missing
    assert 'total_fluid_removed' in exc.value.missing


def test_advance_phase_rejects_skips(make_session, fill_pre):
    s = fill_pre(make_session())
    with pytest.raises(ValidationError):
        phases.advance_phase(s, SessionPhase.POST_DIALYSIS)
    with pytest.raises(ValidationError):
        phases.advance_phase(s, SessionPhase.DISCHARGED)
    with pytest.raises(ValidationError):
        phases.advance_phase(s, 'FINISHED')

    assert phases.advance_phase(s, SessionPhase.PRE_DIALYSIS) is s
    s = phases.advance_phase(s, 'INTRA_DIALYSIS')
    assert s.phase == SessionPhase.INTRA_DIALYSIS
    with pytest.raises(ValidationError):
        phases.advance_phase(s, SessionPhase.PRE_DIALYSIS)


def test_discharged_session_is_read_only(make_session, fill_pre, fill_post):
    s = _to_post(make_session(bed_number=2), fill_pre)
    fill_post(s)
    s, _ = phases.complete_post_dialysis(s, auto_schedule=False)
    with pytest.raises(ValidationError):
        phases.save_post_dialysis(s, {'discharge_notes': 'late edit'})
    with pytest.raises(ValidationError):
        phases.advance_phase(s, SessionPhase.DISCHARGED)
    with pytest.raises(ValidationError):
        update_session(s, {'bed_number': 3})


def test_reschedule_only_in_pre_dialysis(make_session, fill_pre, make_user):
    s = fill_pre(make_session(bed_number=1))
    s = phases.complete_pre_dialysis(s)
    with pytest.raises(ValidationError):
        update_session(s, {'bed_number': 2})
    doctor = make_user('doctor')
    s = update_session(s, {'assigned_doctor': doctor})
    assert s.assigned_doctor_id == doctor.id


def test_prescription_locked_after_pre_dialysis(make_session, fill_pre, nurse):
    s = fill_pre(make_session(bed_number=1, uf_goal=Decimal('2.50'), prescribed_duration=Decimal('4.00')))
    s = phases.complete_pre_dialysis(s)
    with pytest.raises(ValidationError, match='uf_goal'):
        update_session(s, {'uf_goal': Decimal('3.50')})
    with pytest.raises(ValidationError, match='prescribed_duration'):
        update_session(s, {'prescribed_duration': Decimal('2.00'), 'assigned_nurse': nurse})
    s.refresh_from_db()
    assert (s.uf_goal, s.prescribed_duration, s.assigned_nurse_id) == (Decimal('2.50'), Decimal('4.00'), None)


def test_discharge_auto_schedules_next_cycle_date(make_patient, make_session, fill_pre, fill_post):
    patient = make_patient(hd_cycle='MWF')
    monday = date(2024, 6, 3)
    s = _to_post(make_session(patient=patient, session_date=monday, slot_id=2, bed_number=5), fill_pre)
    fill_post(s)
    s, nxt = phases.complete_post_dialysis(s, auto_schedule=True)

    assert nxt['scheduled'] is True
    assert nxt['sessionDate'] == '2024-06-05'
    assert nxt['bedNumber'] == 5
    follow_up = Session.objects.get(pk=nxt['scheduleId'])
    assert follow_up.session_date == date(2024, 6, 5)
    assert follow_up.slot_id == 2
    assert follow_up.is_auto_generated
    assert follow_up.parent_session_id == s.id
    assert follow_up.phase == SessionPhase.PRE_DIALYSIS


def test_auto_schedule_moves_to_free_bed_when_taken(make_patient, make_session, fill_pre, fill_post):
    patient = make_patient(hd_cycle='MWF')
    make_session(session_date=date(2024, 6, 5), slot_id=2, bed_number=5)
    s = _to_post(make_session(patient=patient, session_date=date(2024, 6, 3), slot_id=2, bed_number=5), fill_pre)
    fill_post(s)
    _, nxt = phases.complete_post_dialysis(s, auto_schedule=True)
    assert nxt['scheduled'] is True
    assert nxt['bedNumber'] == 1


def test_auto_schedule_skips_existing_booking(make_patient, make_session, fill_pre, fill_post):
    patient = make_patient(hd_cycle='MWF')
    existing = make_session(patient=patient, session_date=date(2024, 6, 5), slot_id=3)
    s = _to_post(make_session(patient=patient, session_date=date(2024, 6, 3)), fill_pre)
    fill_post(s)
    _, nxt = phases.complete_post_dialysis(s, auto_schedule=True)
    assert nxt['scheduled'] is False
    assert nxt['existingSessionId'] == existing.id
    assert patient.sessions.count() == 2


def test_auto_schedule_disabled_by_setting(settings, make_session, fill_pre, fill_post):
    settings.AUTO_SCHEDULE_NEXT_SESSION = False
    s = _to_post(make_session(session_date=date(2024, 6, 3)), fill_pre)
    fill_post(s)
    _, nxt = phases.complete_post_dialysis(s)
    assert nxt is None
    assert Session.objects.count() == 1


def test_auto_discharge_overdue(make_session, fill_pre):
    now = timezone.now()
    stale = _to_post(make_session(bed_number=1), fill_pre)
    fresh = _to_post(make_session(bed_number=2), fill_pre)
    Session.objects.filter(pk=stale.pk).update(post_dialysis_started_at=now - timedelta(minutes=61))
    Session.objects.filter(pk=fresh.pk).update(post_dialysis_started_at=now - timedelta(minutes=10))

    assert phases.auto_discharge_overdue(now=now, grace=timedelta(minutes=60)) == 1
    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.is_discharged and stale.phase == SessionPhase.DISCHARGED
    assert not fresh.is_discharged
    assert phases.auto_discharge_overdue(now=now, grace=timedelta(minutes=60)) == 0


def test_phase_status_lists_missing_fields(make_session):
    s = make_session()
    status = phases.phase_status(s)
    assert status['currentPhase'] == 'PRE_DIALYSIS'
    assert status['nextPhase'] == 'INTRA_DIALYSIS'
    assert status['missingPreDialysisFields'] == list(phases.PRE_REQUIRED)
    assert status['missingPostDialysisFields'] == []
