from datetime import date
from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from dialysis.models import Patient, Session, User

PASSWORD = 'P@ssw0rd-hd1'
DAY = date(2024, 6, 1)


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and cached slot lists live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    def _make(role='nurse', username=None):
        return User.objects.create_user(username=username or f'{role}_user', password=PASSWORD, role=role)
    return _make


@pytest.fixture
def nurse(make_user):
    return make_user('nurse')


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def make_patient(db):
    counter = {'n': 0}

    def _make(name=None, **fields):
        counter['n'] += 1
        fields.setdefault('hd_cycle', 'MWF')
        fields.setdefault('dry_weight', Decimal('60.00'))
        return Patient.objects.create(name=name or f'Patient {counter["n"]}', **fields)
    return _make


@pytest.fixture
def make_session(db, make_patient):
    def _make(patient=None, session_date=DAY, slot_id=1, bed_number=None, **fields):
        return Session.objects.create(
            patient=patient or make_patient(),
            session_date=session_date,
            slot_id=slot_id,
            bed_number=bed_number,
            **fields,
        )
    return _make


@pytest.fixture
def fill_pre():
    return _fill_pre


@pytest.fixture
def fill_post():
    return _fill_post


def _fill_pre(session):
    session.pre_weight = Decimal('72.50')
    session.pre_sbp = 140
    session.pre_dbp = 85
    session.access_site = 'AVF left arm, good thrill'
    session.save()
    return session


def _fill_post(session):
    session.post_weight = Decimal('70.00')
    session.post_sbp = 125
    session.post_dbp = 80
    session.post_hr = 76
    session.post_access_status = 'Hemostasis achieved'
    session.total_fluid_removed = Decimal('2.50')
    session.save()
    return session
