"""Pytest configuration and fixtures."""

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.jobs.models import Job
from apps.jobs.state import create_job
from apps.users.models import User
from tests.factories import job_data, make_client, make_freelancer


@pytest.fixture(autouse=True)
def _marketplace_settings(settings):
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.TWILIO_ACCOUNT_SID = ''
    settings.COMMISSION_RATE = 10.0
    settings.OFFER_COOLDOWN_SECONDS = 300
    settings.PLATFORM_ACCOUNT_USERNAME = 'platform'
    settings.PAYMENT_GATEWAY_BASE_URL = 'https://gateway.test'
    settings.PAYMENT_GATEWAY_SECRET_KEY = 'test-secret'
    settings.PAYMENT_GATEWAY_WEBHOOK_SECRET = ''


@pytest.fixture
def client_user(db):
    return make_client()


@pytest.fixture
def other_client(db):
    return make_client(username='otherclient', phone='+911000000002')


@pytest.fixture
def freelancer(db):
    return make_freelancer()


@pytest.fixture
def other_freelancer(db):
    return make_freelancer(username='otherfreelancer', phone='+912000000002')


@pytest.fixture
def unverified_freelancer(db):
    return make_freelancer(username='newfreelancer', phone='+912000000003', status='pending')


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username='admin', password='pass1234', email='admin@example.com',
        phone_number='+919000000001', role='admin',
    )


@pytest.fixture
def job(client_user):
    return create_job(client_user, **job_data())


@pytest.fixture
def assigned_job(job, freelancer):
    Job.objects.filter(pk=job.pk).update(status='assigned', freelancer=freelancer, assigned_at=timezone.now())
    job.refresh_from_db()
    return job


@pytest.fixture
def work_done_job(assigned_job):
    Job.objects.filter(pk=assigned_job.pk).update(status='work_done', work_completed_at=timezone.now())
    assigned_job.refresh_from_db()
    return assigned_job


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client():
    def _auth(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _auth
