"""Tests for the job lifecycle: transitions, deletion guard, cancellation."""

import pytest

from apps.jobs.models import Job, Offer
from apps.jobs.offers import submit_offer
from apps.jobs.state import (
    can_transition, cancel_job, create_job, delete_job, is_terminal, mark_work_done,
    set_job_visibility, transition,
)
from apps.users.models import ClientProfile
from core.exceptions import Forbidden, InvalidState, NotFound
from tests.factories import job_data, make_client

pytestmark = pytest.mark.django_db


class TestTransitionTable:
    def test_forward_path(self):
        assert can_transition('open', 'assigned')
        assert can_transition('assigned', 'work_done')
        assert can_transition('work_done', 'completed')

    def test_gateway_detour(self):
        assert can_transition('work_done', 'waiting_for_payment')
        assert can_transition('waiting_for_payment', 'completed')
        assert can_transition('waiting_for_payment', 'work_done')

    def test_no_skipping_states(self):
        assert not can_transition('open', 'work_done')
        assert not can_transition('open', 'completed')
        assert not can_transition('assigned', 'completed')
        assert not can_transition('assigned', 'open')

    def test_only_open_jobs_cancel(self):
        assert can_transition('open', 'cancelled')
        for status in ('assigned', 'work_done', 'waiting_for_payment', 'completed'):
            assert not can_transition(status, 'cancelled'), f"{status} -> cancelled should be invalid"

    def test_terminal_statuses(self):
        assert is_terminal('completed')
        assert is_terminal('cancelled')
        assert not is_terminal('open')


class TestCreateJob:
    def test_create_increments_jobs_posted(self, client_user):
        job = create_job(client_user, **job_data())
        assert job.status == 'open'
        assert job.is_active is True
        assert job.freelancer is None
        assert ClientProfile.objects.get(user=client_user).total_jobs_posted == 1

    def test_incomplete_profile_cannot_post(self, db):
        user = make_client(username='draft', phone='+911000000099', complete=False)
        with pytest.raises(InvalidState):
            create_job(user, **job_data())
        assert not Job.objects.filter(client=user).exists()

    def test_freelancer_cannot_post(self, freelancer):
        with pytest.raises(Forbidden):
            create_job(freelancer, **job_data())


class TestTransition:
    def test_stale_transition_reports_current_status(self, assigned_job):
        stale = Job.objects.get(pk=assigned_job.pk)
        Job.objects.filter(pk=stale.pk).update(status='work_done')
        with pytest.raises(InvalidState) as exc:
            transition(stale, 'work_done', from_statuses=['assigned'])
        assert exc.value.details['current_status'] == 'work_done'

    def test_illegal_source_rejected_before_touching_db(self, job):
        with pytest.raises(ValueError):
            transition(job, 'completed', from_statuses=['open'])
        job.refresh_from_db()
        assert job.status == 'open'


class TestMarkWorkDone:
    def test_assignee_marks_done(self, assigned_job, freelancer):
        job = mark_work_done(assigned_job.id, freelancer)
        assert job.status == 'work_done'
        assert job.work_completed_at is not None

    def test_other_freelancer_forbidden(self, assigned_job, other_freelancer):
        with pytest.raises(Forbidden):
            mark_work_done(assigned_job.id, other_freelancer)
        assigned_job.refresh_from_db()
        assert assigned_job.status == 'assigned'

    def test_not_assigned_forbidden(self, work_done_job, freelancer):
        with pytest.raises(Forbidden):
            mark_work_done(work_done_job.id, freelancer)

    def test_unknown_job(self, freelancer):
        with pytest.raises(NotFound):
            mark_work_done(999999, freelancer)


class TestDeleteJob:
    def test_delete_open_job(self, job, client_user):
        delete_job(job.id, client_user)
        assert not Job.objects.filter(pk=job.pk).exists()
        assert ClientProfile.objects.get(user=client_user).total_jobs_posted == 0

    @pytest.mark.parametrize('status', ['assigned', 'work_done', 'completed'])
    def test_delete_refused_after_open(self, job, client_user, status):
        Job.objects.filter(pk=job.pk).update(status=status)
        with pytest.raises(InvalidState) as exc:
            delete_job(job.id, client_user)
        assert exc.value.details['current_status'] == status
        job.refresh_from_db()
        assert job.status == status

    def test_non_owner_forbidden(self, job, other_client):
        with pytest.raises(Forbidden):
            delete_job(job.id, other_client)
        assert Job.objects.filter(pk=job.pk).exists()

    def test_offers_survive_deletion(self, job, client_user, freelancer, other_freelancer):
        pending = submit_offer(job.id, freelancer, offered_amount=900).offer
        withdrawn = submit_offer(job.id, other_freelancer, offered_amount=950).offer
        Offer.objects.filter(pk=withdrawn.pk).update(status='withdrawn')

        delete_job(job.id, client_user)

        pending.refresh_from_db()
        assert pending.job_id is None
        assert pending.status == 'rejected'
        assert pending.response_message == 'Job was deleted'
        assert pending.responded_at is not None
        withdrawn.refresh_from_db()
        assert (withdrawn.job_id, withdrawn.status) == (None, 'withdrawn')
        assert Offer.objects.filter(freelancer=freelancer).count() == 1

    def test_jobs_posted_never_negative(self, job, client_user):
        ClientProfile.objects.filter(user=client_user).update(total_jobs_posted=0)
        delete_job(job.id, client_user)
        assert ClientProfile.objects.get(user=client_user).total_jobs_posted == 0


class TestCancelJob:
    def test_cancel_rejects_pending_offers(self, job, client_user, freelancer):
        offer = Offer.objects.create(
            job=job, freelancer=freelancer, client=client_user,
            original_amount=1000, offered_amount=900, offer_type='custom_offer',
        )
        cancelled = cancel_job(job.id, client_user, 'No longer needed')
        assert cancelled.status == 'cancelled'
        assert cancelled.cancellation_reason == 'No longer needed'
        assert cancelled.cancelled_at is not None
        offer.refresh_from_db()
        assert offer.status == 'rejected'
        assert offer.response_message == 'Job was cancelled'

    def test_cannot_cancel_assigned(self, assigned_job, client_user):
        with pytest.raises(InvalidState):
            cancel_job(assigned_job.id, client_user)


class TestVisibility:
    def test_hide_and_show(self, job, client_user):
        assert set_job_visibility(job.id, client_user, False).is_active is False
        assert set_job_visibility(job.id, client_user, True).is_active is True

    def test_hiding_keeps_status(self, assigned_job, client_user):
        job = set_job_visibility(assigned_job.id, client_user, False)
        assert job.status == 'assigned'
