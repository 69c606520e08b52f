import pytest

from apps.jobs.models import Job
from apps.jobs.offers import submit_offer
from apps.jobs.state import create_job, delete_job
from apps.users.models import User
from apps.users.roles import get_role_info, switch_role, validate_role_switch
from core.exceptions import Forbidden, RoleConflict
from tests.factories import job_data

pytestmark = pytest.mark.django_db


class TestValidateRoleSwitch:
    def test_unknown_phone_is_new_user(self):
        result = validate_role_switch('+919999999999', 'freelancer')
        assert result.can_switch is True
        assert result.conflict_type is None

    def test_same_role(self, client_user, job):
        assert validate_role_switch(client_user.phone_number, 'client').can_switch is True

    def test_client_with_open_job_blocked(self, client_user, job):
        result = validate_role_switch(client_user.phone_number, 'freelancer')
        assert result.can_switch is False
        assert result.conflict_type == 'open_jobs'
        assert [c['id'] for c in result.conflicts] == [job.id]

    def test_client_allowed_after_deleting_job(self, client_user, job):
        delete_job(job.id, client_user)
        assert validate_role_switch(client_user.phone_number, 'freelancer').can_switch is True

    def test_hidden_open_job_does_not_block(self, client_user, job):
        Job.objects.filter(pk=job.pk).update(is_active=False)
        assert validate_role_switch(client_user.phone_number, 'freelancer').can_switch is True

    def test_client_with_assigned_job_allowed(self, client_user, assigned_job):
        assert validate_role_switch(client_user.phone_number, 'freelancer').can_switch is True

    @pytest.mark.parametrize('status', ['assigned', 'work_done', 'waiting_for_payment'])
    def test_freelancer_with_active_job_blocked(self, freelancer, assigned_job, status):
        Job.objects.filter(pk=assigned_job.pk).update(status=status)
        result = validate_role_switch(freelancer.phone_number, 'client')
        assert result.can_switch is False
        assert result.conflict_type == 'active_jobs'

    def test_freelancer_with_completed_job_allowed(self, freelancer, assigned_job):
        Job.objects.filter(pk=assigned_job.pk).update(status='completed')
        assert validate_role_switch(freelancer.phone_number, 'client').can_switch is True

    def test_result_serialises_conflicts(self, client_user, job):
        data = validate_role_switch(client_user.phone_number, 'freelancer').as_dict()
        assert data['can_switch'] is False
        assert data['conflict_count'] == 1


class TestSwitchRole:
    def test_switch_bumps_version(self, freelancer):
        switched = switch_role(freelancer, 'client')
        assert switched.role == 'client'
        assert switched.role_version == 1

    def test_same_role_is_noop(self, freelancer):
        assert switch_role(freelancer, 'freelancer').role_version == 0

    def test_conflict_raises(self, client_user, job):
        with pytest.raises(RoleConflict) as exc:
            switch_role(client_user, 'freelancer')
        assert exc.value.details['conflict_type'] == 'open_jobs'
        assert User.objects.get(pk=client_user.pk).role == 'client'

    def test_admin_cannot_switch(self, admin_user):
        with pytest.raises(Forbidden):
            switch_role(admin_user, 'client')

    def test_switched_client_cannot_post(self, client_user):
        switch_role(client_user, 'freelancer')
        with pytest.raises(Forbidden):
            create_job(client_user, **job_data())

    def test_switched_freelancer_cannot_offer(self, job, freelancer):
        switch_role(freelancer, 'client')
        with pytest.raises(Forbidden):
            submit_offer(job.id, freelancer, offered_amount=900)


class TestRoleInfo:
    def test_unknown_user(self):
        assert get_role_info('+919999999999') == {'exists': False, 'message': 'User not found'}

    def test_client_conflicts_listed(self, client_user, job):
        info = get_role_info(client_user.phone_number)
        assert info['role'] == 'client'
        assert info['conflicts']['type'] == 'open_jobs'
        assert info['conflicts']['count'] == 1

    def test_freelancer_without_jobs(self, freelancer):
        info = get_role_info(freelancer.phone_number)
        assert info['exists'] is True
        assert info['conflicts'] is None
