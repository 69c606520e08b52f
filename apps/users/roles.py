"""Role-conflict guard.

A user holds exactly one role at a time. Switching is refused while the user
still has unresolved obligations in the role being left:

* client -> freelancer: no ``open`` and active job postings may remain.
* freelancer -> client: no job may be ``assigned``, ``work_done`` or
  ``waiting_for_payment`` to them.

``validate_role_switch`` is the read-only check used by the identity layer.
``switch_role`` applies a change; it runs the same check while holding a row
lock on the user and finishes with a version-checked update, and the job and
offer flows lock the same row (``lock_user_role``) before acting in a role,
so a switch cannot interleave with a new posting or assignment.
"""
import logging
from dataclasses import dataclass, field

from django.db.models import F
from django.db.transaction import atomic

from apps.jobs.models import Job
from core.constants import ACTIVE_FREELANCER_JOB_STATUSES
from core.exceptions import Forbidden, RoleConflict
from .models import User

logger = logging.getLogger(__name__)


@dataclass
class RoleSwitchResult:
    can_switch: bool
    message: str
    conflict_type: str = None
    conflicts: list = field(default_factory=list)

    def details(self):
        if not self.conflict_type:
            return {}
        return {
            'conflict_type': self.conflict_type,
            'conflict_count': len(self.conflicts),
            'conflicts': self.conflicts,
        }

    def as_dict(self):
        return {'can_switch': self.can_switch, 'message': self.message, **self.details()}


def open_client_jobs(user):
    return Job.objects.filter(client=user, status='open', is_active=True).order_by('-created_at')


def active_freelancer_jobs(user):
    return Job.objects.filter(
        freelancer=user, status__in=ACTIVE_FREELANCER_JOB_STATUSES
    ).order_by('-updated_at')


def _job_summary(job):
    return {
        'id': job.id,
        'title': job.title,
        'status': job.status,
        'amount': job.amount,
        'created_at': job.created_at,
    }


def check_role_conflicts(user, requested_role):
    if user.role == requested_role:
        return RoleSwitchResult(True, 'Same role login allowed')

    if user.role == 'client' and requested_role == 'freelancer':
        jobs = list(open_client_jobs(user))
        if jobs:
            return RoleSwitchResult(
                False,
                f"You have {len(jobs)} open job(s) posted as a client. "
                f"Please close all open jobs before switching to freelancer role.",
                conflict_type='open_jobs',
                conflicts=[_job_summary(job) for job in jobs],
            )
        return RoleSwitchResult(True, 'No open jobs found, role switch allowed')

    if user.role == 'freelancer' and requested_role == 'client':
        jobs = list(active_freelancer_jobs(user))
        if jobs:
            return RoleSwitchResult(
                False,
                f"You have {len(jobs)} active job(s) as a freelancer. "
                f"Please complete all active jobs before switching to client role.",
                conflict_type='active_jobs',
                conflicts=[_job_summary(job) for job in jobs],
            )
        return RoleSwitchResult(True, 'No active jobs found, role switch allowed')

    return RoleSwitchResult(True, 'Role switch allowed')


def validate_role_switch(phone_number, requested_role):
    """Advisory check run by the identity layer before it assigns a role."""
    user = User.get_by_phone(phone_number)
    if user is None:
        return RoleSwitchResult(True, 'New user registration allowed')
    return check_role_conflicts(user, requested_role)


def get_role_info(phone_number):
    user = User.get_by_phone(phone_number)
    if user is None:
        return {'exists': False, 'message': 'User not found'}

    conflicts = None
    if user.role == 'client':
        jobs = list(open_client_jobs(user))
        if jobs:
            conflicts = {'type': 'open_jobs', 'count': len(jobs), 'jobs': [_job_summary(j) for j in jobs]}
    elif user.role == 'freelancer':
        jobs = list(active_freelancer_jobs(user))
        if jobs:
            conflicts = {'type': 'active_jobs', 'count': len(jobs), 'jobs': [_job_summary(j) for j in jobs]}

    return {
        'exists': True,
        'user_id': user.id,
        'role': user.role,
        'is_verified': user.is_verified,
        'conflicts': conflicts,
    }


def lock_user_role(user_id, expected_role):
    """Lock the user row for the current transaction and confirm its role.

    Must be called inside ``atomic()``.
    """
    user = User.objects.select_for_update().get(pk=user_id)
    if user.role != expected_role:
        raise Forbidden(
            f"This action requires the {expected_role} role.",
            current_role=user.role,
        )
    return user


def switch_role(user, requested_role):
    with atomic():
        locked = User.objects.select_for_update().get(pk=user.pk)
        if locked.is_platform_admin:
            raise Forbidden('Admin accounts cannot switch role.')

        result = check_role_conflicts(locked, requested_role)
        if not result.can_switch:
            logger.warning(f"Role switch {locked.role} -> {requested_role} blocked for user {locked.id}")
            raise RoleConflict(result.message, **result.details())
        if locked.role == requested_role:
            return locked

        updated = User.objects.filter(
            pk=locked.pk, role=locked.role, role_version=locked.role_version
        ).update(role=requested_role, role_version=F('role_version') + 1)
        if not updated:
            raise RoleConflict('Your role changed while switching. Please try again.')

        logger.info(f"User {locked.id} switched role {locked.role} -> {requested_role}")
        locked.refresh_from_db()
        return locked
