"""Job lifecycle.

    open -> assigned -> work_done -> completed
    open -> cancelled
    work_done -> waiting_for_payment -> completed   (gateway payments)
    waiting_for_payment -> work_done                (gateway payment failed)

Every transition is a single conditional UPDATE on the job row
(``WHERE id = ? AND status IN (<allowed sources>)``). Two callers racing for
the same transition cannot both win; the loser gets ``InvalidState`` with
the status it lost to. Hard deletion is only possible while ``open`` and is
not a state; the job's offers survive it, detached. ``is_active`` is an
independent visibility flag.
"""
import logging

from django.db.models import F
from django.db.transaction import atomic
from django.utils import timezone

from apps.users.models import ClientProfile
from apps.users.roles import lock_user_role
from core.exceptions import Forbidden, InvalidState, NotFound
from .models import Job, Offer

logger = logging.getLogger(__name__)

# Valid transitions: {from_status: {allowed_to_statuses}}
_TRANSITIONS = {
    'open': {'assigned', 'cancelled'},
    'assigned': {'work_done'},
    'work_done': {'waiting_for_payment', 'completed'},
    'waiting_for_payment': {'completed', 'work_done'},
    # Terminal statuses
    'completed': set(),
    'cancelled': set(),
}


def can_transition(current, target):
    return target in _TRANSITIONS.get(current, set())


def is_terminal(status):
    return not _TRANSITIONS.get(status)


def sources_for(target):
    return sorted(status for status, targets in _TRANSITIONS.items() if target in targets)


def transition(job, target, from_statuses=None, extra_filters=None, **fields):
    """Move ``job`` to ``target`` if it is still in one of ``from_statuses``.

    ``from_statuses`` defaults to every status that may legally reach
    ``target``. Additional columns to write go in ``fields``. The instance is
    refreshed from the database on success.
    """
    sources = list(from_statuses or sources_for(target))
    illegal = [status for status in sources if not can_transition(status, target)]
    if illegal:
        raise ValueError(f"Illegal job transition {illegal} -> {target}")

    updated = Job.objects.filter(
        pk=job.pk, status__in=sources, **(extra_filters or {})
    ).update(status=target, updated_at=timezone.now(), **fields)
    if not updated:
        current = Job.objects.filter(pk=job.pk).values_list('status', flat=True).first()
        if current is None:
            raise NotFound('Job not found')
        raise InvalidState(
            f"Job is {current}; it cannot move to {target}.",
            current_status=current,
        )

    logger.info(f"Job {job.pk} -> {target}")
    job.refresh_from_db()
    return job


def get_job(job_id):
    job = Job.objects.filter(pk=job_id).select_related('client', 'freelancer').first()
    if job is None:
        raise NotFound('Job not found')
    return job


def get_client_job(job_id, client):
    job = get_job(job_id)
    if job.client_id != client.id:
        raise Forbidden('You do not have permission to manage this job.')
    return job


def create_job(client, **data):
    with atomic():
        lock_user_role(client.id, 'client')
        profile = ClientProfile.objects.filter(user=client).first()
        if profile is None or not profile.is_profile_complete:
            raise InvalidState('Please complete your profile before posting jobs')

        job = Job(client=client, **data)
        job.full_clean()
        job.save()
        ClientProfile.objects.filter(pk=profile.pk).update(total_jobs_posted=F('total_jobs_posted') + 1)

    logger.info(f"Client {client.id} posted job {job.id} for {job.amount}")
    return job


def assign_job(job, freelancer):
    now = timezone.now()
    return transition(job, 'assigned', from_statuses=['open'], freelancer=freelancer, assigned_at=now)


def mark_work_done(job_id, freelancer):
    job = get_job(job_id)
    if job.freelancer_id != freelancer.id:
        raise Forbidden('Job not assigned to you')
    if job.status != 'assigned':
        raise Forbidden('Only assigned jobs can be marked as done', current_status=job.status)
    return transition(
        job, 'work_done',
        from_statuses=['assigned'],
        extra_filters={'freelancer': freelancer},
        work_completed_at=timezone.now(),
    )


def cancel_job(job_id, client, reason=None):
    job = get_client_job(job_id, client)
    now = timezone.now()
    with atomic():
        transition(
            job, 'cancelled',
            from_statuses=['open'],
            cancelled_at=now,
            cancellation_reason=reason,
        )
        rejected = Offer.objects.filter(job=job, status='pending').update(
            status='rejected',
            responded_at=now,
            response_message='Job was cancelled',
            updated_at=now,
        )
    logger.info(f"Job {job.id} cancelled by client {client.id}; {rejected} pending offer(s) rejected")
    return job


def delete_job(job_id, client):
    job = get_client_job(job_id, client)
    with atomic():
        locked = Job.objects.select_for_update().get(pk=job.pk)
        if locked.status != 'open':
            raise InvalidState('Only open jobs can be deleted', current_status=locked.status)
        now = timezone.now()
        rejected = Offer.objects.filter(job=locked, status='pending').update(
            status='rejected',
            responded_at=now,
            response_message='Job was deleted',
            updated_at=now,
        )
        locked.delete()
        ClientProfile.objects.filter(user=client, total_jobs_posted__gt=0).update(
            total_jobs_posted=F('total_jobs_posted') - 1
        )
    logger.info(f"Job {job_id} deleted by client {client.id}; {rejected} pending offer(s) rejected")


def set_job_visibility(job_id, client, is_active):
    job = get_client_job(job_id, client)
    Job.objects.filter(pk=job.pk).update(is_active=is_active, updated_at=timezone.now())
    job.refresh_from_db()
    return job
