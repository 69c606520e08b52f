"""Settlement of a finished job.

Everything a settlement writes happens in one database transaction, and the
first write is the job's conditional move to ``completed``. Whichever caller
wins that move performs the settlement; every other caller (a double-click
on pay, a repeated gateway callback, the wallet path racing the gateway
path) fails on it before anything else is written.
"""
import logging
from dataclasses import dataclass

from django.db.models import F
from django.db.transaction import atomic, on_commit
from django.utils import timezone

from apps.jobs.state import get_client_job, transition
from apps.jobs.utils import send_notification
from apps.users.models import ClientProfile, FreelancerProfile
from core.exceptions import AlreadyResolved, InvalidState
from . import wallets
from .commission import calculate_commission, current_rate
from .models import Transaction

logger = logging.getLogger(__name__)


@dataclass
class Settlement:
    job: object
    payment: Transaction
    commission: Transaction
    split: object


def settle(job, from_status, payment=None, payment_method='wallet', gateway_transaction_id=None):
    """Complete ``job`` and split its amount between platform and freelancer.

    ``payment`` is a pending gateway transaction, finalised here; when omitted
    a completed wallet payment is recorded. ``InvalidState`` means the job was
    already settled or is not ready, and nothing was written.
    """
    now = timezone.now()
    with atomic():
        transition(job, 'completed', from_statuses=[from_status], payment_completed_at=now)
        if job.freelancer_id is None:
            raise InvalidState('Job has no assigned freelancer', current_status=from_status)

        if payment is not None:
            finalised = Transaction.objects.filter(pk=payment.pk, status='pending').update(
                status='completed',
                completed_at=now,
                gateway_transaction_id=gateway_transaction_id,
                updated_at=now,
            )
            if not finalised:
                raise AlreadyResolved('Payment has already been processed')
            payment.refresh_from_db()
        else:
            payment = Transaction.objects.create(
                job=job,
                client=job.client,
                freelancer=job.freelancer,
                amount=job.amount,
                type='payment',
                status='completed',
                description=f"Payment for job: {job.title}",
                payment_method=payment_method,
                completed_at=now,
            )

        split = calculate_commission(payment.amount, current_rate())
        commission = None
        if split.commission_amount > 0:
            commission = Transaction.objects.create(
                job=job,
                client=job.client,
                freelancer=job.freelancer,
                amount=split.commission_amount,
                type='commission',
                status='completed',
                description=f"Platform commission ({split.commission_percentage}%) for job payment",
                reference_id=f"COMM_{payment.reference_id}",
                payment_method=payment.payment_method,
                related_transaction=payment,
                commission_rate=split.rate,
                commission_rate_version=split.version,
                completed_at=now,
            )

        wallets.credit(wallets.platform_account(), split.commission_amount)
        wallets.credit(job.freelancer, split.freelancer_amount)

        FreelancerProfile.objects.filter(user_id=job.freelancer_id).update(
            total_jobs=F('total_jobs') + 1,
            completed_jobs=F('completed_jobs') + 1,
            total_earnings=F('total_earnings') + split.freelancer_amount,
        )
        ClientProfile.objects.filter(user_id=job.client_id).update(
            total_spent=F('total_spent') + payment.amount,
        )

    logger.info(
        f"Job {job.id} settled: payment {payment.reference_id} {payment.amount}, "
        f"commission {split.commission_amount} at {split.rate}% (v{split.version}), "
        f"freelancer {split.freelancer_amount}"
    )
    on_commit(lambda: notify_settled(job, split))
    return Settlement(job=job, payment=payment, commission=commission, split=split)


def pay_for_job(job_id, client):
    """Wallet payment: the client confirms payment for finished work."""
    job = get_client_job(job_id, client)
    return settle(job, 'work_done', payment_method='wallet')


def notify_settled(job, split):
    send_notification(
        job.client,
        subject=f"Payment Confirmed for Job: {job.title}",
        email_message=(
            f"Dear {job.client.username},\n\n"
            f"Your payment of {split.total_amount} for job '{job.title}' has been confirmed.\n"
            f"Thank you for using GigConnect.\n\n"
            f"Best regards,\nGigConnect Team"
        ),
        sms_message=f"Payment of {split.total_amount} for job '{job.title}' confirmed.",
    )
    send_notification(
        job.freelancer,
        subject=f"Payment Received for Job: {job.title}",
        email_message=(
            f"Dear {job.freelancer.username},\n\n"
            f"{split.freelancer_amount} has been credited to your wallet for job '{job.title}' "
            f"(platform commission {split.commission_amount}).\n\n"
            f"Best regards,\nGigConnect Team"
        ),
        sms_message=f"{split.freelancer_amount} credited to your wallet for '{job.title}'.",
    )
