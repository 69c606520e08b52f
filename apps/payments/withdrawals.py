"""Withdrawals.

The wallet is debited when the request is made, before an admin reviews it.
Approval only finalises the transaction; rejection credits the amount back.
That credit-back is the only reversal in the ledger.
"""
import logging

from django.db.transaction import atomic, on_commit
from django.utils import timezone
from rest_framework import serializers

from apps.jobs.utils import send_notification
from apps.management.models import ManagementLog
from core.exceptions import AlreadyResolved, NotFound
from . import wallets
from .models import Transaction

logger = logging.getLogger(__name__)


def request_withdrawal(user, amount, bank_details):
    if amount is None or amount <= 0:
        raise serializers.ValidationError({'amount': ['Withdrawal amount must be greater than 0']})

    with atomic():
        wallet = wallets.debit(user, amount)
        withdrawal = Transaction.objects.create(
            freelancer=user,
            amount=amount,
            type='withdrawal',
            status='pending',
            description=f"Withdrawal of {amount} to bank account",
            payment_method='bank_transfer',
            account_number=bank_details.get('account_number'),
            ifsc_code=bank_details.get('ifsc_code'),
            account_holder_name=bank_details.get('account_holder_name'),
        )

    logger.info(f"User {user.id} requested withdrawal {withdrawal.reference_id} of {amount}")
    return withdrawal, wallet


def pending_withdrawals():
    return Transaction.objects.filter(type='withdrawal', status='pending').select_related('freelancer')


def resolve_withdrawal(transaction_id, admin, action, failure_reason=None):
    if action not in ('approve', 'reject'):
        raise serializers.ValidationError({'action': ["Action must be 'approve' or 'reject'"]})

    withdrawal = Transaction.objects.filter(pk=transaction_id, type='withdrawal').select_related('freelancer').first()
    if withdrawal is None:
        raise NotFound('Withdrawal not found')

    now = timezone.now()
    with atomic():
        if action == 'approve':
            resolved = Transaction.objects.filter(pk=withdrawal.pk, status='pending').update(
                status='completed', completed_at=now, updated_at=now
            )
        else:
            failure_reason = failure_reason or 'Rejected by admin'
            resolved = Transaction.objects.filter(pk=withdrawal.pk, status='pending').update(
                status='failed', failure_reason=failure_reason, updated_at=now
            )
        if not resolved:
            withdrawal.refresh_from_db()
            raise AlreadyResolved('Withdrawal has already been processed', current_status=withdrawal.status)

        if action == 'reject':
            wallets.credit(withdrawal.freelancer, withdrawal.amount)

        ManagementLog.record(
            admin,
            f"withdrawal_{action}",
            f"transaction:{withdrawal.reference_id}",
            amount=withdrawal.amount,
            failure_reason=failure_reason if action == 'reject' else None,
        )

    withdrawal.refresh_from_db()
    logger.info(f"Withdrawal {withdrawal.reference_id} {withdrawal.status} by admin {admin.id}")
    on_commit(lambda: notify_withdrawal(withdrawal))
    return withdrawal


def notify_withdrawal(withdrawal):
    user = withdrawal.freelancer
    if withdrawal.status == 'completed':
        outcome = 'has been approved and sent to your bank account'
    else:
        outcome = f"was rejected ({withdrawal.failure_reason}). The amount has been returned to your wallet"
    send_notification(
        user,
        subject=f"Withdrawal {withdrawal.reference_id}",
        email_message=(
            f"Dear {user.username},\n\n"
            f"Your withdrawal of {withdrawal.amount} {outcome}.\n\n"
            f"Best regards,\nGigConnect Team"
        ),
        sms_message=f"Your withdrawal of {withdrawal.amount} {outcome}.",
    )
