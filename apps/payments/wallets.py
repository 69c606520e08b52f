"""Wallet store.

Balances only move through ``credit`` and ``debit``, both single UPDATE
statements with ``F()`` arithmetic. ``debit`` carries the balance guard in
its WHERE clause, so a balance can never be read, checked and written back
in separate steps.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import F

from core.exceptions import InsufficientBalance
from .models import Wallet

logger = logging.getLogger(__name__)

User = get_user_model()


def platform_account():
    """The system user that collects commission."""
    user, created = User.objects.get_or_create(
        username=settings.PLATFORM_ACCOUNT_USERNAME,
        defaults={'role': 'admin', 'is_active': False},
    )
    if created:
        user.set_unusable_password()
        user.save(update_fields=['password'])
        logger.info(f"Created platform account '{user.username}'")
    return user


def get_wallet(user):
    return Wallet.for_user(user)


def credit(user, amount):
    if amount <= 0:
        return get_wallet(user)
    wallet = get_wallet(user)
    Wallet.objects.filter(pk=wallet.pk).update(balance=F('balance') + amount)
    wallet.refresh_from_db()
    logger.info(f"Wallet {wallet.pk} of user {user.pk} credited {amount}")
    return wallet


def debit(user, amount):
    wallet = get_wallet(user)
    debited = Wallet.objects.filter(pk=wallet.pk, balance__gte=amount).update(balance=F('balance') - amount)
    wallet.refresh_from_db()
    if not debited:
        raise InsufficientBalance(
            f"Insufficient balance. Available: {wallet.balance}",
            balance=wallet.balance,
        )
    logger.info(f"Wallet {wallet.pk} of user {user.pk} debited {amount}")
    return wallet
