"""Commission rate and split.

The rate is a percentage. Settlements read it once through
``current_rate()`` and pass the returned ``RateSnapshot`` along, so a rate
change committed mid-settlement never affects that settlement.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import IntegrityError
from django.db.models import Count, Max, Sum
from django.db.transaction import atomic
from django.utils import timezone
from rest_framework import serializers

from core.exceptions import InvalidState
from .models import CommissionRate, Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateSnapshot:
    rate: Decimal
    version: int


@dataclass(frozen=True)
class CommissionSplit:
    total_amount: int
    commission_amount: int
    freelancer_amount: int
    rate: Decimal
    version: int

    @property
    def commission_percentage(self):
        if not self.total_amount:
            return '0.00'
        return f"{Decimal(self.commission_amount) * 100 / self.total_amount:.2f}"


def current_rate():
    latest = CommissionRate.objects.order_by('-version').first()
    if latest is None:
        return RateSnapshot(Decimal(str(settings.COMMISSION_RATE)), 0)
    return RateSnapshot(latest.rate, latest.version)


def calculate_commission(amount, snapshot=None):
    snapshot = snapshot or current_rate()
    commission = int((Decimal(amount) * snapshot.rate / 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    return CommissionSplit(
        total_amount=amount,
        commission_amount=commission,
        freelancer_amount=amount - commission,
        rate=snapshot.rate,
        version=snapshot.version,
    )


def update_commission_rate(new_rate, changed_by=None):
    try:
        rate = Decimal(str(new_rate))
    except ArithmeticError:
        raise serializers.ValidationError({'rate': ['Commission rate must be a number']})
    if not rate.is_finite():
        raise serializers.ValidationError({'rate': ['Commission rate must be a number']})
    if rate < 0 or rate > 100:
        raise serializers.ValidationError({'rate': ['Commission rate must be between 0 and 100']})

    try:
        with atomic():
            latest = CommissionRate.objects.aggregate(v=Max('version'))['v'] or 0
            entry = CommissionRate.objects.create(version=latest + 1, rate=rate, changed_by=changed_by)
    except IntegrityError:
        raise InvalidState('The commission rate was changed concurrently. Please retry.')

    logger.info(f"Commission rate set to {rate}% (version {entry.version})")
    return entry


def commission_stats():
    snapshot = current_rate()
    completed = Transaction.objects.filter(type='commission', status='completed')
    month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    total = completed.aggregate(amount=Sum('amount'), count=Count('id'))
    monthly = completed.filter(created_at__gte=month_start).aggregate(amount=Sum('amount'), count=Count('id'))
    return {
        'commission_rate': snapshot.rate,
        'rate_version': snapshot.version,
        'total_commission': total['amount'] or 0,
        'total_commission_transactions': total['count'],
        'monthly_commission': monthly['amount'] or 0,
        'monthly_commission_transactions': monthly['count'],
    }
