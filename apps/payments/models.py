import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from apps.jobs.models import Job
from core.constants import PAYMENT_METHOD_CHOICES, TRANSACTION_STATUS_CHOICES, TRANSACTION_TYPE_CHOICES


def generate_reference_id():
    return f"TXN{int(timezone.now().timestamp() * 1000)}{uuid.uuid4().hex[:9].upper()}"


class Transaction(models.Model):
    job = models.ForeignKey(Job, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='client_transactions'
    )
    freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='freelancer_transactions'
    )
    amount = models.PositiveIntegerField()
    type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=TRANSACTION_STATUS_CHOICES, default='pending')
    description = models.CharField(max_length=255)
    reference_id = models.CharField(max_length=64, unique=True, default=generate_reference_id)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='wallet')
    gateway_order_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    gateway_transaction_id = models.CharField(max_length=100, null=True, blank=True)
    # Payment this commission was taken from
    related_transaction = models.ForeignKey(
        'self', on_delete=models.SET_NULL, null=True, blank=True, related_name='commissions'
    )
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    commission_rate_version = models.PositiveIntegerField(null=True, blank=True)
    account_number = models.CharField(max_length=34, blank=True, null=True)
    ifsc_code = models.CharField(max_length=11, blank=True, null=True)
    account_holder_name = models.CharField(max_length=150, blank=True, null=True)
    failure_reason = models.TextField(blank=True, null=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client', '-created_at']),
            models.Index(fields=['freelancer', '-created_at']),
            models.Index(fields=['status', 'type']),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name='transaction_amount_positive'),
            # A job is paid for at most once
            models.UniqueConstraint(
                fields=['job'],
                condition=Q(type='payment', status='completed'),
                name='one_completed_payment_per_job',
            ),
        ]

    def __str__(self):
        return f"{self.type} {self.reference_id} ({self.status}) {self.amount}"

    @property
    def bank_details(self):
        if not self.account_number:
            return None
        return {
            'account_number': self.account_number,
            'ifsc_code': self.ifsc_code,
            'account_holder_name': self.account_holder_name,
        }


class Wallet(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='wallet')
    balance = models.BigIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(balance__gte=0), name='wallet_balance_non_negative'),
        ]

    def __str__(self):
        return f"Wallet of {self.user.username}: {self.balance}"

    @classmethod
    def for_user(cls, user):
        wallet, _ = cls.objects.get_or_create(user=user)
        return wallet


class CommissionRate(models.Model):
    """One row per rate change; the newest version is in effect."""
    version = models.PositiveIntegerField(unique=True)
    rate = models.DecimalField(max_digits=5, decimal_places=2)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-version']
        constraints = [
            models.CheckConstraint(condition=Q(rate__gte=0) & Q(rate__lte=100), name='commission_rate_range'),
        ]

    def __str__(self):
        return f"v{self.version}: {self.rate}%"
