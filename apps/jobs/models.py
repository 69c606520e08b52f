from django.db import models
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db.models import Q

from core.constants import (
    GENDER_PREFERENCE_CHOICES, JOB_CATEGORY_CHOICES, JOB_STATUS_CHOICES,
    LIVE_OFFER_STATUSES, OFFER_STATUS_CHOICES, OFFER_TYPE_CHOICES,
)


class Job(models.Model):
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='posted_jobs')
    freelancer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_jobs'
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=20, choices=JOB_CATEGORY_CHOICES)
    amount = models.PositiveIntegerField()
    number_of_people = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(100)]
    )
    street = models.CharField(max_length=200, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    state = models.CharField(max_length=100, blank=True, default='')
    pincode = models.CharField(max_length=10, blank=True, default='')
    gender_preference = models.CharField(max_length=10, choices=GENDER_PREFERENCE_CHOICES, default='any')
    status = models.CharField(max_length=20, choices=JOB_STATUS_CHOICES, default='open')
    # Hides the job from listings without touching its lifecycle
    is_active = models.BooleanField(default=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    work_completed_at = models.DateTimeField(null=True, blank=True)
    payment_completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'is_active']),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name='job_amount_positive'),
            models.CheckConstraint(
                condition=Q(number_of_people__gte=1) & Q(number_of_people__lte=100),
                name='job_number_of_people_range',
            ),
        ]

    def __str__(self):
        return f"{self.title} - {self.client.username}"

    @property
    def address(self):
        return {
            'street': self.street,
            'city': self.city,
            'state': self.state,
            'pincode': self.pincode,
        }


class Offer(models.Model):
    # Offers outlive their job; deletion only detaches them
    job = models.ForeignKey(Job, on_delete=models.SET_NULL, null=True, blank=True, related_name='offers')
    freelancer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='offers')
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_offers')
    # Job amount at the time the offer was made
    original_amount = models.PositiveIntegerField()
    offered_amount = models.PositiveIntegerField()
    message = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=OFFER_STATUS_CHOICES, default='pending')
    offer_type = models.CharField(max_length=20, choices=OFFER_TYPE_CHOICES)
    responded_at = models.DateTimeField(null=True, blank=True)
    response_message = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['job', 'status']),
            models.Index(fields=['freelancer', 'status']),
            models.Index(fields=['client', 'status']),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(offered_amount__gt=0), name='offer_amount_positive'),
            # One live offer per freelancer per job
            models.UniqueConstraint(
                fields=['job', 'freelancer'],
                condition=Q(status__in=LIVE_OFFER_STATUSES),
                name='one_live_offer_per_freelancer',
            ),
        ]

    def __str__(self):
        job_title = self.job.title if self.job else 'deleted job'
        return f"Offer {self.id} by {self.freelancer.username} on {job_title} ({self.status})"
