import random

from django.db import models
from django.contrib.auth.models import AbstractUser
from django.utils import timezone

from core.constants import USER_ROLE_CHOICES, VERIFICATION_STATUS_CHOICES


class User(AbstractUser):
    email = models.EmailField(blank=True, null=True, unique=True)
    phone_number = models.CharField(max_length=15, blank=True, null=True, unique=True)
    role = models.CharField(max_length=20, choices=USER_ROLE_CHOICES, default='client')
    # Bumped on every role change; role switches are compare-and-swap on this value
    role_version = models.PositiveIntegerField(default=0)
    is_verified = models.BooleanField(default=False)

    @property
    def is_client(self):
        return self.role == 'client'

    @property
    def is_freelancer(self):
        return self.role == 'freelancer'

    @property
    def is_platform_admin(self):
        return self.is_superuser or self.role == 'admin'

    @staticmethod
    def get_by_phone(phone_number):
        return User.objects.filter(phone_number=phone_number).first()


class ClientProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='client_profile')
    full_name = models.CharField(max_length=150)
    company = models.CharField(max_length=150, blank=True, null=True)
    address = models.CharField(max_length=255, blank=True, null=True)
    is_profile_complete = models.BooleanField(default=False)
    total_jobs_posted = models.PositiveIntegerField(default=0)
    total_spent = models.PositiveBigIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Client: {self.full_name}"


class FreelancerProfile(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='freelancer_profile')
    full_name = models.CharField(max_length=150)
    gender = models.CharField(max_length=10, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    # Public numeric id issued on approval
    freelancer_code = models.CharField(max_length=9, unique=True, blank=True, null=True)
    verification_status = models.CharField(
        max_length=20, choices=VERIFICATION_STATUS_CHOICES, default='pending'
    )
    rejection_reason = models.TextField(blank=True, null=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    is_profile_complete = models.BooleanField(default=False)
    total_jobs = models.PositiveIntegerField(default=0)
    completed_jobs = models.PositiveIntegerField(default=0)
    total_earnings = models.PositiveBigIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Freelancer: {self.full_name} ({self.verification_status})"

    @property
    def is_approved(self):
        return self.verification_status == 'approved'

    def approve(self):
        """Approve the profile, issuing a freelancer code the first time."""
        self.verification_status = 'approved'
        self.rejection_reason = None
        self.verified_at = timezone.now()
        if not self.freelancer_code:
            self.freelancer_code = self._generate_code()
        self.save()

    def reject(self, reason):
        self.verification_status = 'rejected'
        self.rejection_reason = reason
        self.verified_at = timezone.now()
        self.save()

    @classmethod
    def _generate_code(cls):
        while True:
            code = str(random.randint(10000, 999999))
            if not cls.objects.filter(freelancer_code=code).exists():
                return code
