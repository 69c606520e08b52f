from rest_framework import serializers
from .models import User, ClientProfile, FreelancerProfile

ROLE_CHOICES = ['client', 'freelancer']


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'email', 'phone_number', 'role', 'is_verified']
        read_only_fields = ['id', 'username', 'role', 'is_verified']


class ClientProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClientProfile
        fields = [
            'full_name', 'company', 'address', 'is_profile_complete',
            'total_jobs_posted', 'total_spent', 'created_at', 'updated_at',
        ]
        read_only_fields = ['is_profile_complete', 'total_jobs_posted', 'total_spent', 'created_at', 'updated_at']

    def save(self, **kwargs):
        profile = super().save(**kwargs)
        complete = bool(profile.full_name and profile.address)
        if complete != profile.is_profile_complete:
            profile.is_profile_complete = complete
            profile.save(update_fields=['is_profile_complete'])
        return profile


class FreelancerProfileSerializer(serializers.ModelSerializer):
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'], required=False, allow_null=True)

    class Meta:
        model = FreelancerProfile
        fields = [
            'full_name', 'gender', 'city', 'freelancer_code', 'verification_status', 'rejection_reason',
            'verified_at', 'is_profile_complete', 'total_jobs', 'completed_jobs', 'total_earnings',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'freelancer_code', 'verification_status', 'rejection_reason', 'verified_at', 'is_profile_complete',
            'total_jobs', 'completed_jobs', 'total_earnings', 'created_at', 'updated_at',
        ]

    def save(self, **kwargs):
        profile = super().save(**kwargs)
        complete = bool(profile.full_name and profile.gender and profile.city)
        if complete != profile.is_profile_complete:
            profile.is_profile_complete = complete
            profile.save(update_fields=['is_profile_complete'])
        return profile


class RoleCheckSerializer(serializers.Serializer):
    phone_number = serializers.RegexField(r'^\+?\d{9,15}$')
    requested_role = serializers.ChoiceField(choices=ROLE_CHOICES)


class RoleSwitchSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=ROLE_CHOICES)
