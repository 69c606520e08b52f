from rest_framework import serializers
from apps.users.models import FreelancerProfile
from .models import ManagementLog


class ManagementLogSerializer(serializers.ModelSerializer):
    admin = serializers.StringRelatedField()

    class Meta:
        model = ManagementLog
        fields = ['id', 'admin', 'action', 'target', 'details', 'timestamp']


class FreelancerVerificationSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['approved', 'rejected'])
    rejection_reason = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)

    def validate(self, data):
        if data['status'] == 'rejected' and not data.get('rejection_reason'):
            raise serializers.ValidationError({'rejection_reason': 'A reason is required when rejecting a profile.'})
        return data


class FreelancerVerificationResultSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source='user.id')
    phone_number = serializers.CharField(source='user.phone_number')

    class Meta:
        model = FreelancerProfile
        fields = [
            'user_id', 'phone_number', 'full_name', 'freelancer_code', 'verification_status',
            'rejection_reason', 'verified_at',
        ]
