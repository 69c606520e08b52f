from rest_framework import serializers

from core.constants import GENDER_PREFERENCE_CHOICES, JOB_CATEGORY_CHOICES, OFFER_TYPE_CHOICES
from .models import Job, Offer


class UserSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    phone_number = serializers.CharField()


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    pincode = serializers.RegexField(r'^\d{4,10}$', max_length=10)


class JobSerializer(serializers.ModelSerializer):
    client = UserSummarySerializer(read_only=True)
    freelancer = UserSummarySerializer(read_only=True)
    address = AddressSerializer()
    category = serializers.ChoiceField(choices=JOB_CATEGORY_CHOICES)
    gender_preference = serializers.ChoiceField(choices=GENDER_PREFERENCE_CHOICES, default='any')
    amount = serializers.IntegerField(min_value=1)
    number_of_people = serializers.IntegerField(min_value=1, max_value=100)
    offer_count = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            'id', 'client', 'freelancer', 'title', 'description', 'category', 'amount',
            'number_of_people', 'address', 'gender_preference', 'status', 'is_active',
            'assigned_at', 'work_completed_at', 'payment_completed_at', 'cancelled_at',
            'cancellation_reason', 'offer_count', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'status', 'is_active', 'assigned_at', 'work_completed_at', 'payment_completed_at',
            'cancelled_at', 'cancellation_reason', 'created_at', 'updated_at',
        ]

    def get_offer_count(self, obj):
        # Listings annotate the count; single jobs fall back to a query
        count = getattr(obj, 'pending_offer_count', None)
        if count is None:
            count = obj.offers.filter(status='pending').count()
        return count

    def to_internal_value(self, data):
        validated = super().to_internal_value(data)
        # Address is stored flat on the job
        address = validated.pop('address', None) or {}
        for field in ('street', 'city', 'state', 'pincode'):
            if field in address:
                validated[field] = address[field]
        return validated


class OfferSerializer(serializers.ModelSerializer):
    freelancer = UserSummarySerializer(read_only=True)
    job_title = serializers.CharField(source='job.title', read_only=True, allow_null=True)
    job_status = serializers.CharField(source='job.status', read_only=True, allow_null=True)

    class Meta:
        model = Offer
        fields = [
            'id', 'job', 'job_title', 'job_status', 'freelancer', 'client', 'original_amount',
            'offered_amount', 'message', 'status', 'offer_type', 'responded_at',
            'response_message', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class OfferSubmitSerializer(serializers.Serializer):
    offered_amount = serializers.IntegerField(min_value=1, required=False)
    message = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    offer_type = serializers.ChoiceField(choices=OFFER_TYPE_CHOICES, default='custom_offer')


class OfferResponseSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['accept', 'reject'])
    response_message = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)


class JobCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)


class JobVisibilitySerializer(serializers.Serializer):
    is_active = serializers.BooleanField()
