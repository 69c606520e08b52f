from rest_framework import serializers
from .models import Transaction, Wallet, CommissionRate


class TransactionSerializer(serializers.ModelSerializer):
    job_title = serializers.CharField(source='job.title', read_only=True, default=None)
    bank_details = serializers.DictField(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'reference_id', 'type', 'status', 'amount', 'description', 'payment_method',
            'job', 'job_title', 'client', 'freelancer', 'gateway_order_id', 'related_transaction',
            'commission_rate', 'commission_rate_version', 'bank_details', 'failure_reason',
            'completed_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = ['balance', 'is_active', 'updated_at']
        read_only_fields = fields


class BankDetailsSerializer(serializers.Serializer):
    account_number = serializers.RegexField(r'^\d{6,34}$')
    ifsc_code = serializers.RegexField(r'^[A-Za-z]{4}0[A-Za-z0-9]{6}$')
    account_holder_name = serializers.CharField(max_length=150)


class WithdrawalRequestSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)
    bank_details = BankDetailsSerializer()


class WithdrawalResolveSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    failure_reason = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)

    def validate(self, data):
        if data['action'] == 'reject' and not data.get('failure_reason'):
            raise serializers.ValidationError({'failure_reason': 'A reason is required when rejecting a withdrawal.'})
        return data


class GatewayCallbackSerializer(serializers.Serializer):
    order_id = serializers.CharField(max_length=100)
    status = serializers.CharField(max_length=30)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class CommissionRateSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionRate
        fields = ['version', 'rate', 'changed_by', 'created_at']
        read_only_fields = ['version', 'changed_by', 'created_at']


class CommissionRateUpdateSerializer(serializers.Serializer):
    rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100)
