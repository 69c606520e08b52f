from rest_framework.views import APIView
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from django.db.transaction import atomic
import logging

from core.exceptions import NotFound
from core.utils import IsAdmin, paginate, success
from apps.users.models import FreelancerProfile
from apps.payments.commission import commission_stats, update_commission_rate
from apps.payments.models import Transaction
from apps.payments.serializers import (
    TransactionSerializer, WithdrawalResolveSerializer, CommissionRateSerializer, CommissionRateUpdateSerializer
)
from apps.payments.withdrawals import pending_withdrawals, resolve_withdrawal
from .models import ManagementLog
from .serializers import (
    ManagementLogSerializer, FreelancerVerificationSerializer, FreelancerVerificationResultSerializer
)

logger = logging.getLogger(__name__)

page_params = [
    openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
    openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
]


class PendingWithdrawalsView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="List withdrawal requests waiting for review.",
        manual_parameters=page_params,
        responses={200: TransactionSerializer(many=True)}
    )
    def get(self, request):
        return paginate(self, request, pending_withdrawals(), TransactionSerializer, key='withdrawals')


class ResolveWithdrawalView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="Approve or reject a pending withdrawal. Rejection returns the amount to the wallet.",
        request_body=WithdrawalResolveSerializer,
        responses={200: TransactionSerializer, 400: 'Already processed', 404: 'Not Found'}
    )
    def post(self, request, transaction_id):
        serializer = WithdrawalResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        withdrawal = resolve_withdrawal(
            transaction_id,
            request.user,
            serializer.validated_data['action'],
            serializer.validated_data.get('failure_reason'),
        )
        action = 'approved' if withdrawal.status == 'completed' else 'rejected'
        return success(TransactionSerializer(withdrawal).data, f"Withdrawal {action} successfully")


class VerifyFreelancerView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="Approve or reject a freelancer profile. Approval issues a freelancer code.",
        request_body=FreelancerVerificationSerializer,
        responses={200: FreelancerVerificationResultSerializer, 404: 'Not Found'}
    )
    def post(self, request, user_id):
        serializer = FreelancerVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with atomic():
            profile = FreelancerProfile.objects.select_for_update().select_related('user').filter(user_id=user_id).first()
            if profile is None:
                raise NotFound('Freelancer profile not found')
            if serializer.validated_data['status'] == 'approved':
                profile.approve()
            else:
                profile.reject(serializer.validated_data['rejection_reason'])
            ManagementLog.record(
                request.user,
                f"freelancer_{profile.verification_status}",
                f"user:{user_id}",
                freelancer_code=profile.freelancer_code,
                rejection_reason=profile.rejection_reason,
            )
        logger.info(f"Freelancer {user_id} {profile.verification_status} by admin {request.user.id}")
        return success(
            FreelancerVerificationResultSerializer(profile).data,
            f"Freelancer {profile.verification_status} successfully"
        )


class CommissionStatsView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(operation_description="Current commission rate and collected commission totals.")
    def get(self, request):
        return success(commission_stats())


class CommissionRateView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="Set a new commission rate (percent). Applies to settlements that start afterwards.",
        request_body=CommissionRateUpdateSerializer,
        responses={201: CommissionRateSerializer, 400: 'Bad Request'}
    )
    def put(self, request):
        serializer = CommissionRateUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with atomic():
            entry = update_commission_rate(serializer.validated_data['rate'], changed_by=request.user)
            ManagementLog.record(
                request.user,
                'commission_rate_update',
                f"commission_rate:v{entry.version}",
                rate=str(entry.rate),
            )
        return success(
            CommissionRateSerializer(entry).data,
            f"Commission rate updated to {entry.rate}%",
            status.HTTP_201_CREATED
        )


class CommissionTransactionsView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="Completed commission transactions, newest first.",
        manual_parameters=page_params,
        responses={200: TransactionSerializer(many=True)}
    )
    def get(self, request):
        transactions = Transaction.objects.filter(type='commission').select_related('job')
        return paginate(self, request, transactions, TransactionSerializer, key='transactions')


class ManagementLogListView(APIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_description="Audit trail of admin actions.",
        manual_parameters=page_params,
        responses={200: ManagementLogSerializer(many=True)}
    )
    def get(self, request):
        logs = ManagementLog.objects.select_related('admin')
        action = request.query_params.get('action')
        if action:
            logs = logs.filter(action=action)
        return paginate(self, request, logs, ManagementLogSerializer, key='logs')
