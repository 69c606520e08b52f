from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated, AllowAny
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django.db.models import Q
import logging

from core.utils import IsClient, IsFreelancer, paginate, success
from apps.jobs.serializers import JobSerializer
from .models import Transaction
from .serializers import (
    TransactionSerializer, WalletSerializer, WithdrawalRequestSerializer, GatewayCallbackSerializer
)
from .gateway import PaymentGateway, handle_callback, initiate_payment, verify_transaction
from .settlement import pay_for_job
from .wallets import get_wallet
from .withdrawals import request_withdrawal

logger = logging.getLogger(__name__)


class PayForJobView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description=(
            "Pay for a job marked as work done. Records the payment, splits off the platform "
            "commission and credits the freelancer's wallet."
        ),
        responses={200: TransactionSerializer, 400: 'Job not in work_done', 403: 'Forbidden', 404: 'Not Found'}
    )
    def post(self, request, job_id):
        result = pay_for_job(job_id, request.user)
        return success({
            'transaction': TransactionSerializer(result.payment).data,
            'commission': {
                'commission_amount': result.split.commission_amount,
                'freelancer_amount': result.split.freelancer_amount,
                'commission_rate': result.split.rate,
            },
            'job': JobSerializer(result.job).data,
        }, 'Payment completed successfully')


class InitiatePaymentView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    @swagger_auto_schema(
        operation_description="Start a gateway payment for a job marked as work done. Returns the checkout URL.",
        responses={
            201: openapi.Response(
                description='Payment initiated',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'transaction_id': openapi.Schema(type=openapi.TYPE_INTEGER),
                        'order_id': openapi.Schema(type=openapi.TYPE_STRING),
                        'payment_url': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                )
            ),
            400: 'Bad Request',
            502: 'Payment gateway failure'
        }
    )
    def post(self, request, job_id):
        payment, checkout_url = initiate_payment(job_id, request.user)
        return success({
            'transaction_id': payment.id,
            'order_id': payment.gateway_order_id,
            'payment_url': checkout_url,
        }, 'Payment initiated successfully', status.HTTP_201_CREATED)


class PaymentCallbackView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description="Asynchronous payment result posted by the gateway. Signed with X-Gateway-Signature.",
        request_body=GatewayCallbackSerializer,
        responses={200: 'Processed', 401: 'Invalid signature', 404: 'Transaction not found'}
    )
    def post(self, request):
        # Signature covers the raw body, read it before DRF parses the stream
        if not PaymentGateway().verify_signature(request.body, request.headers.get('X-Gateway-Signature')):
            logger.error('Invalid webhook signature')
            return Response(
                {'success': False, 'error': 'invalid_signature', 'message': 'Invalid webhook signature'},
                status=status.HTTP_401_UNAUTHORIZED
            )
        serializer = GatewayCallbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = handle_callback(serializer.validated_data)
        return success({'reference_id': payment.reference_id, 'status': payment.status}, 'Callback processed')


class VerifyPaymentView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Re-check a pending gateway payment with the gateway.",
        responses={200: TransactionSerializer, 404: 'Not Found', 502: 'Payment gateway failure'}
    )
    def get(self, request, transaction_id):
        payment = verify_transaction(transaction_id, request.user)
        return success(TransactionSerializer(payment).data)


class WalletView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Wallet balance of the authenticated user.",
        responses={200: WalletSerializer}
    )
    def get(self, request):
        return success(WalletSerializer(get_wallet(request.user)).data)


class TransactionHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Transactions where the authenticated user is the client or the freelancer.",
        manual_parameters=[
            openapi.Parameter('type', openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              enum=['payment', 'commission', 'refund', 'withdrawal']),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: TransactionSerializer(many=True)}
    )
    def get(self, request):
        transactions = Transaction.objects.filter(
            Q(client=request.user) | Q(freelancer=request.user)
        ).select_related('job')
        transaction_type = request.query_params.get('type')
        if transaction_type:
            transactions = transactions.filter(type=transaction_type)
        return paginate(self, request, transactions, TransactionSerializer, key='transactions')


class WithdrawalRequestView(APIView):
    permission_classes = [IsAuthenticated, IsFreelancer]

    @swagger_auto_schema(
        operation_description="Request a withdrawal to a bank account. The wallet is debited immediately.",
        request_body=WithdrawalRequestSerializer,
        responses={201: TransactionSerializer, 400: 'Insufficient balance'}
    )
    def post(self, request):
        serializer = WithdrawalRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        withdrawal, wallet = request_withdrawal(
            request.user,
            serializer.validated_data['amount'],
            serializer.validated_data['bank_details'],
        )
        return success({
            'transaction': TransactionSerializer(withdrawal).data,
            'new_balance': wallet.balance,
        }, 'Withdrawal request submitted successfully', status.HTTP_201_CREATED)
