"""Hosted payment gateway.

Gateway payments run ``work_done -> waiting_for_payment`` on initiation and
finish through the gateway's asynchronous callback (or a manual status
check): success settles the job, failure returns it to ``work_done`` so the
client can pay again. Callbacks may arrive more than once; a transaction
that is no longer ``pending`` is left untouched.
"""
import hashlib
import hmac
import logging
import re
from decimal import Decimal

import requests
from django.conf import settings
from django.db.transaction import atomic
from django.utils import timezone

from apps.jobs.state import get_client_job, transition
from core.exceptions import DependencyFailure, InvalidState, NotFound
from .models import Transaction
from .settlement import settle

logger = logging.getLogger(__name__)


class PaymentGateway:
    def __init__(self, base_url=None, secret_key=None, webhook_secret=None, timeout=None):
        self.base_url = (base_url if base_url is not None else settings.PAYMENT_GATEWAY_BASE_URL).rstrip('/')
        self.secret_key = secret_key if secret_key is not None else settings.PAYMENT_GATEWAY_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.PAYMENT_GATEWAY_WEBHOOK_SECRET
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT

    def _headers(self):
        return {
            'Authorization': f'Bearer {self.secret_key.strip()}',
            'Content-Type': 'application/json'
        }

    def _request(self, method, path, **kwargs):
        if not self.base_url:
            raise DependencyFailure('Payment gateway is not configured')
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Payment gateway HTTP error on {path}: {str(e)}, Response: {e.response.text}")
            raise DependencyFailure(f"Payment gateway rejected the request: {e.response.status_code}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Payment gateway request to {path} failed: {str(e)}")
            raise DependencyFailure('Payment gateway is unavailable')
        except ValueError:
            logger.error(f"Payment gateway returned a non-JSON body on {path}")
            raise DependencyFailure('Payment gateway returned an invalid response')

        if data.get('status') != 'success':
            logger.error(f"Payment gateway call {path} failed: {data}")
            raise DependencyFailure(f"Payment gateway error: {data.get('message', 'Unknown error')}")
        return data.get('data') or {}

    def create_payment_request(self, order_id, amount, user, description):
        payload = {
            'order_id': order_id,
            'amount': amount,
            'email': user.email or '',
            'phone_number': user.phone_number or '',
            'customer_name': user.get_full_name() or user.username,
            'description': re.sub(r'[^a-zA-Z0-9\-_\s.]', '', description)[:100],
            'callback_url': settings.PAYMENT_CALLBACK_URL,
        }
        logger.info(f"Creating gateway payment {order_id} for {amount}")
        data = self._request('post', '/payments/initialize', json=payload)
        checkout_url = data.get('checkout_url')
        if not checkout_url:
            raise DependencyFailure('Payment gateway did not return a checkout URL')
        return checkout_url

    def verify_payment(self, order_id):
        return self._request('get', f"/payments/verify/{order_id}")

    def verify_signature(self, body, signature):
        """HMAC-SHA256 of the raw callback body. Always valid when no secret is configured."""
        if not self.webhook_secret:
            return True
        if not signature:
            return False
        computed = hmac.new(self.webhook_secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(computed, signature)


def initiate_payment(job_id, client, gateway=None):
    gateway = gateway or PaymentGateway()
    job = get_client_job(job_id, client)
    if job.status != 'work_done':
        raise InvalidState('Job must be marked as work done before payment', current_status=job.status)
    if Transaction.objects.filter(job=job, type='payment', status__in=['pending', 'completed']).exists():
        raise InvalidState('Payment already initiated or completed for this job', current_status=job.status)

    with atomic():
        transition(job, 'waiting_for_payment', from_statuses=['work_done'])
        payment = Transaction(
            job=job,
            client=client,
            freelancer=job.freelancer,
            amount=job.amount,
            type='payment',
            status='pending',
            description=f"Payment for job: {job.title}",
            payment_method='gateway',
        )
        payment.gateway_order_id = f"ORDER_{payment.reference_id}"
        payment.save()

    try:
        checkout_url = gateway.create_payment_request(payment.gateway_order_id, payment.amount, client, job.title)
    except DependencyFailure as e:
        _fail_payment(payment, f"Gateway initiation failed: {e.message}")
        raise

    logger.info(f"Payment {payment.reference_id} initiated for job {job.id}")
    return payment, checkout_url


def _fail_payment(payment, reason):
    now = timezone.now()
    with atomic():
        failed = Transaction.objects.filter(pk=payment.pk, status='pending').update(
            status='failed', failure_reason=reason, updated_at=now
        )
        if failed and payment.job_id:
            try:
                with atomic():
                    transition(payment.job, 'work_done', from_statuses=['waiting_for_payment'])
            except InvalidState:
                logger.warning(f"Job {payment.job_id} was not waiting for payment when {payment.reference_id} failed")
    payment.refresh_from_db()
    logger.warning(f"Payment {payment.reference_id} failed: {reason}")
    return payment


def _same_amount(reported, expected):
    try:
        return Decimal(str(reported)) == expected
    except ArithmeticError:
        return False


def apply_gateway_result(payment, gateway_status, amount=None, gateway_transaction_id=None):
    if payment.status != 'pending':
        logger.info(f"Ignoring gateway result for finalised payment {payment.reference_id} ({payment.status})")
        return payment

    if gateway_status == 'pending':
        return payment
    if gateway_status != 'success':
        return _fail_payment(payment, f"Gateway reported payment status '{gateway_status}'")

    # A success without an amount cannot be checked and is treated as a mismatch
    if amount is None or not _same_amount(amount, payment.amount):
        logger.error(f"Gateway amount {amount} does not match payment {payment.reference_id} ({payment.amount})")
        return _fail_payment(payment, f"Amount mismatch: gateway reported {amount}")

    try:
        settle(payment.job, 'waiting_for_payment', payment=payment, gateway_transaction_id=gateway_transaction_id)
    except InvalidState as e:
        payment.refresh_from_db()
        if payment.status == 'pending':
            Transaction.objects.filter(pk=payment.pk, status='pending').update(
                status='failed', failure_reason=f"Settlement refused: {e.message}", updated_at=timezone.now()
            )
            logger.error(f"Gateway payment {payment.reference_id} succeeded but settlement was refused: {e.message}")
    payment.refresh_from_db()
    return payment


def handle_callback(payload):
    order_id = payload.get('order_id')
    payment = Transaction.objects.select_related('job').filter(gateway_order_id=order_id, type='payment').first()
    if payment is None:
        logger.error(f"Transaction not found for order: {order_id}")
        raise NotFound('Transaction not found')

    return apply_gateway_result(
        payment,
        str(payload.get('status') or 'failed').lower(),
        amount=payload.get('amount'),
        gateway_transaction_id=payload.get('transaction_id'),
    )


def verify_transaction(transaction_id, user, gateway=None):
    payment = Transaction.objects.select_related('job').filter(pk=transaction_id, type='payment').first()
    if payment is None or user.id not in (payment.client_id, payment.freelancer_id):
        raise NotFound('Transaction not found')
    if payment.status != 'pending' or not payment.gateway_order_id:
        return payment

    gateway = gateway or PaymentGateway()
    result = gateway.verify_payment(payment.gateway_order_id)
    return apply_gateway_result(
        payment,
        str(result.get('status', 'pending')).lower(),
        amount=result.get('amount'),
        gateway_transaction_id=result.get('id'),
    )
