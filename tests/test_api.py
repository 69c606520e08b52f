"""End-to-end checks of the HTTP layer: envelopes, status codes and permissions."""

import hashlib
import hmac
import json
from unittest.mock import MagicMock, patch

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext

from apps.jobs.models import Job, Offer
from apps.management.models import ManagementLog
from apps.payments import wallets
from apps.payments.models import Transaction, Wallet
from tests.factories import age_offer

pytestmark = pytest.mark.django_db

JOB_PAYLOAD = {
    'title': 'Fix kitchen sink',
    'description': 'Leaking pipe under the sink',
    'category': 'plumbing',
    'amount': 1000,
    'number_of_people': 1,
    'address': {'street': '12 Market Road', 'city': 'Pune', 'state': 'Maharashtra', 'pincode': '411001'},
    'gender_preference': 'any',
}


class TestJobEndpoints:
    def test_create_job(self, auth_client, client_user):
        response = auth_client(client_user).post('/jobs/create/', JOB_PAYLOAD, format='json')
        assert response.status_code == 201
        assert response.data['success'] is True
        job = Job.objects.get(pk=response.data['data']['id'])
        assert (job.city, job.pincode) == ('Pune', '411001')
        assert response.data['data']['address']['city'] == 'Pune'

    def test_create_job_validation(self, auth_client, client_user):
        response = auth_client(client_user).post(
            '/jobs/create/', {**JOB_PAYLOAD, 'amount': 0, 'number_of_people': 101}, format='json'
        )
        assert response.status_code == 400
        assert response.data['error'] == 'validation_error'
        assert set(response.data['errors']) >= {'amount', 'number_of_people'}

    def test_freelancer_cannot_create(self, auth_client, freelancer):
        response = auth_client(freelancer).post('/jobs/create/', JOB_PAYLOAD, format='json')
        assert response.status_code == 403
        assert response.data['success'] is False

    def test_anonymous_rejected(self, api_client):
        response = api_client.get('/jobs/available/')
        assert response.status_code == 401

    def test_available_jobs(self, auth_client, freelancer, job):
        Job.objects.create(client=job.client, title='Hidden', description='x', category='cooking',
                           amount=500, number_of_people=1, is_active=False)
        response = auth_client(freelancer).get('/jobs/available/')
        assert response.status_code == 200
        jobs = response.data['data']['jobs']
        assert [j['id'] for j in jobs] == [job.id]
        assert response.data['data']['pagination']['total'] == 1

    def test_available_jobs_gender_filter(self, auth_client, freelancer, job):
        Job.objects.filter(pk=job.pk).update(gender_preference='female')
        response = auth_client(freelancer).get('/jobs/available/', {'gender': 'male'})
        assert response.data['data']['jobs'] == []

    def test_my_jobs_offer_counts(self, auth_client, client_user, freelancer, other_freelancer, job):
        api = auth_client(client_user)
        with CaptureQueriesContext(connection) as single:
            api.get('/jobs/mine/')

        quiet = Job.objects.create(client=client_user, title='Paint fence', description='x', category='cooking',
                                   amount=500, number_of_people=1)
        for worker, status in ((freelancer, 'pending'), (other_freelancer, 'withdrawn')):
            Offer.objects.create(job=job, freelancer=worker, client=client_user, original_amount=1000,
                                 offered_amount=900, offer_type='custom_offer', status=status)

        with CaptureQueriesContext(connection) as several:
            response = api.get('/jobs/mine/')
        counts = {j['id']: j['offer_count'] for j in response.data['data']['jobs']}
        assert counts == {job.id: 1, quiet.id: 0}
        assert len(several.captured_queries) == len(single.captured_queries)

    def test_delete_assigned_job_refused(self, auth_client, client_user, assigned_job):
        response = auth_client(client_user).delete(f'/jobs/{assigned_job.id}/delete/')
        assert response.status_code == 400
        assert response.data['error'] == 'invalid_state'
        assert response.data['current_status'] == 'assigned'

    def test_delete_open_job(self, auth_client, client_user, job):
        response = auth_client(client_user).delete(f'/jobs/{job.id}/delete/')
        assert response.status_code == 200
        assert not Job.objects.filter(pk=job.pk).exists()

    def test_offer_history_kept_after_delete(self, auth_client, client_user, freelancer, job):
        auth_client(freelancer).post(f'/jobs/{job.id}/apply/', {'offered_amount': 900}, format='json')
        auth_client(client_user).delete(f'/jobs/{job.id}/delete/')
        response = auth_client(freelancer).get('/jobs/offers/mine/')
        assert response.status_code == 200
        [offer] = response.data['data']['offers']
        assert (offer['job'], offer['job_title'], offer['status']) == (None, None, 'rejected')
        assert offer['response_message'] == 'Job was deleted'

    def test_work_done_by_stranger(self, auth_client, other_freelancer, assigned_job):
        response = auth_client(other_freelancer).post(f'/jobs/{assigned_job.id}/work-done/')
        assert response.status_code == 403
        assert response.data['error'] == 'forbidden'

    def test_visibility(self, auth_client, client_user, job):
        response = auth_client(client_user).patch(f'/jobs/{job.id}/visibility/', {'is_active': False}, format='json')
        assert response.status_code == 200
        assert response.data['data']['is_active'] is False


class TestOfferEndpoints:
    def test_submit_then_cooldown(self, auth_client, freelancer, job):
        api = auth_client(freelancer)
        first = api.post(f'/jobs/{job.id}/apply/', {'offered_amount': 900}, format='json')
        assert first.status_code == 201
        assert first.data['data']['created'] is True

        second = api.post(f'/jobs/{job.id}/apply/', {'offered_amount': 800}, format='json')
        assert second.status_code == 429
        assert second.data['error'] == 'cooldown_active'
        assert 0 < second.data['remaining_time'] <= 300

    def test_resubmit_after_cooldown(self, auth_client, freelancer, job):
        api = auth_client(freelancer)
        api.post(f'/jobs/{job.id}/apply/', {'offered_amount': 900}, format='json')
        age_offer(Offer.objects.get(job=job), 301)
        response = api.post(f'/jobs/{job.id}/apply/', {'offered_amount': 850}, format='json')
        assert response.status_code == 200
        assert response.data['data']['created'] is False
        assert response.data['data']['offered_amount'] == 850

    def test_unverified_freelancer(self, auth_client, unverified_freelancer, job):
        response = auth_client(unverified_freelancer).post(f'/jobs/{job.id}/apply/', {}, format='json')
        assert response.status_code == 403
        assert response.data['error'] == 'verification_required'

    def test_accept_offer(self, auth_client, client_user, freelancer, other_freelancer, job):
        offer = auth_client(freelancer).post(f'/jobs/{job.id}/apply/', {'offered_amount': 900}, format='json')
        auth_client(other_freelancer).post(f'/jobs/{job.id}/apply/', {'offered_amount': 950}, format='json')

        response = auth_client(client_user).post(
            f"/jobs/offers/{offer.data['data']['id']}/respond/", {'action': 'accept'}, format='json'
        )
        assert response.status_code == 200
        assert response.data['data']['offer']['status'] == 'accepted'
        assert response.data['data']['job']['status'] == 'assigned'
        assert Offer.objects.filter(job=job, status='rejected').count() == 1

    def test_respond_twice(self, auth_client, client_user, freelancer, job):
        offer = auth_client(freelancer).post(f'/jobs/{job.id}/apply/', {}, format='json')
        url = f"/jobs/offers/{offer.data['data']['id']}/respond/"
        auth_client(client_user).post(url, {'action': 'reject'}, format='json')
        response = auth_client(client_user).post(url, {'action': 'accept'}, format='json')
        assert response.status_code == 400
        assert response.data['error'] == 'already_resolved'
        assert response.data['current_status'] == 'rejected'

    def test_job_offers_listing(self, auth_client, client_user, freelancer, job):
        auth_client(freelancer).post(f'/jobs/{job.id}/apply/', {}, format='json')
        response = auth_client(client_user).get(f'/jobs/{job.id}/offers/')
        assert response.status_code == 200
        assert len(response.data['data']['offers']) == 1


class TestPaymentEndpoints:
    def test_pay_for_job(self, auth_client, client_user, freelancer, work_done_job):
        response = auth_client(client_user).post(f'/payments/jobs/{work_done_job.id}/pay/')
        assert response.status_code == 200
        assert response.data['data']['commission']['commission_amount'] == 100
        assert response.data['data']['commission']['freelancer_amount'] == 900

        again = auth_client(client_user).post(f'/payments/jobs/{work_done_job.id}/pay/')
        assert again.status_code == 400
        assert again.data['current_status'] == 'completed'

    def test_wallet(self, auth_client, freelancer):
        wallets.credit(freelancer, 250)
        response = auth_client(freelancer).get('/payments/wallet/')
        assert response.data['data']['balance'] == 250

    def test_withdraw_insufficient(self, auth_client, freelancer):
        wallets.credit(freelancer, 100)
        response = auth_client(freelancer).post('/payments/withdraw/', {
            'amount': 500,
            'bank_details': {'account_number': '1234567890', 'ifsc_code': 'HDFC0001234', 'account_holder_name': 'F'},
        }, format='json')
        assert response.status_code == 400
        assert response.data['error'] == 'insufficient_balance'
        assert response.data['balance'] == 100

    def test_withdraw(self, auth_client, freelancer):
        wallets.credit(freelancer, 500)
        response = auth_client(freelancer).post('/payments/withdraw/', {
            'amount': 200,
            'bank_details': {'account_number': '1234567890', 'ifsc_code': 'HDFC0001234', 'account_holder_name': 'F'},
        }, format='json')
        assert response.status_code == 201
        assert response.data['data']['new_balance'] == 300

    def test_transactions_history(self, auth_client, client_user, work_done_job):
        auth_client(client_user).post(f'/payments/jobs/{work_done_job.id}/pay/')
        response = auth_client(client_user).get('/payments/transactions/', {'type': 'payment'})
        assert [t['amount'] for t in response.data['data']['transactions']] == [1000]


class TestCallbackEndpoint:
    @pytest.fixture
    def pending(self, auth_client, work_done_job, client_user):
        checkout = MagicMock()
        checkout.json.return_value = {'status': 'success', 'data': {'checkout_url': 'https://gateway.test/pay/1'}}
        with patch('apps.payments.gateway.requests.request', return_value=checkout):
            result = auth_client(client_user).post(f'/payments/jobs/{work_done_job.id}/initiate/')
        assert result.status_code == 201
        assert result.data['data']['payment_url'] == 'https://gateway.test/pay/1'
        return Transaction.objects.get(type='payment', status='pending')

    def test_unsigned_callback(self, api_client, pending, freelancer):
        response = api_client.post('/payments/callback/', {
            'order_id': pending.gateway_order_id, 'status': 'success', 'amount': '1000',
        }, format='json')
        assert response.status_code == 200
        assert response.data['data']['status'] == 'completed'
        assert Wallet.objects.get(user=freelancer).balance == 900

    def test_callback_without_amount_refused(self, api_client, pending, freelancer):
        response = api_client.post('/payments/callback/', {
            'order_id': pending.gateway_order_id, 'status': 'success',
        }, format='json')
        assert response.status_code == 400
        assert 'amount' in response.data['errors']
        pending.refresh_from_db()
        assert pending.status == 'pending'
        assert not Wallet.objects.filter(user=freelancer).exists()

    def test_bad_signature(self, api_client, pending, settings):
        settings.PAYMENT_GATEWAY_WEBHOOK_SECRET = 'hook-secret'
        response = api_client.post('/payments/callback/', {
            'order_id': pending.gateway_order_id, 'status': 'success',
        }, format='json', HTTP_X_GATEWAY_SIGNATURE='forged')
        assert response.status_code == 401
        assert response.data['error'] == 'invalid_signature'
        pending.refresh_from_db()
        assert pending.status == 'pending'

    def test_signed_callback(self, api_client, pending, settings):
        settings.PAYMENT_GATEWAY_WEBHOOK_SECRET = 'hook-secret'
        body = json.dumps({'order_id': pending.gateway_order_id, 'status': 'failed', 'amount': 1000})
        signature = hmac.new(b'hook-secret', body.encode(), hashlib.sha256).hexdigest()
        response = api_client.post(
            '/payments/callback/', body, content_type='application/json', HTTP_X_GATEWAY_SIGNATURE=signature
        )
        assert response.status_code == 200
        assert response.data['data']['status'] == 'failed'
        assert Job.objects.get(pk=pending.job_id).status == 'work_done'


class TestRoleEndpoints:
    def test_role_check_blocked(self, api_client, client_user, job):
        response = api_client.post('/users/auth/role-check/', {
            'phone_number': client_user.phone_number, 'requested_role': 'freelancer',
        }, format='json')
        assert response.status_code == 200
        assert response.data['data']['can_switch'] is False
        assert response.data['data']['conflict_type'] == 'open_jobs'
        assert response.data['data']['conflict_count'] == 1
        # Anonymous callers never see the job list
        assert 'conflicts' not in response.data['data']

    def test_role_check_hides_jobs_from_other_users(self, auth_client, client_user, other_client, job):
        response = auth_client(other_client).post('/users/auth/role-check/', {
            'phone_number': client_user.phone_number, 'requested_role': 'freelancer',
        }, format='json')
        assert response.status_code == 200
        assert 'conflicts' not in response.data['data']

    @pytest.mark.parametrize('caller', ['client_user', 'admin_user'])
    def test_role_check_lists_jobs_to_owner_and_admin(self, request, auth_client, client_user, job, caller):
        response = auth_client(request.getfixturevalue(caller)).post('/users/auth/role-check/', {
            'phone_number': client_user.phone_number, 'requested_role': 'freelancer',
        }, format='json')
        assert [c['id'] for c in response.data['data']['conflicts']] == [job.id]

    def test_switch_conflict(self, auth_client, freelancer, assigned_job):
        response = auth_client(freelancer).post('/users/role/switch/', {'role': 'client'}, format='json')
        assert response.status_code == 409
        assert response.data['error'] == 'role_conflict'
        assert response.data['conflict_type'] == 'active_jobs'

    def test_switch(self, auth_client, freelancer):
        response = auth_client(freelancer).post('/users/role/switch/', {'role': 'client'}, format='json')
        assert response.status_code == 200
        assert response.data['data']['role'] == 'client'


class TestManagementEndpoints:
    def test_non_admin_refused(self, auth_client, client_user):
        assert auth_client(client_user).get('/management/commission/stats/').status_code == 403

    def test_resolve_withdrawal(self, auth_client, admin_user, freelancer):
        wallets.credit(freelancer, 500)
        auth_client(freelancer).post('/payments/withdraw/', {
            'amount': 200,
            'bank_details': {'account_number': '1234567890', 'ifsc_code': 'HDFC0001234', 'account_holder_name': 'F'},
        }, format='json')
        admin = auth_client(admin_user)
        pending = admin.get('/management/withdrawals/pending/').data['data']['withdrawals']
        assert len(pending) == 1

        url = f"/management/withdrawals/{pending[0]['id']}/resolve/"
        missing_reason = admin.post(url, {'action': 'reject'}, format='json')
        assert missing_reason.status_code == 400

        response = admin.post(url, {'action': 'reject', 'failure_reason': 'Wrong IFSC'}, format='json')
        assert response.status_code == 200
        assert Wallet.objects.get(user=freelancer).balance == 500

        again = admin.post(url, {'action': 'approve'}, format='json')
        assert again.status_code == 400
        assert again.data['error'] == 'already_resolved'

    def test_verify_freelancer(self, auth_client, admin_user, unverified_freelancer):
        response = auth_client(admin_user).post(
            f'/management/freelancers/{unverified_freelancer.id}/verify/', {'status': 'approved'}, format='json'
        )
        assert response.status_code == 200
        assert response.data['data']['verification_status'] == 'approved'
        assert response.data['data']['freelancer_code']
        assert ManagementLog.objects.filter(action='freelancer_approved').exists()

    def test_commission_rate(self, auth_client, admin_user):
        admin = auth_client(admin_user)
        response = admin.put('/management/commission/rate/', {'rate': '12.5'}, format='json')
        assert response.status_code == 201
        assert response.data['data']['version'] == 1
        assert admin.put('/management/commission/rate/', {'rate': '150'}, format='json').status_code == 400
        stats = admin.get('/management/commission/stats/').data['data']
        assert stats['rate_version'] == 1
