"""
Integration Tests for Payment Flow
End-to-end testing of subscription payments through the HTTP API
"""

import json
import uuid

from momopay.models import PaymentStatus
from momopay.providers import CollectionStatus
from momopay.services.payment_service import PaymentService


def _initiate_body(**overrides):
    body = {
        'phone_number': '0772 123 456',
        'provider': 'MTN',
        'plan_type': 'MONTHLY',
        'feature_type': 'SURVEY'
    }
    body.update(overrides)
    return json.dumps(body)


class TestPaymentFlowIntegration:
    """Integration tests for complete payment flows"""

    def test_complete_mtn_subscription_flow(self, client, user_headers, mock_provider, mock_settle_delay):
        """Initiate, settle in the worker, then read status, history and subscription"""

        # Step 1: Initiate payment
        init_response = client.post(
            '/api/v1/payments/initiate',
            headers={**user_headers, 'Idempotency-Key': 'flow-key-1'},
            data=_initiate_body()
        )

        assert init_response.status_code == 201
        data = json.loads(init_response.data)
        assert data['success'] is True
        assert data['data']['idempotent'] is False
        assert data['data']['requires_confirmation'] is True
        assert data['data']['payment']['status'] == 'PENDING'
        assert data['data']['payment']['amount'] == 5000.0
        assert '5,000 UGX' in data['data']['message']

        payment_id = data['data']['payment']['id']
        mock_settle_delay.assert_called_once_with(payment_id)

        # Step 2: The worker settles it
        PaymentService.settle_payment(payment_id)

        # Step 3: Status shows the unlocked subscription
        status_response = client.get(f'/api/v1/payments/{payment_id}/status', headers=user_headers)

        assert status_response.status_code == 200
        status_data = json.loads(status_response.data)['data']
        assert status_data['payment']['status'] == 'SUCCESSFUL'
        assert status_data['payment']['completed_at'] is not None
        assert status_data['subscription']['status'] == 'ACTIVE'
        assert status_data['subscription']['payment_id'] == payment_id
        assert status_data['subscription_status'] == 'ACTIVE'

        # Step 4: History and subscription views
        history = json.loads(client.get('/api/v1/payments/history', headers=user_headers).data)
        assert [p['id'] for p in history['data']] == [payment_id]

        subscription = json.loads(
            client.get('/api/v1/payments/subscription?feature_type=survey', headers=user_headers).data
        )
        assert subscription['data']['is_active'] is True
        assert subscription['data']['source'] == 'MOBILE_MONEY'

    def test_idempotent_replay(self, client, user_headers, mock_settle_delay):
        """Same key twice: same payment, 200 on the replay, one settlement"""
        first = client.post(
            '/api/v1/payments/initiate',
            headers=user_headers,
            data=_initiate_body(idempotency_key='abc')
        )
        second = client.post(
            '/api/v1/payments/initiate',
            headers=user_headers,
            data=_initiate_body(idempotency_key='abc')
        )

        assert first.status_code == 201
        assert second.status_code == 200

        first_data = json.loads(first.data)['data']
        second_data = json.loads(second.data)['data']
        assert second_data['payment']['id'] == first_data['payment']['id']
        assert second_data['idempotent'] is True
        mock_settle_delay.assert_called_once()

    def test_conflict_references_existing_payment(self, client, user_headers):
        first = client.post('/api/v1/payments/initiate', headers=user_headers, data=_initiate_body())
        second = client.post(
            '/api/v1/payments/initiate',
            headers=user_headers,
            data=_initiate_body(plan_type='WEEKLY')
        )

        assert second.status_code == 409
        error = json.loads(second.data)
        assert error['success'] is False
        assert error['existing_payment_id'] == json.loads(first.data)['data']['payment']['id']

    def test_validation_errors(self, client, user_headers):
        short_phone = client.post(
            '/api/v1/payments/initiate',
            headers=user_headers,
            data=_initiate_body(phone_number='0772')
        )
        assert short_phone.status_code == 400
        assert json.loads(short_phone.data)['message'] == 'Invalid phone number format'

        bad_plan = client.post(
            '/api/v1/payments/initiate',
            headers=user_headers,
            data=_initiate_body(plan_type='FORTNIGHTLY')
        )
        assert bad_plan.status_code == 400

        missing_fields = client.post(
            '/api/v1/payments/initiate',
            headers=user_headers,
            data=json.dumps({'provider': 'MTN'})
        )
        assert missing_fields.status_code == 400
        details = json.loads(missing_fields.data)['details']
        assert 'phone_number' in details
        assert 'plan_type' in details

        bad_provider = client.post(
            '/api/v1/payments/initiate',
            headers=user_headers,
            data=_initiate_body(provider='mpesa')
        )
        assert bad_provider.status_code == 400

    def test_initiate_requires_token(self, client):
        response = client.post(
            '/api/v1/payments/initiate',
            headers={'Content-Type': 'application/json'},
            data=_initiate_body()
        )

        assert response.status_code == 401

    def test_status_reconciles_stuck_payment(self, client, user, user_headers, make_payment, mock_provider):
        mock_provider.check_collection_status.return_value = CollectionStatus.FAILED
        payment = make_payment(user, age_seconds=45)

        response = client.get(f'/api/v1/payments/{payment.id}/status', headers=user_headers)

        data = json.loads(response.data)['data']
        assert data['payment']['status'] == 'FAILED'
        assert data['payment']['failed_at'] is not None
        assert data['subscription'] is None
        assert data['subscription_status'] == 'INACTIVE'
        mock_provider.check_collection_status.assert_called_once()

    def test_status_of_fresh_payment_skips_provider(self, client, user, user_headers, make_payment,
                                                    mock_provider):
        payment = make_payment(user, age_seconds=2)

        response = client.get(f'/api/v1/payments/{payment.id}/status', headers=user_headers)

        assert json.loads(response.data)['data']['payment']['status'] == 'PENDING'
        mock_provider.check_collection_status.assert_not_called()

    def test_status_access_control(self, client, user, other_user, admin_headers, make_payment, make_headers):
        payment = make_payment(user, status=PaymentStatus.FAILED.value)

        forbidden = client.get(f'/api/v1/payments/{payment.id}/status', headers=make_headers(other_user))
        assert forbidden.status_code == 403

        allowed = client.get(f'/api/v1/payments/{payment.id}/status', headers=admin_headers)
        assert allowed.status_code == 200

        missing = client.get(f'/api/v1/payments/{uuid.uuid4()}/status', headers=admin_headers)
        assert missing.status_code == 404

    def test_list_plans(self, client):
        response = client.get('/api/v1/payments/plans?feature_type=VIDEO')

        assert response.status_code == 200
        plan_types = [plan['type'] for plan in json.loads(response.data)['data']]
        assert plan_types == ['DAILY', 'WEEKLY', 'MONTHLY', 'QUARTERLY', 'YEARLY']

        invalid = client.get('/api/v1/payments/plans?feature_type=MUSIC')
        assert invalid.status_code == 400


class TestAdminEndpoints:
    """Sweep and audit endpoints"""

    def test_sweep_requires_privileged_role(self, client, user_headers):
        response = client.post('/api/v1/admin/payments/sweep-stale', headers=user_headers)

        assert response.status_code == 403

    def test_sweep_stale_payments(self, client, user, admin_headers, make_payment, session):
        stale = make_payment(user, age_seconds=16 * 60)

        response = client.post('/api/v1/admin/payments/sweep-stale', headers=admin_headers)

        assert response.status_code == 200
        assert json.loads(response.data)['data'] == {'count': 1}

        session.expire_all()
        assert stale.status == PaymentStatus.FAILED.value
        assert user.survey_subscription_status == 'INACTIVE'

    def test_sweep_rejects_bad_cutoff(self, client, admin_headers):
        response = client.post(
            '/api/v1/admin/payments/sweep-stale',
            headers=admin_headers,
            data=json.dumps({'older_than_seconds': -5})
        )

        assert response.status_code == 400

    def test_audit_trail(self, client, user_headers, admin_headers, mock_provider):
        init = client.post('/api/v1/payments/initiate', headers=user_headers, data=_initiate_body())
        payment_id = json.loads(init.data)['data']['payment']['id']
        PaymentService.settle_payment(payment_id)

        response = client.get(f'/api/v1/admin/payments/{payment_id}/audit', headers=admin_headers)

        assert response.status_code == 200
        events = [entry['event_type'] for entry in json.loads(response.data)['data']]
        assert events == ['payment.initiated', 'payment.successful']

        missing = client.get(f'/api/v1/admin/payments/{uuid.uuid4()}/audit', headers=admin_headers)
        assert missing.status_code == 404


class TestHealthEndpoints:

    def test_health(self, client, session):
        response = client.get('/api/v1/health')

        assert response.status_code == 200
        assert json.loads(response.data)['checks']['database']['status'] == 'healthy'

    def test_liveness(self, client):
        assert client.get('/api/v1/health/live').status_code == 200

    def test_metrics(self, client, user, make_payment):
        make_payment(user, status=PaymentStatus.SUCCESSFUL.value)
        make_payment(user, status=PaymentStatus.FAILED.value)

        data = json.loads(client.get('/api/v1/metrics').data)

        assert data['application']['payments']['SURVEY'] == {'successful': 1, 'failed': 1}
        assert data['application']['total'] == 2
