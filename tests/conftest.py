"""
Pytest Configuration and Fixtures
"""
from datetime import timedelta
from unittest.mock import patch, Mock
import uuid

import fakeredis
import pytest
from flask_jwt_extended import create_access_token

from momopay import create_app
from momopay.extensions import db as _db
from momopay.models import AppUser, Payment, PaymentStatus, UserRole
from momopay.utils.clock import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing"""
    app = create_app('testing')

    # Establish application context
    ctx = app.app_context()
    ctx.push()

    yield app

    ctx.pop()


@pytest.fixture(scope='function')
def db(app):
    """Fresh schema for every test"""
    _db.create_all()

    yield _db

    _db.session.remove()
    _db.drop_all()


@pytest.fixture(scope='function')
def session(db):
    """Database session for a test"""
    return db.session


@pytest.fixture(scope="function", autouse=True)
def redis_client():
    """
    Fake Redis for tests + patch the app redis client.
    """
    fake_redis = fakeredis.FakeStrictRedis(decode_responses=True)

    with patch("momopay.services.lock_service.redis_client", fake_redis), \
            patch("momopay.api.health.redis_client", fake_redis):
        yield fake_redis

    fake_redis.flushall()


@pytest.fixture(scope='function', autouse=True)
def mock_settle_delay():
    """Keep the settlement task off the broker; tests drive settlement directly"""
    from momopay.tasks.settle_payment_task import settle_payment

    with patch.object(settle_payment, 'delay') as mock_delay:
        yield mock_delay


@pytest.fixture(scope='function')
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def user(session):
    """A regular subscriber"""
    user = AppUser(
        email='subscriber@example.com',
        first_name='Test',
        last_name='User',
        role=UserRole.USER.value
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def other_user(session):
    user = AppUser(email='someone.else@example.com', role=UserRole.USER.value)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(session):
    user = AppUser(email='admin@example.com', role=UserRole.ADMIN.value)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def make_payment(session):
    """
    Factory inserting a payment row directly, bypassing initiation.

    Usage:
        payment = make_payment(user, age_seconds=120, status='PENDING')
    """

    def _make_payment(owner, age_seconds=0, status=PaymentStatus.PENDING.value,
                      feature_type='SURVEY', plan_type='MONTHLY', provider='MTN',
                      idempotency_key=None):
        created_at = utcnow() - timedelta(seconds=age_seconds)
        payment = Payment(
            user_id=owner.id,
            idempotency_key=idempotency_key,
            feature_type=feature_type,
            plan_type=plan_type,
            amount=5000,
            currency='UGX',
            provider=provider,
            phone_number='0772123456',
            transaction_id=str(uuid.uuid4()),
            status=status,
            start_date=created_at,
            end_date=created_at + timedelta(days=30),
            created_at=created_at,
            updated_at=created_at
        )
        session.add(payment)
        session.commit()
        return payment

    return _make_payment


@pytest.fixture(scope='function')
def mock_provider():
    """Provider double returned by get_provider inside the payment service"""
    provider = Mock()
    provider.initiate_collection.return_value = {
        'success': True,
        'status': 'SUCCESSFUL',
        'reference_id': 'ref'
    }

    with patch('momopay.services.payment_service.get_provider', return_value=provider):
        yield provider


def auth_headers(user) -> dict:
    token = create_access_token(identity=str(user.id))
    return {
        'Authorization': f'Bearer {token}',
        'Content-Type': 'application/json'
    }


@pytest.fixture(scope='function')
def make_headers():
    return auth_headers


@pytest.fixture(scope='function')
def user_headers(user):
    return auth_headers(user)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return auth_headers(admin_user)
