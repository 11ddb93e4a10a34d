"""
Pytest Configuration and Fixtures
"""
import json
from unittest.mock import Mock, patch

import fakeredis
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from flask_jwt_extended import create_access_token

from jenga_gateway import create_app
from jenga_gateway.extensions import db as _db, redis_client as _redis_client
from jenga_gateway.models import JengaTransaction
from jenga_gateway.services.payment_adapter import SQLAlchemyPaymentAdapter
from jenga_gateway.settings import JengaSettings


class HostPayment(_db.Model):
    """Stand-in for the host application's Payment model"""
    __tablename__ = 'payments'

    id = _db.Column(_db.Integer, primary_key=True)
    transaction_id = _db.Column(_db.String(100), index=True)
    reference_number = _db.Column(_db.String(100), index=True)
    status = _db.Column(_db.String(20), nullable=False, default='pending')
    amount = _db.Column(_db.Numeric(15, 2))
    provider_response = _db.Column(_db.JSON)
    completed_at = _db.Column(_db.DateTime)


def _mock_http_response(json_data, status_code=200):
    """Return a mock requests.Response whose .json() returns json_data."""
    resp = Mock()
    resp.ok = 200 <= status_code < 400
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = json.dumps(json_data)
    return resp


@pytest.fixture
def http_response():
    return _mock_http_response


@pytest.fixture(scope='session')
def rsa_key():
    """One RSA key pair for the whole run; generation is slow"""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope='session')
def private_key_pem(rsa_key):
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')


@pytest.fixture
def payment_adapter():
    return SQLAlchemyPaymentAdapter(HostPayment)


@pytest.fixture
def redis_client():
    """Fake Redis shared with the app under test"""
    fake_redis = fakeredis.FakeStrictRedis(decode_responses=True)
    yield fake_redis
    fake_redis.flushall()


@pytest.fixture(scope='function')
def app(payment_adapter, redis_client):
    """Create application for testing, backed by a fresh in-memory database"""
    app = create_app('testing', payment_adapter=payment_adapter)

    ctx = app.app_context()
    ctx.push()
    _db.create_all()

    # init_app builds a real client; swap in the fake once the app exists
    with patch.object(_redis_client, 'client', redis_client):
        yield app

    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(scope='function')
def session(app):
    return _db.session


@pytest.fixture(scope='function')
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture
def settings():
    return JengaSettings(
        merchant_code='TEST0001',
        consumer_secret='test-consumer-secret',
        api_key='test-api-key-12345',
        environment='sandbox',
        callback_url='https://merchant.example.com/api/v1/jenga/callback',
        success_url='/payment/success',
        failure_url='/payment/failed',
    )


@pytest.fixture
def admin_headers(app):
    token = create_access_token(identity='admin-user', additional_claims={'is_admin': True})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def user_headers(app):
    token = create_access_token(identity='plain-user')
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def payment_data():
    return {
        'orderReference': 'ORD12345AB',
        'orderAmount': '1000.00',
        'currency': 'KES',
        'countryCode': 'KE',
        'customerFirstName': 'Jane',
        'customerLastName': 'Wanjiku',
        'customerEmail': 'jane@example.com',
        'customerPhone': '+254 700-000-000',
        'productDescription': 'Order ORD12345AB',
    }


@pytest.fixture
def host_payment(session):
    payment = HostPayment(
        transaction_id='ORD12345AB',
        reference_number=None,
        status='pending',
        amount=1000
    )
    session.add(payment)
    session.commit()
    return payment


@pytest.fixture
def sample_transaction(session):
    transaction = JengaTransaction(
        order_status='SUCCESS',
        order_reference='ORD12345AB',
        transaction_reference='TXN001',
        transaction_amount='1000.00',
        transaction_currency='',
        payment_channel='MPESA'
    )
    session.add(transaction)
    session.commit()
    return transaction
