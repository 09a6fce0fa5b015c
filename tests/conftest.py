"""
Pytest Configuration and Fixtures
"""
import datetime
import json
from unittest.mock import Mock

import fakeredis
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from flask import Flask

from mpesa_b2c.config import ClientConfig, TestingConfig
from mpesa_b2c.extensions import MpesaB2C
from mpesa_b2c.services.auth_service import token_cache


@pytest.fixture(scope='session')
def gateway_private_key():
    """Stands in for the gateway's private key so credentials can be decrypted"""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _self_signed_certificate(private_key, common_name='test-gateway'):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )


@pytest.fixture(scope='session')
def gateway_certificate(gateway_private_key):
    return _self_signed_certificate(gateway_private_key)


@pytest.fixture(scope='session')
def cert_path(gateway_certificate, tmp_path_factory):
    """PEM certificate file matching gateway_private_key"""
    path = tmp_path_factory.mktemp('certs') / 'cert-test.cer'
    path.write_bytes(gateway_certificate.public_bytes(serialization.Encoding.PEM))
    return str(path)


@pytest.fixture(scope='session')
def der_cert_path(gateway_certificate, tmp_path_factory):
    path = tmp_path_factory.mktemp('certs-der') / 'cert-test.cer'
    path.write_bytes(gateway_certificate.public_bytes(serialization.Encoding.DER))
    return str(path)


@pytest.fixture
def client_config(cert_path):
    return ClientConfig(
        environment='sandbox',
        consumer_key='test_consumer_key',
        consumer_secret='test_consumer_secret',
        short_code='888880',
        initiator_name='testapi',
        initiator_password='Safaricom999!*!',
        b2c_result_url='https://example.com/mpesa/b2c',
        status_result_url='https://example.com/mpesa/status',
        reversal_result_url='https://example.com/mpesa/reversal',
        balance_result_url='https://example.com/mpesa/balance',
        cert_path=cert_path,
    )


@pytest.fixture(scope='function')
def redis_client():
    """Fake Redis standing in for the credential cache"""
    fake_redis = fakeredis.FakeStrictRedis(decode_responses=True)

    yield fake_redis

    fake_redis.flushall()


@pytest.fixture(autouse=True)
def clear_token_cache():
    token_cache.clear()
    yield
    token_cache.clear()


@pytest.fixture
def http_response():
    """Factory for mock requests.Response objects"""

    def _make(json_data=None, status_code=200, text=None):
        resp = Mock()
        resp.ok = 200 <= status_code < 400
        resp.status_code = status_code
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ''
        resp.text = text
        if json_data is None:
            resp.json.side_effect = ValueError('No JSON object could be decoded')
        else:
            resp.json.return_value = json_data
        resp.headers = {'Content-Type': 'application/json'}
        return resp

    return _make


@pytest.fixture
def token_response(http_response):
    """Valid Daraja OAuth token response (expires in ~1 hour)"""
    return http_response({'access_token': 'tok123', 'expires_in': '3599'})


@pytest.fixture(scope='function')
def app(cert_path, redis_client):
    """Flask application hosting the B2C client"""
    app = Flask(__name__)
    app.config.from_object(TestingConfig)
    app.config['MPESA_CERT_PATH'] = cert_path

    MpesaB2C(app, cache=redis_client)

    ctx = app.app_context()
    ctx.push()

    yield app

    ctx.pop()


@pytest.fixture(scope='session')
def placeholder_cert_path(gateway_private_key, tmp_path_factory):
    """Certificate shaped like the stand-ins shipped in mpesa_b2c/certs"""
    certificate = _self_signed_certificate(
        gateway_private_key, common_name='PLACEHOLDER replace with Daraja sandbox certificate'
    )
    path = tmp_path_factory.mktemp('certs-placeholder') / 'cert-sandbox.cer'
    path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    return str(path)
