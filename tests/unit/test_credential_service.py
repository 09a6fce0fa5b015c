"""
Unit Tests for security credential signing
"""

import base64
import threading
import time
from unittest.mock import Mock, patch

import fakeredis
import pytest
import redis
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding

from mpesa_b2c.config import CERT_DIR
from mpesa_b2c.errors import CertificateError, SigningError
from mpesa_b2c.extensions import RedisClient
from mpesa_b2c.services.credential_service import (
    CredentialSigner,
    cache_lock,
    credential_cache_key,
    sign_credential,
)

PASSWORD = 'Safaricom999!*!'


def _decrypt(private_key, credential):
    return private_key.decrypt(base64.b64decode(credential), padding.PKCS1v15()).decode()


class TestCredentialSigner:

    def test_cached_credential_returned_unchanged(self, redis_client):
        redis_client.set('888880_credential', 'cached+credential/==')
        signer = CredentialSigner(cache=redis_client)

        with patch.object(CredentialSigner, 'encrypt') as mock_encrypt:
            credential = signer.sign_credential(
                '888880', PASSWORD, 'sandbox', cert_path='/nonexistent/cert.cer'
            )

        assert credential == 'cached+credential/=='
        mock_encrypt.assert_not_called()

    def test_cached_bytes_are_decoded(self):
        byte_redis = fakeredis.FakeStrictRedis()
        byte_redis.set('888880_credential', b'cached-bytes')

        credential = CredentialSigner(cache=byte_redis).sign_credential('888880', PASSWORD, 'live')

        assert credential == 'cached-bytes'

    def test_empty_cached_value_is_a_miss(self, redis_client, cert_path, gateway_private_key):
        redis_client.set('888880_credential', '')

        credential = CredentialSigner(cache=redis_client).sign_credential(
            '888880', PASSWORD, 'sandbox', cert_path=cert_path
        )

        assert _decrypt(gateway_private_key, credential) == PASSWORD

    def test_fresh_credential_decrypts_to_password(self, redis_client, cert_path, gateway_private_key):
        credential = CredentialSigner(cache=redis_client).sign_credential(
            '888880', PASSWORD, 'sandbox', cert_path=cert_path
        )

        assert _decrypt(gateway_private_key, credential) == PASSWORD

    def test_fresh_credential_written_back(self, redis_client, cert_path):
        signer = CredentialSigner(cache=redis_client)

        credential = signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)

        assert redis_client.get(credential_cache_key('888880')) == credential
        assert redis_client.ttl('888880_credential') == -1
        # the lock is gone once signing is done
        assert redis_client.get('888880_credential:lock') is None

    def test_credential_ttl_applied(self, redis_client, cert_path):
        CredentialSigner(cache=redis_client, credential_ttl=600).sign_credential(
            '888880', PASSWORD, 'sandbox', cert_path=cert_path
        )

        assert 0 < redis_client.ttl('888880_credential') <= 600

    def test_second_call_uses_written_credential(self, redis_client, cert_path):
        signer = CredentialSigner(cache=redis_client)

        first = signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)
        with patch.object(CredentialSigner, 'encrypt') as mock_encrypt:
            second = signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)

        assert first == second
        mock_encrypt.assert_not_called()

    def test_uncached_signatures_differ_but_both_decrypt(self, cert_path, gateway_private_key):
        signer = CredentialSigner()

        first = signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)
        second = signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)

        assert first != second
        assert _decrypt(gateway_private_key, first) == PASSWORD
        assert _decrypt(gateway_private_key, second) == PASSWORD

    def test_der_certificate(self, der_cert_path, gateway_private_key):
        credential = CredentialSigner().sign_credential(
            '888880', PASSWORD, 'sandbox', cert_path=der_cert_path
        )

        assert _decrypt(gateway_private_key, credential) == PASSWORD

    def test_pem_public_key(self, tmp_path, gateway_private_key):
        key_path = tmp_path / 'public.pem'
        key_path.write_bytes(gateway_private_key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ))

        credential = CredentialSigner().sign_credential(
            '888880', PASSWORD, 'sandbox', cert_path=str(key_path)
        )

        assert _decrypt(gateway_private_key, credential) == PASSWORD

    @pytest.mark.parametrize('environment, filename', [
        ('sandbox', 'cert-sandbox.cer'),
        ('live', 'cert-prod.cer'),
        ('production', 'cert-prod.cer'),
    ])
    def test_environment_selects_bundled_certificate(self, environment, filename):
        with patch('mpesa_b2c.services.credential_service.load_public_key') as mock_load, \
             patch('mpesa_b2c.services.credential_service.encrypt_pkcs1v15', return_value='signed'):
            CredentialSigner().sign_credential('888880', PASSWORD, environment)

        mock_load.assert_called_once_with(f'{CERT_DIR}/{filename}')

    def test_missing_certificate_raises(self, redis_client):
        with pytest.raises(CertificateError, match='Cannot read certificate'):
            CredentialSigner(cache=redis_client).sign_credential(
                '888880', PASSWORD, 'sandbox', cert_path='/nonexistent/cert.cer'
            )

        assert redis_client.get('888880_credential') is None

    def test_placeholder_certificate_refused(self, redis_client, placeholder_cert_path):
        with pytest.raises(CertificateError, match='placeholder'):
            CredentialSigner(cache=redis_client).sign_credential(
                '888880', PASSWORD, 'sandbox', cert_path=placeholder_cert_path
            )

        assert redis_client.get('888880_credential') is None

    def test_malformed_certificate_is_a_signing_error(self, tmp_path):
        bad_cert = tmp_path / 'bad.cer'
        bad_cert.write_bytes(b'not a certificate')

        with pytest.raises(SigningError) as exc_info:
            CredentialSigner().sign_credential('888880', PASSWORD, 'sandbox', cert_path=str(bad_cert))

        assert not isinstance(exc_info.value, CertificateError)

    def test_plaintext_too_long_is_a_signing_error(self, cert_path):
        with pytest.raises(SigningError, match='Encryption failed'):
            CredentialSigner().sign_credential('888880', 'x' * 300, 'sandbox', cert_path=cert_path)

    def test_cache_outage_falls_back_to_signing(self, cert_path, gateway_private_key):
        broken = Mock()
        broken.get.side_effect = redis.ConnectionError('redis down')
        broken.set.side_effect = redis.ConnectionError('redis down')
        broken.lock.side_effect = redis.ConnectionError('redis down')

        credential = CredentialSigner(cache=broken).sign_credential(
            '888880', PASSWORD, 'sandbox', cert_path=cert_path
        )

        assert _decrypt(gateway_private_key, credential) == PASSWORD

    def test_signs_anyway_when_lock_is_held_elsewhere(self, redis_client, cert_path):
        redis_client.set('888880_credential:lock', 'someone-else', ex=30)
        signer = CredentialSigner(cache=redis_client, lock_wait=0.1)

        credential = signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)

        assert credential
        assert redis_client.get('888880_credential') == credential
        # another holder's lock is left alone
        assert redis_client.get('888880_credential:lock') == 'someone-else'

    def test_rereads_cache_after_waiting_for_lock(self, redis_client, cert_path):
        held_elsewhere = Mock()

        def other_signer_finishes(blocking):
            redis_client.set('888880_credential', 'written-meanwhile')
            return False

        held_elsewhere.acquire.side_effect = other_signer_finishes
        signer = CredentialSigner(cache=redis_client)

        with patch.object(redis_client, 'lock', return_value=held_elsewhere), \
             patch.object(CredentialSigner, 'encrypt') as mock_encrypt:
            credential = signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)

        assert credential == 'written-meanwhile'
        mock_encrypt.assert_not_called()
        held_elsewhere.release.assert_not_called()

    def test_redis_client_wrapper(self, redis_client, cert_path):
        store = RedisClient()
        store.client = redis_client

        credential = CredentialSigner(cache=store).sign_credential(
            '888880', PASSWORD, 'sandbox', cert_path=cert_path
        )

        assert redis_client.get('888880_credential') == credential
        assert redis_client.get('888880_credential:lock') is None

    def test_concurrent_first_use_signs_once(self, redis_client, cert_path):
        signer = CredentialSigner(cache=redis_client)
        results = []

        def slow_encrypt(password, path):
            time.sleep(0.05)
            return 'signed-once'

        with patch.object(CredentialSigner, 'encrypt', side_effect=slow_encrypt) as mock_encrypt:
            threads = [
                threading.Thread(target=lambda: results.append(
                    signer.sign_credential('888880', PASSWORD, 'sandbox', cert_path=cert_path)
                ))
                for _ in range(4)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        assert results == ['signed-once'] * 4
        assert mock_encrypt.call_count == 1

    def test_module_shortcut(self, redis_client):
        redis_client.set('600000_credential', 'from-cache')

        assert sign_credential('600000', PASSWORD, 'sandbox', cache=redis_client) == 'from-cache'


class TestCacheLock:

    def test_lock_acquired_and_released(self, redis_client):
        with cache_lock(redis_client, 'k:lock') as acquired:
            assert acquired is True
            assert redis_client.get('k:lock') is not None

        assert redis_client.get('k:lock') is None

    def test_lock_not_acquired_when_held(self, redis_client):
        redis_client.set('k:lock', 'other')

        with cache_lock(redis_client, 'k:lock', wait=0.1) as acquired:
            assert acquired is False

        assert redis_client.get('k:lock') == 'other'

    def test_lock_unavailable_store(self):
        broken = Mock()
        broken.lock.return_value.acquire.side_effect = redis.ConnectionError('redis down')

        with cache_lock(broken, 'k:lock') as acquired:
            assert acquired is False

        broken.lock.return_value.release.assert_not_called()

    def test_lock_taken_over_after_expiry_is_left_alone(self, redis_client):
        with cache_lock(redis_client, 'k:lock') as acquired:
            assert acquired is True
            # our lease lapsed and another signer now holds the key
            redis_client.set('k:lock', 'other-token')

        assert redis_client.get('k:lock') == 'other-token'

    def test_lock_expires_with_timeout(self, redis_client):
        with cache_lock(redis_client, 'k:lock', timeout=30):
            assert 0 < redis_client.pttl('k:lock') <= 30000
