"""
Security credential signing.

The initiator password is RSA-encrypted with the gateway certificate of the
active environment. Signed values are cached under ``<short_code>_credential``
and trusted until removed; the first signer for a short code holds a scoped
lock on the entry so concurrent first use signs once.
"""

import contextlib
from typing import Any, Generator, Optional

import redis
from redis.exceptions import LockNotOwnedError

from mpesa_b2c.config import default_cert_path
from mpesa_b2c.utils.encryption import encrypt_pkcs1v15, load_public_key
from mpesa_b2c.utils.logger import get_logger

logger = get_logger(__name__)


def credential_cache_key(short_code: str) -> str:
    return f'{short_code}_credential'


def _decode(value: Any) -> Optional[str]:
    if isinstance(value, bytes):
        return value.decode()
    return value


@contextlib.contextmanager
def cache_lock(cache, key: str, timeout: float = 10, wait: float = 5) -> Generator[bool, None, None]:
    """Hold the store's ``lock(key)`` for the duration of the block, waiting up to ``wait`` seconds."""
    lock = None
    acquired = False
    try:
        lock = cache.lock(key, timeout=timeout, blocking_timeout=wait)
        acquired = bool(lock.acquire(blocking=True))
    except redis.RedisError as e:
        logger.warning(f'Credential lock unavailable for {key}: {str(e)}')

    try:
        yield acquired
    finally:
        if acquired:
            try:
                lock.release()
            except LockNotOwnedError as e:
                logger.warning(f'Credential lock {key} expired before release: {str(e)}')
            except redis.RedisError as e:
                logger.warning(f'Credential lock release failed for {key}: {str(e)}')


class CredentialSigner:
    """
    Produce the SecurityCredential for a short code.

    Args:
        cache: Redis-like store with get/set/lock, or None to always sign
        credential_ttl: Expiry in seconds for cached credentials (None keeps them)
        lock_timeout: Lifetime of the first-use lock
        lock_wait: How long to wait for another signer before signing anyway
    """

    def __init__(self, cache=None, credential_ttl: Optional[int] = None,
                 lock_timeout: float = 10, lock_wait: float = 5):
        self.cache = cache
        self.credential_ttl = credential_ttl
        self.lock_timeout = lock_timeout
        self.lock_wait = lock_wait

    def sign_credential(
        self,
        short_code: str,
        initiator_password: str,
        environment: str,
        cert_path: Optional[str] = None,
    ) -> str:
        """
        Return the cached credential for short_code or sign a fresh one.

        Raises:
            CertificateError: certificate file cannot be read
            SigningError: encryption failed
        """
        cert_path = cert_path or default_cert_path(environment)
        key = credential_cache_key(short_code)

        if self.cache is None:
            return self.encrypt(initiator_password, cert_path)

        cached = self._cache_get(key)
        if cached:
            return cached

        with cache_lock(self.cache, f'{key}:lock', timeout=self.lock_timeout, wait=self.lock_wait) as acquired:
            cached = self._cache_get(key)
            if cached:
                return cached
            if not acquired:
                logger.warning(f'Signing credential for {short_code} without holding the cache lock')

            credential = self.encrypt(initiator_password, cert_path)
            self._cache_set(key, credential)
            logger.info(f'Signed and cached security credential for {short_code}')
            return credential

    @staticmethod
    def encrypt(initiator_password: str, cert_path: str) -> str:
        public_key = load_public_key(cert_path)
        return encrypt_pkcs1v15(public_key, initiator_password)

    def _cache_get(self, key: str) -> Optional[str]:
        try:
            return _decode(self.cache.get(key))
        except redis.RedisError as e:
            logger.warning(f'Credential cache read failed for {key}: {str(e)}')
            return None

    def _cache_set(self, key: str, credential: str) -> None:
        try:
            self.cache.set(key, credential, ex=self.credential_ttl)
        except redis.RedisError as e:
            logger.warning(f'Credential cache write failed for {key}: {str(e)}')


def sign_credential(short_code: str, initiator_password: str, environment: str,
                    cache=None, cert_path: Optional[str] = None) -> str:
    """Module-level shortcut around :class:`CredentialSigner`."""
    return CredentialSigner(cache=cache).sign_credential(
        short_code, initiator_password, environment, cert_path=cert_path
    )
