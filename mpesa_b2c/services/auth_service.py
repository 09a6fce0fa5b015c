"""
Daraja OAuth
Client-credential token acquisition with an in-process expiring cache
"""

import base64
import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import requests

from mpesa_b2c.config import ClientConfig
from mpesa_b2c.errors.exceptions import AuthenticationError
from mpesa_b2c.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_in: int


def basic_auth_header(consumer_key: str, consumer_secret: str) -> str:
    credentials = base64.b64encode(f'{consumer_key}:{consumer_secret}'.encode()).decode()
    return f'Basic {credentials}'


def acquire_token(config: ClientConfig) -> AccessToken:
    """
    Fetch a fresh bearer token from the OAuth endpoint.

    Args:
        config: Client configuration (credentials and environment)

    Returns:
        AccessToken

    Raises:
        AuthenticationError: no usable token could be obtained
    """
    try:
        resp = requests.get(
            config.oauth_url,
            headers={'Authorization': basic_auth_header(config.consumer_key, config.consumer_secret)},
            timeout=config.auth_timeout,
        )
    except requests.RequestException as exc:
        raise AuthenticationError(f'Token request failed: {exc}') from exc

    try:
        data = resp.json()
    except ValueError as exc:
        raise AuthenticationError(
            f'Token response is not JSON (HTTP {resp.status_code})'
        ) from exc

    token = data.get('access_token') if isinstance(data, dict) else None
    if not token or not isinstance(token, str):
        raise AuthenticationError(
            f'Token response has no access_token (HTTP {resp.status_code})'
        )

    try:
        expires_in = int(data.get('expires_in', DEFAULT_EXPIRES_IN))
    except (TypeError, ValueError):
        expires_in = DEFAULT_EXPIRES_IN

    return AccessToken(value=token, expires_in=expires_in)


class TokenCache:
    """Thread-safe token store keyed by client credentials."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens: Dict[Tuple, Tuple[str, float]] = {}
        self._fetch_locks: Dict[Tuple, threading.Lock] = {}

    def get(self, key: Tuple) -> Optional[str]:
        with self._lock:
            entry = self._tokens.get(key)
            if entry and self._clock() < entry[1]:
                return entry[0]
            return None

    def set(self, key: Tuple, token: str, ttl: float) -> None:
        with self._lock:
            self._tokens[key] = (token, self._clock() + ttl)

    def invalidate(self, key: Tuple) -> None:
        with self._lock:
            self._tokens.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def fetch_lock(self, key: Tuple) -> threading.Lock:
        with self._lock:
            return self._fetch_locks.setdefault(key, threading.Lock())


token_cache = TokenCache()


class Authenticator:
    """Hands out bearer tokens, fetching a new one once per validity window."""

    def __init__(self, config: ClientConfig, cache: Optional[TokenCache] = None):
        self.config = config
        self.cache = cache if cache is not None else token_cache
        secret_digest = hashlib.sha256(config.consumer_secret.encode()).hexdigest()
        self.cache_key = (config.host, config.consumer_key, secret_digest)

    def get_token(self) -> str:
        token = self.cache.get(self.cache_key)
        if token:
            return token

        # one fetch per key; concurrent callers wait and reuse it
        with self.cache.fetch_lock(self.cache_key):
            token = self.cache.get(self.cache_key)
            if token:
                return token

            access_token = acquire_token(self.config)
            ttl = max(access_token.expires_in - self.config.token_expiry_margin, 0)
            self.cache.set(self.cache_key, access_token.value, ttl)
            logger.debug('Daraja access token refreshed (expires in %ds)', access_token.expires_in)
            return access_token.value

    def invalidate(self) -> None:
        self.cache.invalidate(self.cache_key)
