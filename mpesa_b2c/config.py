import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from mpesa_b2c.errors.exceptions import ConfigurationError

load_dotenv()

ENV_SANDBOX = 'sandbox'
ENV_LIVE = 'live'

# Daraja hosts
_BASE_URLS = {
    ENV_SANDBOX: 'https://sandbox.safaricom.co.ke',
    ENV_LIVE:    'https://api.safaricom.co.ke',
}

CERT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'certs')

# Public certificates issued by Safaricom, one per environment
_CERT_FILES = {
    ENV_SANDBOX: os.path.join(CERT_DIR, 'cert-sandbox.cer'),
    ENV_LIVE:    os.path.join(CERT_DIR, 'cert-prod.cer'),
}


def normalise_environment(value: Optional[str]) -> str:
    """Anything other than 'sandbox' selects the live gateway."""
    if value is not None and str(value).strip().lower() == ENV_SANDBOX:
        return ENV_SANDBOX
    return ENV_LIVE


def default_cert_path(environment: Optional[str]) -> str:
    return _CERT_FILES[normalise_environment(environment)]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    return int(value)


class Config:
    """Base configuration"""
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Gateway selection: 'sandbox' or 'live'
    MPESA_ENV = os.getenv('MPESA_ENV', ENV_LIVE)

    # Daraja app credentials
    MPESA_CONSUMER_KEY = os.getenv('MPESA_CONSUMER_KEY')
    MPESA_CONSUMER_SECRET = os.getenv('MPESA_CONSUMER_SECRET')

    # Paybill and API operator
    MPESA_SHORTCODE = os.getenv('MPESA_SHORTCODE')
    MPESA_INITIATOR_NAME = os.getenv('MPESA_INITIATOR_NAME')
    MPESA_INITIATOR_PASSWORD = os.getenv('MPESA_INITIATOR_PASSWORD')

    # Result callbacks. The matching *_TIMEOUT_URL keys fall back to these.
    MPESA_BALANCE_RESULT_URL = os.getenv('MPESA_BALANCE_RESULT_URL', '')
    MPESA_STATUS_RESULT_URL = os.getenv('MPESA_STATUS_RESULT_URL', '')
    MPESA_REVERSAL_RESULT_URL = os.getenv('MPESA_REVERSAL_RESULT_URL', '')
    MPESA_B2C_RESULT_URL = os.getenv('MPESA_B2C_RESULT_URL', '')
    MPESA_BALANCE_TIMEOUT_URL = os.getenv('MPESA_BALANCE_TIMEOUT_URL')
    MPESA_STATUS_TIMEOUT_URL = os.getenv('MPESA_STATUS_TIMEOUT_URL')
    MPESA_REVERSAL_TIMEOUT_URL = os.getenv('MPESA_REVERSAL_TIMEOUT_URL')
    MPESA_B2C_TIMEOUT_URL = os.getenv('MPESA_B2C_TIMEOUT_URL')

    MPESA_CERT_PATH = os.getenv('MPESA_CERT_PATH')

    # Seconds
    MPESA_AUTH_TIMEOUT = int(os.getenv('MPESA_AUTH_TIMEOUT', '15'))
    MPESA_REQUEST_TIMEOUT = int(os.getenv('MPESA_REQUEST_TIMEOUT', '30'))
    MPESA_TOKEN_EXPIRY_MARGIN = int(os.getenv('MPESA_TOKEN_EXPIRY_MARGIN', '60'))
    MPESA_CREDENTIAL_TTL = _optional_int(os.getenv('MPESA_CREDENTIAL_TTL'))


class SandboxConfig(Config):
    """Sandbox configuration"""
    MPESA_ENV = ENV_SANDBOX


class LiveConfig(Config):
    """Live configuration"""
    MPESA_ENV = ENV_LIVE


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    REDIS_URL = None
    MPESA_ENV = ENV_SANDBOX
    MPESA_CONSUMER_KEY = 'test_consumer_key'
    MPESA_CONSUMER_SECRET = 'test_consumer_secret'
    MPESA_SHORTCODE = '600000'
    MPESA_INITIATOR_NAME = 'testapi'
    MPESA_INITIATOR_PASSWORD = 'Safaricom999!*!'
    MPESA_BALANCE_RESULT_URL = 'https://example.com/mpesa/balance'
    MPESA_STATUS_RESULT_URL = 'https://example.com/mpesa/status'
    MPESA_REVERSAL_RESULT_URL = 'https://example.com/mpesa/reversal'
    MPESA_B2C_RESULT_URL = 'https://example.com/mpesa/b2c'


config = {
    'sandbox': SandboxConfig,
    'live': LiveConfig,
    'testing': TestingConfig,
    'default': LiveConfig
}


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable settings for one B2C client instance.

    Build it with :meth:`from_mapping` from a Flask ``app.config`` or any of the
    config classes above. Unset timeout URLs and certificate path are resolved
    on read, so they follow ``dataclasses.replace``.
    """
    environment: str
    consumer_key: str
    consumer_secret: str
    short_code: str
    initiator_name: str
    initiator_password: str
    b2c_result_url: str = ''
    status_result_url: str = ''
    reversal_result_url: str = ''
    balance_result_url: str = ''
    b2c_timeout_url: Optional[str] = None
    status_timeout_url: Optional[str] = None
    reversal_timeout_url: Optional[str] = None
    balance_timeout_url: Optional[str] = None
    cert_path: Optional[str] = None
    auth_timeout: float = 15
    request_timeout: float = 30
    token_expiry_margin: int = 60
    credential_ttl: Optional[int] = None

    def __post_init__(self):
        # frozen, so normalise through object.__setattr__
        object.__setattr__(self, 'environment', normalise_environment(self.environment))
        object.__setattr__(self, 'short_code', str(self.short_code or ''))

        missing = [
            name for name in ('consumer_key', 'consumer_secret', 'short_code')
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(f"ClientConfig: missing {', '.join(missing)}")

    @property
    def is_sandbox(self) -> bool:
        return self.environment == ENV_SANDBOX

    @property
    def certificate_path(self) -> str:
        """``cert_path`` if set, otherwise the bundled certificate for the environment."""
        return self.cert_path or default_cert_path(self.environment)

    @property
    def host(self) -> str:
        return _BASE_URLS[self.environment]

    @property
    def base_url(self) -> str:
        """Common prefix of the business endpoints."""
        return f'{self.host}/mpesa/'

    @property
    def oauth_url(self) -> str:
        return f'{self.host}/oauth/v1/generate?grant_type=client_credentials'

    def endpoint(self, path: str) -> str:
        return self.base_url + path.lstrip('/')

    def callback_urls(self, kind: str) -> tuple[str, str]:
        """Return the (result_url, timeout_url) pair for an operation kind."""
        try:
            result_url = getattr(self, f'{kind}_result_url')
            timeout_url = getattr(self, f'{kind}_timeout_url')
        except AttributeError:
            raise ConfigurationError(f'Unknown callback kind: {kind}') from None
        return result_url, timeout_url or result_url

    @classmethod
    def from_mapping(cls, mapping: Any) -> 'ClientConfig':
        """
        Build a ClientConfig from MPESA_* keys.

        Args:
            mapping: dict-like (Flask app.config) or a Config class

        Returns:
            ClientConfig
        """
        if not isinstance(mapping, Mapping):
            mapping = {key: getattr(mapping, key) for key in dir(mapping) if key.isupper()}

        get = mapping.get
        return cls(
            environment=get('MPESA_ENV', ENV_LIVE),
            consumer_key=get('MPESA_CONSUMER_KEY') or '',
            consumer_secret=get('MPESA_CONSUMER_SECRET') or '',
            short_code=get('MPESA_SHORTCODE') or '',
            initiator_name=get('MPESA_INITIATOR_NAME') or '',
            initiator_password=get('MPESA_INITIATOR_PASSWORD') or '',
            b2c_result_url=get('MPESA_B2C_RESULT_URL') or '',
            status_result_url=get('MPESA_STATUS_RESULT_URL') or '',
            reversal_result_url=get('MPESA_REVERSAL_RESULT_URL') or '',
            balance_result_url=get('MPESA_BALANCE_RESULT_URL') or '',
            b2c_timeout_url=get('MPESA_B2C_TIMEOUT_URL'),
            status_timeout_url=get('MPESA_STATUS_TIMEOUT_URL'),
            reversal_timeout_url=get('MPESA_REVERSAL_TIMEOUT_URL'),
            balance_timeout_url=get('MPESA_BALANCE_TIMEOUT_URL'),
            cert_path=get('MPESA_CERT_PATH'),
            auth_timeout=float(get('MPESA_AUTH_TIMEOUT', 15)),
            request_timeout=float(get('MPESA_REQUEST_TIMEOUT', 30)),
            token_expiry_margin=int(get('MPESA_TOKEN_EXPIRY_MARGIN', 60)),
            credential_ttl=_optional_int(get('MPESA_CREDENTIAL_TTL')),
        )
