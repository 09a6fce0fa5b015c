import redis

from mpesa_b2c.config import ClientConfig
from mpesa_b2c.providers import EXTENSION_KEY, MpesaB2CProvider
from mpesa_b2c.utils.logger import configure_app_logging


class RedisClient:
    """Key-value store holding signed initiator credentials."""

    def __init__(self):
        self.client = None

    def init_app(self, app):
        self.init_url(app.config.get('REDIS_URL', 'redis://localhost:6379/0'))

    def init_url(self, url):
        self.client = redis.StrictRedis.from_url(url, decode_responses=True)

    @property
    def is_configured(self):
        return self.client is not None

    def get(self, key):
        return self.client.get(key)

    def set(self, key, value, ex=None):
        return self.client.set(key, value, ex=ex)

    def lock(self, key, timeout=None, blocking_timeout=None):
        return self.client.lock(key, timeout=timeout, blocking_timeout=blocking_timeout)


class MpesaB2C:
    """
    Flask extension binding a B2C provider to an application.

    Usage:
        mpesa = MpesaB2C(app)
        result = get_provider().b2c(100, '254700000000', 'SalaryPayment')
    """

    def __init__(self, app=None, cache=None):
        self.cache = cache
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        client_config = ClientConfig.from_mapping(app.config)

        cache = self.cache
        if cache is None and app.config.get('REDIS_URL'):
            if not redis_client.is_configured:
                redis_client.init_app(app)
            cache = redis_client

        configure_app_logging(app)
        app.extensions[EXTENSION_KEY] = MpesaB2CProvider(client_config, cache=cache)
        return app.extensions[EXTENSION_KEY]


redis_client = RedisClient()
mpesa_b2c = MpesaB2C()
