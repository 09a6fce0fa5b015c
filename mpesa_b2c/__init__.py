from flask import Flask

from mpesa_b2c.config import ClientConfig, config
from mpesa_b2c.extensions import MpesaB2C, mpesa_b2c, redis_client
from mpesa_b2c.models import GatewayResult, ResultKind
from mpesa_b2c.providers import MpesaB2CProvider, get_provider


def create_app(config_name='default'):
    """Application factory for hosting the B2C client"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Initialize extensions
    mpesa_b2c.init_app(app)

    return app


__all__ = [
    'ClientConfig',
    'GatewayResult',
    'MpesaB2C',
    'MpesaB2CProvider',
    'ResultKind',
    'create_app',
    'get_provider',
    'mpesa_b2c',
    'redis_client',
]
