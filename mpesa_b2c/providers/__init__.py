from flask import current_app

from mpesa_b2c.errors.exceptions import ConfigurationError
from mpesa_b2c.providers.b2c_provider import MpesaB2CProvider

EXTENSION_KEY = 'mpesa_b2c'


def get_provider() -> MpesaB2CProvider:
    """
    Get the B2C provider bound to the current Flask application.

    Returns:
        Initialized provider instance

    Raises:
        ConfigurationError: If the MpesaB2C extension was not initialised
    """
    provider = current_app.extensions.get(EXTENSION_KEY)

    if provider is None:
        raise ConfigurationError('MpesaB2C extension is not initialised on this app')

    return provider


__all__ = ['get_provider', 'MpesaB2CProvider', 'EXTENSION_KEY']
