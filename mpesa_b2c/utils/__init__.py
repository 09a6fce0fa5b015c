"""
Utils Package
Utility functions and helpers
"""

from mpesa_b2c.utils.encryption import load_public_key, encrypt_pkcs1v15
from mpesa_b2c.utils.logger import get_logger, configure_app_logging
from mpesa_b2c.utils.validators import (
    normalise_phone,
    validate_phone_number,
    validate_amount,
)

__all__ = [
    'load_public_key',
    'encrypt_pkcs1v15',
    'get_logger',
    'configure_app_logging',
    'normalise_phone',
    'validate_phone_number',
    'validate_amount',
]
