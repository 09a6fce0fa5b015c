from mpesa_b2c.errors.exceptions import (
    AppError,
    AuthenticationError,
    CertificateError,
    ConfigurationError,
    DispatchError,
    SigningError,
)

__all__= [
    'AppError',
    'AuthenticationError',
    'CertificateError',
    'ConfigurationError',
    'DispatchError',
    'SigningError',
]
