class AppError(Exception):
    error = "Application error"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ConfigurationError(AppError):
    error = "Configuration error"


class AuthenticationError(AppError):
    error = "Authentication failed"


class SigningError(AppError):
    error = "Credential signing failed"


class CertificateError(SigningError):
    error = "Certificate unavailable"


class DispatchError(AppError):
    error = "Dispatch failed"
