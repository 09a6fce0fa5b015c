"""
Services Package
Token acquisition, credential signing and request dispatch
"""

from mpesa_b2c.services.auth_service import Authenticator, TokenCache, acquire_token, token_cache
from mpesa_b2c.services.credential_service import CredentialSigner, sign_credential
from mpesa_b2c.services.dispatch_service import RequestDispatcher

__all__ = [
    'Authenticator',
    'TokenCache',
    'acquire_token',
    'token_cache',
    'CredentialSigner',
    'sign_credential',
    'RequestDispatcher',
]
