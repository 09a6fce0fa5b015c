"""
M-Pesa B2C Provider
Based on the Safaricom Daraja API (v1).

Supported flows
---------------
B2C (business to customer / disbursements)
    POST /mpesa/b2c/v1/paymentrequest

Transaction Status (generic query)
    POST /mpesa/transactionstatus/v1/query

Reversal
    POST /mpesa/reversal/v1/request

Account Balance
    POST /mpesa/accountbalance/v1/query

Authentication
    GET  /oauth/v1/generate?grant_type=client_credentials  (Basic auth)
    Tokens are cached in-process and refreshed lazily on expiry.

All four commands are asynchronous on the gateway side: the synchronous
response only says whether the request was accepted, the outcome is POSTed
to the configured ResultURL. Each operation returns a GatewayResult carrying
the raw response body.
"""

from typing import Any, Callable, Dict, Optional

import requests

from mpesa_b2c.config import ClientConfig
from mpesa_b2c.errors.exceptions import CertificateError, SigningError
from mpesa_b2c.models import GatewayResult
from mpesa_b2c.providers import payloads
from mpesa_b2c.schemas.operation_schema import (
    AccountBalanceSchema,
    B2CPaymentSchema,
    ReversalSchema,
    StatusQuerySchema,
)
from mpesa_b2c.services.auth_service import Authenticator
from mpesa_b2c.services.credential_service import CredentialSigner
from mpesa_b2c.services.dispatch_service import RequestDispatcher
from mpesa_b2c.utils.logger import get_logger

logger = get_logger(__name__)

b2c_schema = B2CPaymentSchema()
status_schema = StatusQuerySchema()
reversal_schema = ReversalSchema()
balance_schema = AccountBalanceSchema()


def _load(schema, **arguments) -> Dict[str, Any]:
    """Validate operation arguments; raises marshmallow.ValidationError."""
    return schema.load({key: value for key, value in arguments.items() if value is not None})


class MpesaB2CProvider:
    """M-Pesa (Daraja API) B2C client."""

    def __init__(
        self,
        config: ClientConfig,
        cache=None,
        session: Optional[requests.Session] = None,
        authenticator: Optional[Authenticator] = None,
        signer: Optional[CredentialSigner] = None,
    ):
        self.config = config
        self.signer = signer or CredentialSigner(cache=cache, credential_ttl=config.credential_ttl)
        self.dispatcher = RequestDispatcher(config, authenticator=authenticator, session=session)

    @property
    def environment(self) -> str:
        return self.config.environment

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def b2c(
        self,
        amount,
        phone,
        command_id: str,
        remarks: Optional[str] = None,
        occasion: Optional[str] = None,
    ) -> GatewayResult:
        """
        Send money from the paybill to a customer's M-Pesa account.

        Args:
            amount: Whole shillings to send
            phone: Recipient MSISDN, normalised to 2547XXXXXXXX
            command_id: "SalaryPayment", "BusinessPayment" or "PromotionPayment"
            remarks: Optional remarks (up to 100 characters)
            occasion: Optional occasion

        Returns:
            GatewayResult
        """
        data = _load(b2c_schema, amount=amount, phone=str(phone), command_id=command_id,
                     remarks=remarks, occasion=occasion)
        return self._execute(
            "b2c",
            payloads.EP_B2C,
            lambda credential: payloads.build_payment_payload(
                self.config, credential, data["amount"], data["phone"], data["command_id"],
                remarks=data["remarks"], occasion=data["occasion"],
            ),
        )

    def status_request(
        self,
        transaction_id: str,
        remarks: Optional[str] = None,
        occasion: Optional[str] = None,
    ) -> GatewayResult:
        """
        Query the status of a transaction by its M-Pesa TransactionID (e.g. "LH7819VXPE").
        """
        data = _load(status_schema, transaction_id=transaction_id, remarks=remarks, occasion=occasion)
        return self._execute(
            "status_request",
            payloads.EP_TX_STATUS,
            lambda credential: payloads.build_status_query_payload(
                self.config, credential, data["transaction_id"],
                remarks=data["remarks"], occasion=data["occasion"],
            ),
        )

    def reverse_transaction(
        self,
        receiver,
        transaction_id: str,
        amount,
        remarks: Optional[str] = None,
    ) -> GatewayResult:
        """
        Reverse a transaction.

        Args:
            receiver: MSISDN that received the original transaction
            transaction_id: M-Pesa TransactionID to reverse
            amount: Amount of the original transaction to reverse
        """
        data = _load(reversal_schema, receiver=str(receiver), transaction_id=transaction_id,
                     amount=amount, remarks=remarks)
        return self._execute(
            "reverse_transaction",
            payloads.EP_REVERSAL,
            lambda credential: payloads.build_reversal_payload(
                self.config, credential, data["receiver"], data["transaction_id"], data["amount"],
                remarks=data["remarks"],
            ),
        )

    def account_balance(self, remarks: Optional[str] = None) -> GatewayResult:
        """Request the paybill balance; it is delivered to the balance-check result URL."""
        data = _load(balance_schema, remarks=remarks)
        return self._execute(
            "account_balance",
            payloads.EP_BALANCE,
            lambda credential: payloads.build_account_balance_payload(
                self.config, credential, remarks=data["remarks"],
            ),
        )

    def get_credential(self) -> str:
        return self.signer.sign_credential(
            self.config.short_code,
            self.config.initiator_password,
            self.config.environment,
            cert_path=self.config.certificate_path,
        )

    def _execute(
        self,
        context: str,
        path: str,
        build: Callable[[str], Dict[str, Any]],
    ) -> GatewayResult:
        try:
            credential = self.get_credential()
        except CertificateError:
            raise
        except SigningError as exc:
            logger.error("Daraja [%s]: %s", context, exc)
            return GatewayResult.signing_failure(str(exc))

        return self.dispatcher.submit(self.config.endpoint(path), build(credential), context=context)
