"""
Daraja command payloads.

Pure constructors: each takes the client configuration, an already signed
SecurityCredential and the operation arguments, and returns the JSON mapping
for its endpoint.
"""

from typing import Any, Dict

from mpesa_b2c.config import ClientConfig

# Endpoint paths, relative to ClientConfig.base_url
EP_B2C = "b2c/v1/paymentrequest"
EP_TX_STATUS = "transactionstatus/v1/query"
EP_REVERSAL = "reversal/v1/request"
EP_BALANCE = "accountbalance/v1/query"

# IdentifierType / ReceiverIdentifierType values
IDENTIFIER_MSISDN = 1
IDENTIFIER_SHORTCODE = 4


def build_payment_payload(
    config: ClientConfig,
    credential: str,
    amount: int,
    phone: str,
    command_id: str,
    remarks: str = "B2C payment",
    occasion: str = "",
) -> Dict[str, Any]:
    result_url, timeout_url = config.callback_urls("b2c")
    return {
        "InitiatorName":      config.initiator_name,
        "SecurityCredential": credential,
        "CommandID":          command_id,
        "Amount":             amount,
        "PartyA":             config.short_code,
        "PartyB":             phone,
        "Remarks":            remarks,
        "QueueTimeOutURL":    timeout_url,
        "ResultURL":          result_url,
        "Occasion":           occasion,
    }


def build_status_query_payload(
    config: ClientConfig,
    credential: str,
    transaction_id: str,
    remarks: str = "Transaction status query",
    occasion: str = "",
) -> Dict[str, Any]:
    result_url, timeout_url = config.callback_urls("status")
    return {
        "CommandID":          "TransactionStatusQuery",
        "PartyA":             config.short_code,
        "IdentifierType":     IDENTIFIER_SHORTCODE,
        "Remarks":            remarks,
        "Initiator":          config.initiator_name,
        "SecurityCredential": credential,
        "QueueTimeOutURL":    timeout_url,
        "ResultURL":          result_url,
        "TransactionID":      transaction_id,
        "Occasion":           occasion,
    }


def build_reversal_payload(
    config: ClientConfig,
    credential: str,
    receiver: str,
    transaction_id: str,
    amount: int,
    remarks: str = "Transaction reversal",
) -> Dict[str, Any]:
    result_url, timeout_url = config.callback_urls("reversal")
    return {
        "CommandID":              "TransactionReversal",
        "ReceiverParty":          receiver,
        "ReceiverIdentifierType": IDENTIFIER_MSISDN,
        "Remarks":                remarks,
        "Amount":                 amount,
        "Initiator":              config.initiator_name,
        "SecurityCredential":     credential,
        "QueueTimeOutURL":        timeout_url,
        "ResultURL":              result_url,
        "TransactionID":          transaction_id,
    }


def build_account_balance_payload(
    config: ClientConfig,
    credential: str,
    remarks: str = "Account balance query",
) -> Dict[str, Any]:
    result_url, timeout_url = config.callback_urls("balance")
    return {
        "CommandID":          "AccountBalance",
        "PartyA":             config.short_code,
        "IdentifierType":     IDENTIFIER_SHORTCODE,
        "Remarks":            remarks,
        "Initiator":          config.initiator_name,
        "SecurityCredential": credential,
        "QueueTimeOutURL":    timeout_url,
        "ResultURL":          result_url,
    }
