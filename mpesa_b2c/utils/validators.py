"""
Custom Validators
Validation and normalisation helpers for Daraja request fields
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional


def normalise_phone(phone: str) -> str:
    """
    Normalise a phone number to Safaricom's expected format (2547XXXXXXXX).

    Accepts: +254712345678, 0712345678, 254712345678, 712345678
    """
    if not phone:
        return ""
    phone = re.sub(r'[\s\-\(\)]', '', str(phone))
    if phone.startswith("+"):
        phone = phone[1:]
    if phone.startswith("0"):
        phone = "254" + phone[1:]
    if not phone.startswith("254"):
        phone = "254" + phone
    return phone


def validate_phone_number(phone: str) -> tuple[bool, Optional[str]]:
    """
    Validate a Kenyan MSISDN

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone:
        return False, "Phone number is required"

    phone_clean = re.sub(r'[\s\-\(\)]', '', str(phone))

    if not re.match(r'^\+?\d+$', phone_clean):
        return False, "Phone number must contain only digits and optional leading +"

    phone_digits = normalise_phone(phone_clean)
    if len(phone_digits) != 12:
        return False, "Kenyan phone number with country code should be 12 digits (254XXXXXXXXX)"

    return True, None


def validate_amount(amount, min_amount: int = 1, max_amount: int = 250000) -> tuple[bool, Optional[str]]:
    """
    Validate a disbursement amount. M-Pesa only moves whole shillings.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        amount_decimal = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return False, "Invalid amount format"

    if amount_decimal != amount_decimal.to_integral_value():
        return False, "Amount must be a whole number"

    if amount_decimal < min_amount:
        return False, f"Amount must be at least {min_amount}"

    if amount_decimal > max_amount:
        return False, f"Amount cannot exceed {max_amount}"

    return True, None
