"""
Custom Validators
Validation and normalisation helpers for Jenga checkout fields
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

ORDER_REFERENCE_MIN_LENGTH = 8
PRODUCT_DESCRIPTION_MAX_LENGTH = 200

_ALPHANUMERIC = re.compile(r'[A-Za-z0-9]+')
_NUMERIC = re.compile(r'\d+(\.\d+)?')


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings"""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def validate_order_reference(reference: Any) -> tuple[bool, Optional[str]]:
    """
    Validate a merchant order reference

    Jenga requires at least 8 characters, letters and digits only.

    Returns:
        Tuple of (is_valid, error_message)
    """
    reference = str(reference)

    if len(reference) < ORDER_REFERENCE_MIN_LENGTH:
        return False, f"orderReference must be at least {ORDER_REFERENCE_MIN_LENGTH} characters long"

    if not _ALPHANUMERIC.fullmatch(reference):
        return False, "orderReference must be alphanumeric"

    return True, None


def validate_product_description(description: Any) -> tuple[bool, Optional[str]]:
    if description is not None and len(str(description)) > PRODUCT_DESCRIPTION_MAX_LENGTH:
        return False, f"productDescription must not exceed {PRODUCT_DESCRIPTION_MAX_LENGTH} characters"
    return True, None


def validate_amount(amount: Any) -> tuple[bool, Optional[str]]:
    """
    Validate the order amount

    Args:
        amount: int, float, Decimal or numeric string

    Returns:
        Tuple of (is_valid, error_message)
    """
    message = "orderAmount must be a positive number"

    if isinstance(amount, bool):
        return False, message

    try:
        if isinstance(amount, str):
            amount_decimal = Decimal(amount.strip())
        elif isinstance(amount, (int, float)):
            amount_decimal = Decimal(str(amount))
        elif isinstance(amount, Decimal):
            amount_decimal = amount
        else:
            return False, message
    except InvalidOperation:
        return False, message

    if not amount_decimal.is_finite() or amount_decimal <= 0:
        return False, message

    return True, None


def normalise_phone(phone: Any) -> str:
    """Strip everything but digits: '+254 712-345-678' -> '254712345678'"""
    if phone is None:
        return ''
    return re.sub(r'[^0-9]', '', str(phone))


def format_payment_time_limit(limit: Any, default: str = '15mins') -> str:
    """
    Express the checkout time limit the way Jenga expects ("15mins").

    Bare numbers are taken as minutes; anything else passes through.
    """
    if is_blank(limit):
        return default

    if isinstance(limit, bool):
        return default

    if isinstance(limit, (int, float, Decimal)):
        return f"{limit}mins"

    text = str(limit).strip()
    if _NUMERIC.fullmatch(text):
        return f"{text}mins"

    return text
