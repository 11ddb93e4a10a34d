"""
Jenga request signing

Signature = Base64( RSA-SHA256( merchantCode + orderReference + currency + amount + callbackUrl ) )

The gateway verifies the PKCS#1 v1.5 signature with the public half of the
merchant's key pair uploaded to Jenga HQ.
"""

import base64
import logging
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from jenga_gateway.errors import KeyLoadError, SigningError

logger = logging.getLogger(__name__)

# Anything this short cannot be a PEM-encoded RSA key
MIN_PRIVATE_KEY_LENGTH = 250


def build_signature_payload(
    merchant_code: str,
    order_reference: str,
    currency: str,
    amount: str,
    callback_url: str,
) -> str:
    """Concatenate the signed fields in gateway order, without delimiters."""
    return f"{merchant_code}{order_reference}{currency}{amount}{callback_url}"


def sign(
    merchant_code: str,
    order_reference: str,
    currency: str,
    amount: str,
    callback_url: str,
    private_key_pem: Optional[str],
) -> str:
    """
    Sign a payment-initiation request.

    Returns an empty string when no plausible private key is configured;
    callers treat that as "proceed unsigned".

    Raises:
        KeyLoadError: the PEM text could not be parsed as a private key
        SigningError: the key loaded but the sign operation failed
    """
    if not private_key_pem or len(private_key_pem) <= MIN_PRIVATE_KEY_LENGTH:
        return ''

    data = build_signature_payload(merchant_code, order_reference, currency, amount, callback_url)

    try:
        private_key = serialization.load_pem_private_key(
            private_key_pem.encode('utf-8'),
            password=None,
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        logger.error("Failed to load private key: %s", exc)
        raise KeyLoadError(f"Failed to load private key: {exc}") from exc

    try:
        signature = private_key.sign(
            data.encode('utf-8'),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except (ValueError, TypeError, AttributeError) as exc:
        logger.error("Failed to sign data: %s", exc)
        raise SigningError(f"Failed to sign data: {exc}") from exc

    return base64.b64encode(signature).decode('utf-8')
