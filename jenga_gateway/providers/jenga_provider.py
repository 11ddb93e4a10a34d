"""
Jenga Payment Gateway Client
Based on the Jenga PGW v3 checkout flow (Equity Bank / Finserve).

Flow
----
Authentication
    POST {token endpoint}   JSON {merchantCode, consumerSecret}, header Api-Key
    → {"accessToken": "..."}

Checkout
    The checkout page itself is a browser POST to the payment endpoint.
    initiate_payment() authenticates, signs and assembles the form fields
    and hands them back; the caller renders an auto-submitting form.

Callback
    Jenga redirects/posts the outcome to callbackUrl
    (see services/callback_service.py).

Required settings
-----------------
    merchant_code, consumer_secret, api_key

Optional settings
-----------------
    private_key   – RSA private key (PEM) used to sign checkout requests
    environment   – "sandbox" (default) | "production"
    callback_url  – default callback when a request does not carry one
    timeout       – outbound HTTP timeout in seconds (default 90)
    verify_ssl    – TLS verification for the token request (default True)
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin

import requests
from flask import has_request_context, request

from jenga_gateway.errors import (
    AuthenticationError,
    ConfigurationError,
    SignatureError,
    ValidationError,
)
from jenga_gateway.providers import signer
from jenga_gateway.settings import JengaSettings
from jenga_gateway.utils.validators import (
    format_payment_time_limit,
    is_blank,
    normalise_phone,
    validate_amount,
    validate_order_reference,
    validate_product_description,
)

logger = logging.getLogger(__name__)

# Checked in this order; the first missing one is reported
REQUIRED_PAYMENT_FIELDS = (
    'orderReference',
    'orderAmount',
    'currency',
    'customerFirstName',
    'customerLastName',
    'customerEmail',
    'customerPhone',
    'countryCode',
)

_STATUS_MESSAGES = {
    401: 'Authentication Error',
    404: 'Resource Not found Error',
    500: 'Internal Server Error',
    502: 'Internal Server Error',
    504: 'Internal Server Error',
}


class JengaClient:
    """Jenga PGW adapter: merchant authentication and checkout assembly."""

    def __init__(self, settings: JengaSettings, session: Optional[requests.Session] = None):
        self.settings = settings

        self._session = session or requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    @property
    def token_endpoint(self) -> str:
        return self.settings.token_endpoint

    @property
    def payment_endpoint(self) -> str:
        return self.settings.payment_endpoint

    def update_configuration(self, config: Mapping[str, Any]) -> JengaSettings:
        """
        Apply a partial credential update.

        The client swaps in a new settings snapshot; calls already in flight
        keep the snapshot they started with.
        """
        self.settings = self.settings.with_changes(config)
        return self.settings

    # Authentication

    def authenticate(self, settings: Optional[JengaSettings] = None) -> str:
        """
        Exchange merchant credentials for a bearer token.

        No retries; a failed exchange raises immediately.

        Raises:
            ConfigurationError: merchant code, consumer secret or API key missing
            AuthenticationError: the gateway refused or could not be reached
        """
        settings = settings or self.settings

        if settings.missing_credentials():
            raise ConfigurationError(
                'Missing required credentials. Please configure merchant code, consumer secret, and API key.'
            )

        payload = {
            "merchantCode": settings.merchant_code,
            "consumerSecret": settings.consumer_secret,
        }

        try:
            resp = self._session.post(
                settings.token_endpoint,
                json=payload,
                headers={"Api-Key": settings.api_key},
                timeout=settings.timeout,
                verify=settings.verify_ssl,
            )
        except requests.RequestException as exc:
            message = f"Failed to connect to Jenga API: {exc}"
            logger.error("Jenga API request exception: %s", message)
            raise AuthenticationError(message) from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if not isinstance(data, dict):
            data = {}

        if resp.status_code == 200 and data.get("accessToken"):
            return data["accessToken"]

        message = self._authentication_message(resp.status_code, data)

        logger.error(
            "Jenga authentication error: status=%s message=%s response=%s",
            resp.status_code, message, data or resp.text[:300],
        )
        raise AuthenticationError(message, upstream_status=resp.status_code)

    @staticmethod
    def _authentication_message(status_code: int, data: Dict[str, Any]) -> str:
        label = _STATUS_MESSAGES.get(status_code)
        if label:
            return f"{status_code}: {label}. Kindly contact us for support!"
        return data.get("message") or "Authentication failed"

    # Checkout

    def initiate_payment(self, payment_data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Prepare a Jenga checkout.

        payment_data required fields:
            orderReference     – ≥ 8 alphanumeric characters, unique per attempt
            orderAmount        – positive number
            currency           – e.g. "KES"
            customerFirstName, customerLastName, customerEmail, customerPhone
            countryCode        – e.g. "KE"

        payment_data optional fields:
            productType, productDescription (≤ 200 chars), extraData,
            paymentTimeLimit (minutes or "15mins"), callbackUrl,
            customerPostalCodeZip, customerAddress, secondaryReference,
            orderItems (list, sent JSON-encoded)

        Returns:
            payment_url – the Jenga payment endpoint
            form_data   – every field to POST, including token and signature
            method      – always "POST"
        """
        settings = self.settings

        self._validate_payment_data(payment_data)

        token = self.authenticate(settings)

        callback_url = self._resolve_callback_url(payment_data.get('callbackUrl'), settings)
        order_reference = str(payment_data['orderReference'])
        currency = str(payment_data['currency'])
        order_amount = payment_data['orderAmount']

        signature = ''
        try:
            signature = signer.sign(
                settings.merchant_code,
                order_reference,
                currency,
                str(order_amount),
                callback_url,
                settings.private_key,
            )
        except SignatureError as exc:
            logger.warning("Signature generation failed, proceeding without signature: %s", exc.message)

        order_items = payment_data.get('orderItems')

        form_data = {
            "token": token,
            "signature": signature,
            "merchantCode": settings.merchant_code,
            "currency": currency,
            "countryCode": payment_data['countryCode'],
            "orderAmount": order_amount,
            "orderReference": order_reference,
            "productType": payment_data.get('productType') or 'Product',
            "productDescription": payment_data.get('productDescription') or 'Payment via Jenga Gateway',
            "extraData": payment_data.get('extraData') or '',
            "paymentTimeLimit": format_payment_time_limit(payment_data.get('paymentTimeLimit')),
            "customerFirstName": payment_data['customerFirstName'],
            "customerLastName": payment_data['customerLastName'],
            "customerEmail": payment_data['customerEmail'],
            "customerPhone": normalise_phone(payment_data['customerPhone']),
            "customerPostalCodeZip": payment_data.get('customerPostalCodeZip') or '',
            "customerAddress": payment_data.get('customerAddress') or '',
            "callbackUrl": callback_url,
            "secondaryReference": payment_data.get('secondaryReference') or '',
            "orderItems": json.dumps(order_items if order_items is not None else []),
        }

        logger.info(
            "Jenga checkout prepared for order %s (%s %s, signed=%s)",
            order_reference, currency, order_amount, bool(signature),
        )

        return {
            "payment_url": settings.payment_endpoint,
            "form_data": form_data,
            "method": "POST",
        }

    @staticmethod
    def _validate_payment_data(payment_data: Mapping[str, Any]) -> None:
        for field in REQUIRED_PAYMENT_FIELDS:
            if is_blank(payment_data.get(field)):
                raise ValidationError(f"Missing required field: {field}")

        checks = (
            validate_order_reference(payment_data['orderReference']),
            validate_product_description(payment_data.get('productDescription')),
            validate_amount(payment_data['orderAmount']),
        )
        for is_valid, error in checks:
            if not is_valid:
                raise ValidationError(error)

    @staticmethod
    def _resolve_callback_url(explicit: Optional[str], settings: JengaSettings) -> str:
        callback_url = explicit or settings.callback_url
        if callback_url.startswith('/') and has_request_context():
            callback_url = urljoin(request.host_url, callback_url)
        return callback_url
