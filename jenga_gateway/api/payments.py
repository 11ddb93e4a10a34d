"""
Payment API Endpoints
Prepares Jenga checkouts for the merchant's frontend
"""

import logging

from flask import Blueprint, request, jsonify, render_template_string
from marshmallow import ValidationError

from jenga_gateway.errors import AppError
from jenga_gateway.providers import get_client
from jenga_gateway.schemas import CheckoutRequestSchema, PaymentInitiationSchema


payments_bp = Blueprint('payments', __name__)
logger = logging.getLogger(__name__)

checkout_schema = CheckoutRequestSchema()
initiation_schema = PaymentInitiationSchema()

CHECKOUT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Redirecting to Jenga</title>
</head>
<body onload="document.forms['jenga-checkout'].submit()">
    <p>Redirecting to the payment page&hellip;</p>
    <form id="jenga-checkout" name="jenga-checkout" action="{{ payment_url }}" method="{{ method }}">
        {% for name, value in form_data.items() %}
        <input type="hidden" name="{{ name }}" value="{{ value }}">
        {% endfor %}
        <noscript><button type="submit">Continue to payment</button></noscript>
    </form>
</body>
</html>
"""


def _checkout_payload():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


@payments_bp.route('/initiate', methods=['POST'])
def initiate_payment():
    """
    Prepare a Jenga checkout

    Body:
        {
            "orderReference": "ORD12345AB",
            "orderAmount": 1000.00,
            "currency": "KES",
            "countryCode": "KE",
            "customerFirstName": "John",
            "customerLastName": "Doe",
            "customerEmail": "john@example.com",
            "customerPhone": "+254 700 000 000",
            "productDescription": "Order #12345",
            "orderItems": [{"name": "Widget", "quantity": 1}]
        }

    Returns:
        payment_url, form_data and method to POST from the browser
    """
    try:
        data = checkout_schema.load(_checkout_payload())
    except ValidationError as e:
        return jsonify({
            'success': False,
            'error': 'Validation error',
            'details': e.messages
        }), 400

    result = get_client().initiate_payment(data)

    return jsonify({
        'success': True,
        'data': initiation_schema.dump(result)
    }), 201


@payments_bp.route('/checkout', methods=['POST'])
def checkout():
    """
    Prepare a Jenga checkout and return an auto-submitting HTML form

    Accepts the same fields as /initiate, as JSON or form data.
    """
    try:
        data = checkout_schema.load(_checkout_payload())
        result = get_client().initiate_payment(data)
    except ValidationError as e:
        return jsonify({
            'success': False,
            'error': 'Validation error',
            'details': e.messages
        }), 400
    except AppError as e:
        logger.warning(f'Checkout could not be prepared: {e.message}')
        return jsonify({
            'success': False,
            'error': e.error,
            'message': e.message
        }), e.status_code

    return render_template_string(CHECKOUT_TEMPLATE, **result), 200
