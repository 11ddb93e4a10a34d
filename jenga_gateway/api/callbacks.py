"""
Jenga Callback API Endpoints
Receives payment outcomes from the gateway and answers status queries
"""

import logging

from flask import Blueprint, request, jsonify, redirect

from jenga_gateway.errors import AppError
from jenga_gateway.services import get_reconciler
from jenga_gateway.utils.decorators import rate_limit


callbacks_bp = Blueprint('callbacks', __name__)
logger = logging.getLogger(__name__)


def _wants_json():
    if request.is_json:
        return True
    if request.headers.get('X-Requested-With') == 'XMLHttpRequest':
        return True
    best = request.accept_mimetypes.best_match(['application/json', 'text/html'])
    return best == 'application/json' and request.accept_mimetypes[best] > request.accept_mimetypes['text/html']


def _callback_payload():
    payload = request.args.to_dict()
    payload.update(request.form.to_dict())
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        payload.update(body)
    return payload


@callbacks_bp.route('/callback', methods=['GET', 'POST'])
def handle_callback():
    """
    Receive a payment callback from Jenga

    Jenga redirects the customer's browser here (GET) after checkout;
    POST is accepted as well.

    Query/Body Parameters:
        status, orderReference, transactionId, amount, date, desc, hash, extraData
    """
    payload = _callback_payload()
    logger.info(
        f'Received Jenga callback: status={payload.get("status")} '
        f'orderReference={payload.get("orderReference")}'
    )

    outcome = get_reconciler().handle(payload)

    if _wants_json():
        return jsonify(outcome.to_json()), outcome.status_code

    return redirect(outcome.redirect_url)


@callbacks_bp.route('/status', methods=['GET'])
@rate_limit(max_requests='STATUS_RATE_LIMIT', window_seconds=60, key_prefix='jenga_status')
def transaction_status():
    """
    Latest recorded transaction for an order

    Query Parameters:
        - order_reference: Merchant order reference
    """
    try:
        view = get_reconciler().status(request.args.get('order_reference', ''))
    except AppError as e:
        return jsonify({
            'success': False,
            'message': e.message
        }), e.status_code

    return jsonify(view.to_json()), 200
