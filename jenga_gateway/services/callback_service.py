"""
Callback Service
Reconciles Jenga payment callbacks with the transaction log and the host
application's Payment records
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

from jenga_gateway.errors import NotFound, StorageError, ValidationError
from jenga_gateway.schemas import TransactionSchema
from jenga_gateway.services.payment_adapter import PaymentEntityAdapter
from jenga_gateway.services.transaction_log import TransactionLog
from jenga_gateway.settings import JengaSettings

logger = logging.getLogger(__name__)
transaction_schema = TransactionSchema()

PAID = 'PAID'
SUCCESS = 'SUCCESS'

CALLBACK_FIELDS = ('status', 'orderReference', 'transactionId', 'amount', 'date', 'desc', 'hash', 'extraData')

_FRACTION = re.compile(r'\.(\d+)')
_OFFSET = re.compile(r'([+-])(\d{2}):?(\d{2})$')
_FALLBACK_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d',
    '%d/%m/%Y %H:%M:%S',
)


@dataclass(frozen=True)
class ReconciliationOutcome:
    """
    Result of handling one callback delivery.

    outcome is one of "processed", "duplicate", "rejected" or "error".
    The JSON body and the redirect URL describe the same result for
    API callers and browsers respectively.
    """

    outcome: str
    success: bool
    status_code: int
    message: str
    redirect_url: str
    reason: Optional[str] = None
    transaction: Optional[Dict[str, Any]] = None
    payment_completed: Optional[bool] = None

    def to_json(self) -> Dict[str, Any]:
        body = {
            'success': self.success,
            'outcome': self.outcome,
            'message': self.message,
        }
        if self.reason:
            body['reason'] = self.reason
        if self.transaction is not None:
            body['transaction'] = self.transaction
        if self.payment_completed is not None:
            body['payment_completed'] = self.payment_completed
        return body


@dataclass(frozen=True)
class TransactionStatusView:
    transaction: Dict[str, Any]
    payment: Optional[Dict[str, Any]] = field(default=None)

    def to_json(self) -> Dict[str, Any]:
        return {
            'success': True,
            'transaction': self.transaction,
            'payment': self.payment,
        }


def parse_callback_date(value: Any) -> Optional[datetime]:
    """
    Parse the callback date (yyyy-MM-dd'T'HH:mm:ss.SSSz and close variants).

    Returns a naive UTC datetime, or None when the value is empty or unreadable.
    """
    if not value:
        return None

    text = str(value).strip()
    if text[-1:] in ('Z', 'z'):
        text = text[:-1] + '+00:00'

    date_part, sep, time_part = text.partition('T')
    if not sep:
        date_part, sep, time_part = text.partition(' ')

    if sep:
        time_part = _OFFSET.sub(r'\1\2:\3', time_part.replace(' ', ''))
        time_part = _FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), time_part)
        text = f'{date_part}T{time_part}'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(str(value).strip(), fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def normalise_status(status: str) -> str:
    """'paid' in any case becomes SUCCESS; anything else is upper-cased"""
    upper = status.upper()
    return SUCCESS if upper == PAID else upper


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def _with_query(url: str, params: Dict[str, Any]) -> str:
    query = urlencode({key: '' if value is None else value for key, value in params.items()})
    return f"{url}{'&' if '?' in url else '?'}{query}"


class CallbackReconciler:
    """
    Handles Jenga callbacks.

    Each delivery is validated, checked against earlier deliveries, written
    to the transaction log at most once and then used to complete or fail
    the matching host Payment. The gateway is always told the callback was
    accepted unless the payload itself is unusable, so it does not keep
    redelivering.
    """

    def __init__(
            self,
            settings: JengaSettings,
            transaction_log: Optional[TransactionLog] = None,
            payment_adapter: Optional[PaymentEntityAdapter] = None,
            hash_verifier: Optional[Callable[[Mapping[str, Any], str], bool]] = None,
            clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.settings = settings
        self.transaction_log = transaction_log or TransactionLog()
        self.payment_adapter = payment_adapter
        self.hash_verifier = hash_verifier
        self.clock = clock

    def handle(self, payload: Mapping[str, Any]) -> ReconciliationOutcome:
        """
        Handle one callback delivery

        Never raises: unexpected errors become an "error" outcome.
        """
        try:
            return self._handle(payload)
        except Exception as e:
            logger.exception('Jenga callback error: %s (payload=%s)', e, dict(payload or {}))
            return ReconciliationOutcome(
                outcome='error',
                success=False,
                status_code=500,
                message=f'Error processing callback: {e}',
                redirect_url=_with_query(self.settings.failure_url, {
                    'status': 'error',
                    'message': 'Error processing payment callback',
                }),
            )

    def _handle(self, payload: Mapping[str, Any]) -> ReconciliationOutcome:
        callback = {name: _text(payload.get(name)) for name in CALLBACK_FIELDS}
        status = callback['status']
        order_reference = callback['orderReference']
        transaction_id = callback['transactionId']

        if not status or not order_reference:
            logger.warning('Jenga callback missing required fields: %s', dict(payload))
            return self._rejected('MissingFields', 'Missing required fields')

        if callback['hash'] and self.settings.verify_hash:
            if self.hash_verifier is None:
                logger.info('Jenga callback hash received: %s', callback['hash'])
            elif not self.hash_verifier(payload, callback['hash']):
                logger.warning('Jenga callback hash mismatch for order %s', order_reference)
                return self._rejected('InvalidHash', 'Invalid callback hash')

        transaction_date = parse_callback_date(callback['date'])
        if transaction_date is None:
            if callback['date']:
                logger.warning('Failed to parse transaction date: %s', callback['date'])
            transaction_date = self.clock()

        order_status = normalise_status(status)
        is_success = order_status == SUCCESS

        transaction_data = {
            'order_status': order_status,
            'order_reference': order_reference,
            'transaction_reference': transaction_id,
            'transaction_amount': callback['amount'] or '0.00',
            'transaction_currency': '',
            'payment_channel': callback['desc'],
            'transaction_date': transaction_date,
        }

        existing = self.transaction_log.find_duplicate(order_reference, transaction_id)
        if existing is not None:
            logger.info(
                'Duplicate Jenga callback received: order_reference=%s transaction_id=%s',
                order_reference, transaction_id
            )
            payment_completed = self._reconcile_payment(is_success, callback, payload)
            return ReconciliationOutcome(
                outcome='duplicate',
                success=True,
                status_code=200,
                message='Transaction already processed',
                transaction=transaction_schema.dump(existing),
                payment_completed=payment_completed,
                redirect_url=_with_query(self.settings.success_url, {
                    'status': 'success',
                    'orderReference': order_reference,
                    'transactionId': transaction_id,
                }),
            )

        stored = None
        try:
            stored = self.transaction_log.record(transaction_data)
        except StorageError as e:
            logger.error('Failed to store Jenga transaction: %s (data=%s)', e.message, transaction_data)

        transaction = transaction_schema.dump(stored) if stored is not None else self._serialise(transaction_data)
        payment_completed = self._reconcile_payment(is_success, callback, payload)

        if is_success:
            logger.info(
                'Jenga payment successful: order_reference=%s transaction_id=%s amount=%s channel=%s '
                'payment_completed=%s',
                order_reference, transaction_id, callback['amount'], callback['desc'], payment_completed
            )
            return ReconciliationOutcome(
                outcome='processed',
                success=True,
                status_code=200,
                message='Payment successful',
                transaction=transaction,
                payment_completed=payment_completed,
                redirect_url=_with_query(self.settings.success_url, {
                    'status': 'success',
                    'orderReference': order_reference,
                    'transactionId': transaction_id,
                    'amount': callback['amount'],
                    'channel': callback['desc'],
                }),
            )

        logger.warning(
            'Jenga payment failed: order_reference=%s status=%s transaction_id=%s',
            order_reference, status, transaction_id
        )
        return ReconciliationOutcome(
            outcome='processed',
            success=False,
            status_code=400,
            message=f'Payment status: {status}',
            transaction=transaction,
            payment_completed=False,
            redirect_url=_with_query(self.settings.failure_url, {
                'status': 'failed',
                'orderReference': order_reference,
                'transactionId': transaction_id,
                'transactionStatus': status,
            }),
        )

    def status(self, order_reference: str) -> TransactionStatusView:
        """
        Latest transaction for an order, with the host Payment status if known

        Raises:
            ValidationError: order_reference is empty
            NotFound: no transaction recorded for the order
        """
        order_reference = _text(order_reference)
        if not order_reference:
            raise ValidationError('Order reference is required')

        transaction = self.transaction_log.latest_for_order(order_reference)
        if transaction is None:
            raise NotFound('Transaction not found')

        payment = None
        if self.payment_adapter is not None:
            found = self.payment_adapter.find_by_any_reference([order_reference])
            if found is not None:
                payment = self.payment_adapter.describe(found)

        return TransactionStatusView(transaction=transaction_schema.dump(transaction), payment=payment)

    # Host payment reconciliation

    def _reconcile_payment(self, is_success: bool, callback: Dict[str, str], payload: Mapping[str, Any]) -> bool:
        if is_success:
            return self._complete_payment(callback, payload)
        self._fail_payment(callback, payload)
        return False

    def _find_payment(self, callback: Dict[str, str]):
        return self.payment_adapter.find_by_any_reference(
            [callback['orderReference'], callback['transactionId']]
        )

    def _complete_payment(self, callback: Dict[str, str], payload: Mapping[str, Any]) -> bool:
        if self.payment_adapter is None:
            logger.debug('No payment adapter configured, skipping payment completion')
            return False

        try:
            payment = self._find_payment(callback)
            if payment is None:
                logger.warning(
                    'Payment not found for order reference: order_reference=%s transaction_id=%s',
                    callback['orderReference'], callback['transactionId']
                )
                return False

            # A failed or cancelled payment can still be completed by a later paid callback
            if self.payment_adapter.get_status(payment) == 'completed':
                logger.info('Payment already completed: order_reference=%s', callback['orderReference'])
                return True

            completed = self.payment_adapter.mark_completed(
                payment,
                callback['transactionId'] or callback['orderReference'],
                self._provider_response(callback, payload),
            )
            logger.info(
                'Payment marked as completed via Jenga callback: order_reference=%s transaction_id=%s',
                callback['orderReference'], callback['transactionId']
            )
            return bool(completed)

        except Exception as e:
            logger.exception(
                'Failed to complete payment via Jenga callback: %s (order_reference=%s transaction_id=%s)',
                e, callback['orderReference'], callback['transactionId']
            )
            return False

    def _fail_payment(self, callback: Dict[str, str], payload: Mapping[str, Any]) -> bool:
        if self.payment_adapter is None:
            return False

        try:
            payment = self._find_payment(callback)
            if payment is None:
                return False

            if self.payment_adapter.is_in_final_state(payment):
                return True

            failed = self.payment_adapter.mark_failed(
                payment,
                f"Payment status: {callback['status']}",
                self._provider_response(callback, payload),
            )
            logger.info(
                'Payment marked as failed via Jenga callback: order_reference=%s status=%s',
                callback['orderReference'], callback['status']
            )
            return bool(failed)

        except Exception as e:
            logger.error(
                'Failed to mark payment as failed via Jenga callback: %s (order_reference=%s)',
                e, callback['orderReference']
            )
            return False

    def _provider_response(self, callback: Dict[str, str], payload: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            'jenga_callback': dict(payload),
            'jenga_transaction_id': callback['transactionId'] or None,
            'jenga_status': callback['status'],
            'jenga_payment_channel': callback['desc'] or None,
            'jenga_callback_received_at': self.clock().isoformat(),
        }

    # Helpers

    def _rejected(self, reason: str, message: str) -> ReconciliationOutcome:
        return ReconciliationOutcome(
            outcome='rejected',
            success=False,
            status_code=400,
            message=message,
            reason=reason,
            redirect_url=_with_query(self.settings.failure_url, {
                'status': 'failed',
                'message': 'Invalid callback data',
            }),
        )

    @staticmethod
    def _serialise(transaction_data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(transaction_data)
        if isinstance(data.get('transaction_date'), datetime):
            data['transaction_date'] = data['transaction_date'].isoformat()
        return data
