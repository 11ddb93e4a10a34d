"""
Unit Tests for callback reconciliation
"""

from datetime import datetime
from unittest.mock import Mock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from jenga_gateway.errors import NotFound, StorageError, ValidationError
from jenga_gateway.models import JengaTransaction
from jenga_gateway.services.callback_service import (
    CallbackReconciler,
    normalise_status,
    parse_callback_date,
)

NOW = datetime(2024, 5, 2, 12, 0, 0)


def _query(url):
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


@pytest.fixture
def reconciler(app, settings, payment_adapter):
    return CallbackReconciler(settings, payment_adapter=payment_adapter, clock=lambda: NOW)


@pytest.fixture
def paid_callback():
    return {
        'status': 'paid',
        'orderReference': 'ORD12345AB',
        'transactionId': 'TXN001',
        'amount': '1000.00',
        'date': '2024-05-01T10:00:00.000+0300',
        'desc': 'MPESA',
    }


class TestParseCallbackDate:
    """Test cases for callback date parsing"""

    @pytest.mark.parametrize('value, expected', [
        ('2024-05-01T10:00:00.000+0300', datetime(2024, 5, 1, 7, 0, 0)),
        ('2024-05-01T10:00:00.000+03:00', datetime(2024, 5, 1, 7, 0, 0)),
        ('2024-05-01T10:00:00Z', datetime(2024, 5, 1, 10, 0, 0)),
        ('2024-05-01T10:00:00.5', datetime(2024, 5, 1, 10, 0, 0, 500000)),
        ('2024-05-01 10:00:00', datetime(2024, 5, 1, 10, 0, 0)),
        ('2024-05-01', datetime(2024, 5, 1)),
    ])
    def test_accepted_formats(self, value, expected):
        assert parse_callback_date(value) == expected

    @pytest.mark.parametrize('value', [None, '', 'yesterday', '2024-13-45T99:00:00'])
    def test_unreadable_values_return_none(self, value):
        assert parse_callback_date(value) is None


class TestNormaliseStatus:

    @pytest.mark.parametrize('status, expected', [
        ('paid', 'SUCCESS'),
        ('PAID', 'SUCCESS'),
        ('Paid', 'SUCCESS'),
        ('cancelled', 'CANCELLED'),
        ('failed', 'FAILED'),
    ])
    def test_normalise(self, status, expected):
        assert normalise_status(status) == expected


class TestCallbackReconciler:
    """Test cases for CallbackReconciler.handle"""

    def test_paid_callback_records_success(self, reconciler, session, paid_callback):
        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'processed'
        assert outcome.success is True
        assert outcome.status_code == 200
        assert outcome.message == 'Payment successful'

        records = session.query(JengaTransaction).all()
        assert len(records) == 1
        record = records[0]
        assert record.order_status == 'SUCCESS'
        assert record.payment_channel == 'MPESA'
        assert record.transaction_reference == 'TXN001'
        assert record.transaction_amount == '1000.00'
        assert record.transaction_currency == ''
        assert record.transaction_date == datetime(2024, 5, 1, 7, 0, 0)

        query = _query(outcome.redirect_url)
        assert outcome.redirect_url.startswith('/payment/success?')
        assert query == {
            'status': 'success',
            'orderReference': 'ORD12345AB',
            'transactionId': 'TXN001',
            'amount': '1000.00',
            'channel': 'MPESA',
        }

    def test_cancelled_callback_records_failure(self, reconciler, session):
        outcome = reconciler.handle({'status': 'cancelled', 'orderReference': 'ORD12345AB'})

        assert outcome.outcome == 'processed'
        assert outcome.success is False
        assert outcome.status_code == 400
        assert outcome.message == 'Payment status: cancelled'

        record = session.query(JengaTransaction).one()
        assert record.order_status == 'CANCELLED'
        assert record.transaction_date == NOW
        assert record.payment_channel == ''
        assert record.transaction_reference == ''
        assert record.transaction_amount == '0.00'

        assert outcome.redirect_url.startswith('/payment/failed?')
        assert _query(outcome.redirect_url)['transactionStatus'] == 'cancelled'

    @pytest.mark.parametrize('payload', [
        {'status': 'paid', 'transactionId': 'TXN001'},
        {'orderReference': 'ORD12345AB', 'transactionId': 'TXN001'},
        {'status': '   ', 'orderReference': 'ORD12345AB'},
        {},
    ])
    def test_missing_fields_rejected(self, reconciler, session, payload):
        outcome = reconciler.handle(payload)

        assert outcome.outcome == 'rejected'
        assert outcome.reason == 'MissingFields'
        assert outcome.status_code == 400
        assert session.query(JengaTransaction).count() == 0
        assert _query(outcome.redirect_url) == {'status': 'failed', 'message': 'Invalid callback data'}

    def test_unparseable_date_falls_back_to_clock(self, reconciler, session, paid_callback):
        paid_callback['date'] = 'not a date'

        outcome = reconciler.handle(paid_callback)

        assert outcome.success is True
        assert session.query(JengaTransaction).one().transaction_date == NOW

    def test_redelivery_is_idempotent(self, reconciler, session, paid_callback, host_payment):
        first = reconciler.handle(paid_callback)
        second = reconciler.handle(paid_callback)

        assert first.outcome == 'processed'
        assert second.outcome == 'duplicate'
        assert second.success is True
        assert second.status_code == 200
        assert second.message == 'Transaction already processed'
        assert second.transaction['transaction_reference'] == 'TXN001'
        assert second.payment_completed is True
        assert session.query(JengaTransaction).count() == 1

    def test_duplicate_still_completes_pending_payment(
            self, reconciler, session, paid_callback, sample_transaction, host_payment):
        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'duplicate'
        assert outcome.payment_completed is True

        session.refresh(host_payment)
        assert host_payment.status == 'completed'
        assert host_payment.reference_number == 'TXN001'
        assert session.query(JengaTransaction).count() == 1

    def test_successful_order_blocks_new_transaction_id(self, reconciler, session, paid_callback, sample_transaction):
        paid_callback['transactionId'] = 'TXN002'

        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'duplicate'
        assert session.query(JengaTransaction).count() == 1

    def test_failed_attempt_then_success_for_same_order(self, reconciler, session, paid_callback):
        reconciler.handle({'status': 'failed', 'orderReference': 'ORD12345AB', 'transactionId': 'TXN000'})
        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'processed'
        assert outcome.success is True
        assert session.query(JengaTransaction).count() == 2

    def test_completes_host_payment(self, reconciler, session, paid_callback, host_payment):
        outcome = reconciler.handle(paid_callback)

        assert outcome.payment_completed is True
        session.refresh(host_payment)
        assert host_payment.status == 'completed'
        assert host_payment.completed_at is not None
        assert host_payment.provider_response['jenga_transaction_id'] == 'TXN001'
        assert host_payment.provider_response['jenga_payment_channel'] == 'MPESA'
        assert host_payment.provider_response['jenga_callback_received_at'] == NOW.isoformat()

    def test_fails_host_payment(self, reconciler, session, host_payment):
        outcome = reconciler.handle({'status': 'failed', 'orderReference': 'ORD12345AB', 'transactionId': 'TXN009'})

        assert outcome.success is False
        assert outcome.payment_completed is False
        session.refresh(host_payment)
        assert host_payment.status == 'failed'
        assert host_payment.provider_response['jenga_status'] == 'failed'

    def test_paid_callback_completes_previously_failed_payment(
            self, reconciler, session, paid_callback, host_payment):
        reconciler.handle({'status': 'failed', 'orderReference': 'ORD12345AB', 'transactionId': 'TXN000'})
        session.refresh(host_payment)
        assert host_payment.status == 'failed'

        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'processed'
        assert outcome.payment_completed is True
        session.refresh(host_payment)
        assert host_payment.status == 'completed'
        assert host_payment.reference_number == 'TXN001'
        assert host_payment.provider_response['jenga_status'] == 'paid'

    def test_cancelled_payment_completed_by_paid_redelivery(
            self, reconciler, session, paid_callback, sample_transaction, host_payment):
        host_payment.status = 'cancelled'
        session.commit()

        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'duplicate'
        assert outcome.payment_completed is True
        session.refresh(host_payment)
        assert host_payment.status == 'completed'

    def test_completed_payment_not_reopened_by_failure(self, reconciler, session, host_payment):
        host_payment.status = 'completed'
        session.commit()

        reconciler.handle({'status': 'failed', 'orderReference': 'ORD12345AB', 'transactionId': 'TXN009'})

        session.refresh(host_payment)
        assert host_payment.status == 'completed'

    def test_unknown_payment_is_not_an_error(self, reconciler, session, paid_callback):
        outcome = reconciler.handle(paid_callback)

        assert outcome.success is True
        assert outcome.payment_completed is False

    def test_without_adapter_payment_step_is_skipped(self, app, settings, session, paid_callback):
        reconciler = CallbackReconciler(settings, clock=lambda: NOW)

        outcome = reconciler.handle(paid_callback)

        assert outcome.success is True
        assert outcome.payment_completed is False
        assert session.query(JengaTransaction).count() == 1

    def test_adapter_failure_does_not_fail_callback(self, app, settings, session, paid_callback):
        adapter = Mock()
        adapter.find_by_any_reference.side_effect = RuntimeError('host database down')
        reconciler = CallbackReconciler(settings, payment_adapter=adapter, clock=lambda: NOW)

        outcome = reconciler.handle(paid_callback)

        assert outcome.success is True
        assert outcome.payment_completed is False

    def test_storage_failure_is_swallowed(self, settings, paid_callback):
        log = Mock()
        log.find_duplicate.return_value = None
        log.record.side_effect = StorageError('disk full')
        reconciler = CallbackReconciler(settings, transaction_log=log, clock=lambda: NOW)

        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'processed'
        assert outcome.success is True
        assert outcome.transaction['order_status'] == 'SUCCESS'
        assert outcome.transaction['transaction_date'] == '2024-05-01T07:00:00'

    def test_concurrent_insert_caught_by_unique_constraint(
            self, reconciler, session, paid_callback, host_payment):
        # another worker stored the same delivery after our duplicate lookup ran
        session.add(JengaTransaction(
            order_status='FAILED',
            order_reference='ORD12345AB',
            transaction_reference='TXN001',
            transaction_amount='1000.00',
            transaction_currency='',
            payment_channel='MPESA'
        ))
        session.commit()

        with patch.object(reconciler.transaction_log, 'find_duplicate', return_value=None):
            outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'processed'
        assert outcome.success is True
        assert outcome.transaction['order_reference'] == 'ORD12345AB'
        assert outcome.payment_completed is True

        assert session.query(JengaTransaction).count() == 1
        assert session.query(JengaTransaction).one().order_status == 'FAILED'
        session.refresh(host_payment)
        assert host_payment.status == 'completed'

    def test_unexpected_error_becomes_error_outcome(self, settings, paid_callback):
        log = Mock()
        log.find_duplicate.side_effect = RuntimeError('boom')
        reconciler = CallbackReconciler(settings, transaction_log=log, clock=lambda: NOW)

        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'error'
        assert outcome.success is False
        assert outcome.status_code == 500
        assert _query(outcome.redirect_url)['status'] == 'error'
        log.record.assert_not_called()


class TestHashVerification:
    """Test cases for the optional callback hash check"""

    def test_mismatch_rejected(self, app, settings, session, paid_callback):
        verifier = Mock(return_value=False)
        reconciler = CallbackReconciler(
            settings.with_changes({'verify_hash': True}), hash_verifier=verifier, clock=lambda: NOW
        )
        paid_callback['hash'] = 'deadbeef'

        outcome = reconciler.handle(paid_callback)

        assert outcome.outcome == 'rejected'
        assert outcome.reason == 'InvalidHash'
        assert outcome.status_code == 400
        verifier.assert_called_once_with(paid_callback, 'deadbeef')
        assert session.query(JengaTransaction).count() == 0

    def test_match_accepted(self, app, settings, session, paid_callback):
        reconciler = CallbackReconciler(
            settings.with_changes({'verify_hash': True}), hash_verifier=lambda payload, value: True,
            clock=lambda: NOW
        )
        paid_callback['hash'] = 'deadbeef'

        assert reconciler.handle(paid_callback).outcome == 'processed'

    def test_verification_disabled_ignores_verifier(self, app, settings, session, paid_callback):
        verifier = Mock(return_value=False)
        reconciler = CallbackReconciler(settings, hash_verifier=verifier, clock=lambda: NOW)
        paid_callback['hash'] = 'deadbeef'

        assert reconciler.handle(paid_callback).outcome == 'processed'
        verifier.assert_not_called()

    def test_no_verifier_only_logs(self, app, settings, session, paid_callback):
        reconciler = CallbackReconciler(settings.with_changes({'verify_hash': True}), clock=lambda: NOW)
        paid_callback['hash'] = 'deadbeef'

        assert reconciler.handle(paid_callback).outcome == 'processed'


class TestTransactionStatus:
    """Test cases for CallbackReconciler.status"""

    def test_blank_reference(self, reconciler):
        with pytest.raises(ValidationError):
            reconciler.status('  ')

    def test_unknown_order(self, reconciler):
        with pytest.raises(NotFound) as exc_info:
            reconciler.status('ORD99999ZZ')

        assert exc_info.value.status_code == 404

    def test_returns_latest_with_payment(self, reconciler, paid_callback, host_payment):
        reconciler.handle({
            'status': 'failed', 'orderReference': 'ORD12345AB', 'transactionId': 'TXN000',
            'date': '2024-05-01T09:00:00.000+0300',
        })
        reconciler.handle(paid_callback)

        body = reconciler.status('ORD12345AB').to_json()

        assert body['success'] is True
        assert body['transaction']['transaction_reference'] == 'TXN001'
        assert body['transaction']['is_successful'] is True
        assert body['payment']['status'] == 'completed'
        assert body['payment']['id'] == host_payment.id
