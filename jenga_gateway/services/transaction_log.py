"""
Transaction Log
Storage of gateway callback outcomes in the jenga_transactions table
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from jenga_gateway.errors import StorageError
from jenga_gateway.extensions import db
from jenga_gateway.models import JengaTransaction

logger = logging.getLogger(__name__)


class TransactionLog:
    """
    Append-only record of callback deliveries.

    Records are keyed by (order_reference, transaction_reference); the
    database unique constraint is what rejects concurrent duplicate inserts,
    the lookups here only short-circuit the common case.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def find_by_transaction_reference(self, transaction_reference: str) -> Optional[JengaTransaction]:
        if not transaction_reference:
            return None
        return self.session.query(JengaTransaction).filter_by(
            transaction_reference=transaction_reference
        ).first()

    def find_successful(self, order_reference: str) -> Optional[JengaTransaction]:
        if not order_reference:
            return None
        return self.session.query(JengaTransaction).filter_by(
            order_reference=order_reference,
            order_status=JengaTransaction.SUCCESS
        ).first()

    def find_duplicate(self, order_reference: str, transaction_reference: str) -> Optional[JengaTransaction]:
        """
        Look for a record that makes this delivery a duplicate.

        Tries the gateway transaction reference first, then any successful
        record for the same order.
        """
        return (
            self.find_by_transaction_reference(transaction_reference)
            or self.find_successful(order_reference)
        )

    def latest_for_order(self, order_reference: str) -> Optional[JengaTransaction]:
        return self.session.query(JengaTransaction).filter_by(
            order_reference=order_reference
        ).order_by(
            JengaTransaction.transaction_date.desc(),
            JengaTransaction.id.desc()
        ).first()

    def record(self, data: Dict[str, Any]) -> JengaTransaction:
        """
        Insert a new transaction record.

        Raises:
            StorageError: the insert failed (including unique-constraint races);
                the session is rolled back before raising
        """
        transaction = JengaTransaction(
            order_status=data.get('order_status'),
            order_reference=data.get('order_reference'),
            transaction_reference=data.get('transaction_reference') or '',
            transaction_amount=data.get('transaction_amount'),
            transaction_currency=data.get('transaction_currency') or '',
            payment_channel=data.get('payment_channel') or '',
            transaction_date=data.get('transaction_date') or datetime.utcnow(),
        )

        try:
            self.session.add(transaction)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StorageError(f'Failed to store Jenga transaction: {exc}') from exc

        return transaction
