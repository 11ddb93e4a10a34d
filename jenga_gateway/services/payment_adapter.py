"""
Payment Entity Adapter
Boundary to the host application's own Payment records.

The gateway package never owns those records; it only asks the host to
move them to completed or failed. A host without a Payment model passes no
adapter at all and the reconciler skips this step.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence

from jenga_gateway.extensions import db

FINAL_STATES = ('completed', 'failed', 'cancelled')


class PaymentEntityAdapter(ABC):
    """Abstract interface to the host application's Payment entity"""

    @abstractmethod
    def find_by_any_reference(self, candidates: Sequence[str]) -> Optional[Any]:
        """
        Find a payment matching any of the candidate identifiers

        Args:
            candidates: Identifiers to try in order (order reference, gateway transaction id)

        Returns:
            First matching payment, or None
        """
        pass

    @abstractmethod
    def mark_completed(self, payment: Any, external_reference: str, provider_response: Dict[str, Any]) -> bool:
        """Move the payment to completed; safe to call more than once"""
        pass

    @abstractmethod
    def mark_failed(self, payment: Any, reason: str, provider_response: Dict[str, Any]) -> bool:
        """Move the payment to failed; safe to call more than once"""
        pass

    def get_status(self, payment: Any) -> Optional[str]:
        return getattr(payment, 'status', None)

    def is_in_final_state(self, payment: Any) -> bool:
        return self.get_status(payment) in FINAL_STATES

    def describe(self, payment: Any) -> Dict[str, Any]:
        """Summary of the payment for status responses"""
        completed_at = getattr(payment, 'completed_at', None)
        amount = getattr(payment, 'amount', None)
        return {
            'id': getattr(payment, 'id', None),
            'status': self.get_status(payment),
            'amount': str(amount) if amount is not None else None,
            'completed_at': completed_at.isoformat() if completed_at else None,
        }


class SQLAlchemyPaymentAdapter(PaymentEntityAdapter):
    """
    Adapter for a host Payment model living in the same SQLAlchemy database.

    The model is expected to expose ``status`` plus the reference columns
    listed in ``reference_fields``. When it defines ``mark_as_completed`` /
    ``mark_as_failed`` those are used; otherwise the columns are updated
    directly (``status``, ``reference_number``, ``provider_response``,
    ``completed_at`` where present).
    """

    def __init__(
            self,
            model,
            reference_fields: Iterable[str] = ('transaction_id', 'reference_number'),
            session=None
    ):
        self.model = model
        self.reference_fields = tuple(reference_fields)
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def find_by_any_reference(self, candidates: Sequence[str]) -> Optional[Any]:
        for candidate in candidates:
            if not candidate:
                continue
            for field in self.reference_fields:
                column = getattr(self.model, field, None)
                if column is None:
                    continue
                payment = self.session.query(self.model).filter(column == candidate).first()
                if payment is not None:
                    return payment
        return None

    def mark_completed(self, payment: Any, external_reference: str, provider_response: Dict[str, Any]) -> bool:
        if self.get_status(payment) == 'completed':
            return True

        if hasattr(payment, 'mark_as_completed'):
            payment.mark_as_completed(external_reference, provider_response)
        else:
            payment.status = 'completed'
            if hasattr(payment, 'reference_number'):
                payment.reference_number = external_reference or payment.reference_number
            if hasattr(payment, 'completed_at'):
                payment.completed_at = datetime.utcnow()
            self._merge_provider_response(payment, provider_response)

        self.session.commit()
        return True

    def mark_failed(self, payment: Any, reason: str, provider_response: Dict[str, Any]) -> bool:
        if self.is_in_final_state(payment):
            return True

        if hasattr(payment, 'mark_as_failed'):
            payment.mark_as_failed(reason, provider_response)
        else:
            payment.status = 'failed'
            self._merge_provider_response(payment, provider_response)

        self.session.commit()
        return True

    @staticmethod
    def _merge_provider_response(payment, provider_response):
        if not hasattr(payment, 'provider_response'):
            return
        merged = dict(payment.provider_response or {})
        merged.update(provider_response)
        payment.provider_response = merged
