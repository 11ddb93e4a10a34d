"""
Schemas Package
Marshmallow schemas for request/response validation
"""

from jenga_gateway.schemas.payment_schema import (
    CheckoutRequestSchema,
    PaymentInitiationSchema
)
from jenga_gateway.schemas.settings_schema import SettingsUpdateSchema
from jenga_gateway.schemas.transaction_schema import TransactionSchema

__all__ = [
    'CheckoutRequestSchema',
    'PaymentInitiationSchema',
    'SettingsUpdateSchema',
    'TransactionSchema'
]
