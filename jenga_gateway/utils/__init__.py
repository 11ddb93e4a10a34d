"""
Utils Package
Utility functions and helpers
"""

from jenga_gateway.utils.logger import get_logger, configure_app_logging, RequestLogger
from jenga_gateway.utils.decorators import rate_limit, admin_required
from jenga_gateway.utils.validators import (
    format_payment_time_limit,
    normalise_phone,
    validate_amount,
    validate_order_reference,
    validate_product_description
)

__all__ = [
    'get_logger',
    'configure_app_logging',
    'RequestLogger',
    'rate_limit',
    'admin_required',
    'format_payment_time_limit',
    'normalise_phone',
    'validate_amount',
    'validate_order_reference',
    'validate_product_description'
]
