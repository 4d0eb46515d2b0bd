"""
Utils Package
Utility functions and helpers
"""

from momopay.utils.clock import utcnow
from momopay.utils.logger import get_logger, configure_app_logging, RequestLogger
from momopay.utils.validators import (
    normalize_phone_number,
    validate_phone_number,
    validate_choice
)

__all__ = [
    'utcnow',
    'get_logger',
    'configure_app_logging',
    'RequestLogger',
    'normalize_phone_number',
    'validate_phone_number',
    'validate_choice'
]
