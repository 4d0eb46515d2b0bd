"""
Custom Validators
Validation functions for payment request fields
"""

import re
from typing import Optional

MIN_PHONE_LENGTH = 10


def normalize_phone_number(phone: str) -> str:
    """Strip all whitespace from a phone number"""
    if not phone:
        return ''
    return re.sub(r'\s', '', str(phone))


def validate_phone_number(phone: str) -> tuple[bool, Optional[str]]:
    """
    Validate a payer MSISDN after whitespace has been stripped

    Returns:
        Tuple of (is_valid, error_message)
    """
    phone_clean = normalize_phone_number(phone)

    if not phone_clean:
        return False, "Phone number is required"

    if len(phone_clean) < MIN_PHONE_LENGTH:
        return False, "Invalid phone number format"

    return True, None


def validate_choice(value: str, allowed: list, label: str) -> tuple[bool, Optional[str]]:
    """
    Validate that an upper-cased value is one of the allowed options

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not value:
        return False, f"{label} is required"

    if value.upper() not in allowed:
        return False, f"Invalid {label.lower()}. Must be one of: {', '.join(allowed)}"

    return True, None
