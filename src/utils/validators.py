"""
Input validation functions for the Pack Tracker application.

Each validator returns a ``(is_valid, error_message)`` tuple so callers can
collect every problem before raising. ``to_decimal`` converts user input to
Decimal for the Numeric columns.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple

from .constants import (
    AMOUNT_DECIMAL_PLACES,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_INVALID_WHOLE_NUMBER,
    ERROR_REQUIRED_FIELD,
    ERROR_TOO_MANY_DECIMALS,
    QUANTITY_DECIMAL_PLACES,
)


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a user-supplied number to Decimal.

    Floats go through str() so 0.1 stays 0.1.

    Returns:
        Decimal, or None if the value is not a finite number
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def has_valid_scale(number: Decimal, places: int = QUANTITY_DECIMAL_PLACES) -> bool:
    """True when ``number`` has no more than ``places`` decimal places."""
    return number.normalize().as_tuple().exponent >= -places


def quantize_amount(value: Any) -> Decimal:
    """Round an amount to the scale of the amount columns."""
    step = Decimal(1).scaleb(-AMOUNT_DECIMAL_PLACES)
    return Decimal(value).quantize(step, rounding=ROUND_HALF_UP)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a string doesn't exceed maximum length.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_positive_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a positive number (> 0) with at most four
    decimal places.

    Returns:
        Tuple of (is_valid, error_message)
    """
    number = to_decimal(value)
    if number is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number <= 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    if not has_valid_scale(number):
        return False, f"{field_name}: {ERROR_TOO_MANY_DECIMALS}"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a non-negative number (>= 0) with at most four
    decimal places.

    Returns:
        Tuple of (is_valid, error_message)
    """
    number = to_decimal(value)
    if number is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    if not has_valid_scale(number):
        return False, f"{field_name}: {ERROR_TOO_MANY_DECIMALS}"
    return True, ""


def validate_positive_integer(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a whole number greater than zero.

    Integral Decimals and floats (e.g. 10.0) are accepted.

    Returns:
        Tuple of (is_valid, error_message)
    """
    is_valid, error = validate_positive_number(value, field_name)
    if not is_valid:
        return is_valid, error
    if to_decimal(value) % 1 != 0:
        return False, f"{field_name}: {ERROR_INVALID_WHOLE_NUMBER}"
    return True, ""


def collect_errors(*results: Tuple[bool, str]) -> List[str]:
    """Gather the messages of every failed validation result."""
    return [message for is_valid, message in results if not is_valid]
