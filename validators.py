"""
Input Validation & Sanitization Utilities
Provides validation for fee schedule, fee calculation and fee history requests
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Any, List, Optional, Tuple
import logging

from errors import ValidationError
from fee_calculations import (
    BILLABLE_AMOUNT_PRECISION,
    EFFECTIVE_RATE_PRECISION,
    FEE_AMOUNT_PRECISION,
    BillingMethod,
    EntityType,
    FeeFrequency,
    check_precision,
    parse_fee_type,
    parse_tiers,
    to_decimal,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
MAX_TEXT_LENGTH = 10000
MAX_ID_LENGTH = 64


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False, "Value must be a number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing potentially dangerous characters

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    # Remove null bytes
    sanitized = value.replace('\x00', '')

    # Trim whitespace
    sanitized = sanitized.strip()

    # Limit length
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


# ==================== FIELD PARSERS ====================

def _require(data: Dict[str, Any], fields: List[str]):
    is_valid, error = validate_required_fields(data, fields)
    if not is_valid:
        missing = [f for f in fields if f not in data or data[f] is None or data[f] == '']
        raise ValidationError(error, field=missing[0])


def _parse_choice(value: Any, enum_cls, field: str) -> str:
    try:
        return enum_cls(str(value).lower()).value
    except ValueError:
        allowed = ', '.join(choice.value for choice in enum_cls)
        raise ValidationError(f"Invalid {field} '{value}'. Must be one of: {allowed}", field=field)


def _parse_text(value: Any, field: str, max_length: int = MAX_TEXT_LENGTH) -> Optional[str]:
    if value is None:
        return None
    is_valid, error = validate_string_length(value, max_length=max_length)
    if not is_valid:
        raise ValidationError(f"Invalid {field}: {error}", field=field)
    return sanitize_string(value, max_length)


def _parse_identifier(value: Any, field: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(f"{field} must be a string", field=field)
    value = sanitize_string(str(value), MAX_ID_LENGTH)
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    return value


def _parse_money(value: Any, field: str, precision: Tuple[int, int]) -> Optional[Decimal]:
    if value is None:
        return None
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", field=field)
    return check_precision(amount, field, precision)


def parse_date(value: Any, field: str) -> Optional[date]:
    """Parse an ISO date (or datetime) string. Empty values become None."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).date()
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)", field=field)


def parse_entity_type(value: Any) -> str:
    return _parse_choice(value, EntityType, 'entity_type')


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ('true', 'false', '1', '0'):
        return value.lower() in ('true', '1')
    raise ValidationError(f"{field} must be a boolean", field=field)


# ==================== REQUEST VALIDATORS ====================

def validate_fee_schedule_request(data: Any, partial: bool = False) -> Dict[str, Any]:
    """
    Validate a create (or, with partial=True, update) fee schedule request

    Tier objects are parsed but the partition check is left to the caller,
    since an update may rely on the stored fee_type.

    Args:
        data: Request JSON body
        partial: Only validate the fields present

    Returns:
        Dictionary of cleaned values for the fields present

    Raises:
        ValidationError: naming the invalid field
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    if not partial:
        _require(data, ['entity_type', 'entity_id', 'fee_type', 'tiers'])
    if partial and ('entity_type' in data or 'entity_id' in data):
        raise ValidationError("A fee schedule cannot be moved to another entity", field='entity_id')

    cleaned: Dict[str, Any] = {}

    if 'entity_type' in data:
        cleaned['entity_type'] = parse_entity_type(data['entity_type'])
    if 'entity_id' in data:
        cleaned['entity_id'] = _parse_identifier(data['entity_id'], 'entity_id')
    if 'fee_type' in data:
        cleaned['fee_type'] = parse_fee_type(data['fee_type']).value
    if 'frequency' in data:
        cleaned['frequency'] = _parse_choice(data['frequency'], FeeFrequency, 'frequency')
    if 'billing_method' in data:
        cleaned['billing_method'] = _parse_choice(data['billing_method'], BillingMethod, 'billing_method')

    if 'name' in data:
        cleaned['name'] = _parse_text(data['name'], 'name', MAX_NAME_LENGTH)
    for field in ('description', 'notes'):
        if field in data:
            cleaned[field] = _parse_text(data[field], field)

    for field in ('minimum_fee', 'maximum_fee'):
        if field in data:
            cleaned[field] = _parse_money(data[field], field, FEE_AMOUNT_PRECISION)

    minimum_fee = cleaned.get('minimum_fee')
    maximum_fee = cleaned.get('maximum_fee')
    if minimum_fee is not None and maximum_fee is not None and minimum_fee > maximum_fee:
        raise ValidationError("minimum_fee cannot exceed maximum_fee", field='minimum_fee')

    for field in ('effective_date', 'end_date'):
        if field in data:
            cleaned[field] = parse_date(data[field], field)

    effective_date = cleaned.get('effective_date')
    end_date = cleaned.get('end_date')
    if effective_date and end_date and end_date < effective_date:
        raise ValidationError("end_date cannot be before effective_date", field='end_date')

    if 'is_active' in data:
        cleaned['is_active'] = parse_bool(data['is_active'], 'is_active')

    if 'tiers' in data:
        cleaned['tiers'] = parse_tiers(data['tiers'])

    return cleaned


def validate_calculate_request(data: Any) -> Tuple[str, Decimal]:
    """
    Validate a fee calculation request: {fee_schedule_id, billable_amount}

    Returns:
        Tuple of (fee_schedule_id, billable_amount)
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    _require(data, ['fee_schedule_id', 'billable_amount'])
    fee_schedule_id = _parse_identifier(data['fee_schedule_id'], 'fee_schedule_id')
    billable_amount = to_decimal(data['billable_amount'], 'billable_amount')
    if billable_amount < 0:
        raise ValidationError("billable_amount cannot be negative", field='billable_amount')

    return fee_schedule_id, billable_amount


def validate_fee_history_request(data: Any) -> Dict[str, Any]:
    """
    Validate a fee history record request

    Returns:
        Dictionary of cleaned values
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    _require(data, ['entity_type', 'entity_id', 'billing_period_start',
                    'billing_period_end', 'billable_amount', 'fee_amount'])

    cleaned = {
        'fee_schedule_id': (_parse_identifier(data['fee_schedule_id'], 'fee_schedule_id')
                            if data.get('fee_schedule_id') else None),
        'entity_type': parse_entity_type(data['entity_type']),
        'entity_id': _parse_identifier(data['entity_id'], 'entity_id'),
        'billing_period_start': parse_date(data['billing_period_start'], 'billing_period_start'),
        'billing_period_end': parse_date(data['billing_period_end'], 'billing_period_end'),
        'billable_amount': _parse_money(data['billable_amount'], 'billable_amount', BILLABLE_AMOUNT_PRECISION),
        'fee_amount': _parse_money(data['fee_amount'], 'fee_amount', FEE_AMOUNT_PRECISION),
        'effective_rate': _parse_money(data.get('effective_rate'), 'effective_rate',
                                        EFFECTIVE_RATE_PRECISION),
        'invoice_number': _parse_text(data.get('invoice_number'), 'invoice_number', 100),
        'notes': _parse_text(data.get('notes'), 'notes'),
    }

    if cleaned['billing_period_end'] < cleaned['billing_period_start']:
        raise ValidationError("billing_period_end cannot be before billing_period_start",
                              field='billing_period_end')

    return cleaned
