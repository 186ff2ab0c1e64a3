from typing import Dict, Iterable, Optional

from supply_inventory.exceptions import ValidationError

MANUAL_IN_SOURCES = ('manual', 'purchase')

def validate_identifiers(**identifiers) -> Dict[str, str]:
    """Validate that required identifiers are present.

    Args:
        identifiers: Identifier values keyed by field name

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    for field, value in identifiers.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[field] = f'{field} is required'

    return errors

def require_identifiers(**identifiers) -> None:
    """Raise ValidationError when any identifier is missing."""
    errors = validate_identifiers(**identifiers)
    if errors:
        raise ValidationError(
            '; '.join(errors.values()),
            code='MISSING_IDENTIFIER',
            details=errors
        )

def validate_positive_quantity(qty) -> float:
    """Validate a restock quantity.

    Args:
        qty: Quantity to validate

    Returns:
        Quantity as float

    Raises:
        ValidationError if the quantity is not a positive number
    """
    try:
        value = float(qty)
    except (TypeError, ValueError):
        raise ValidationError(f'Quantity must be a number, got {qty!r}', code='INVALID_QUANTITY')

    if value <= 0:
        raise ValidationError('Quantity must be positive', code='INVALID_QUANTITY')

    return value

def validate_absolute_quantity(qty) -> float:
    """Coerce an adjustment target to float; sign and range are not checked."""
    try:
        return float(qty)
    except (TypeError, ValueError):
        raise ValidationError(f'Quantity must be a number, got {qty!r}', code='INVALID_QUANTITY')

def validate_choice(value: str, choices: Iterable[str], field: str) -> str:
    """Validate that a value is one of the allowed choices."""
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(
            f"{field} must be one of {', '.join(choices)}",
            code='INVALID_CHOICE',
            details={field: value}
        )
    return value

def validate_reason(reason: Optional[str]) -> str:
    """Validate the human-readable reason of a manual adjustment."""
    if reason is None or not str(reason).strip():
        raise ValidationError('A reason is required for manual adjustments', code='MISSING_REASON')
    return str(reason).strip()

def validate_thresholds(min_qty, max_qty) -> Dict[str, str]:
    """Validate min/max stock thresholds.

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if min_qty is not None and min_qty < 0:
        errors['min_qty'] = 'Minimum quantity cannot be negative'

    if max_qty is not None and max_qty < 0:
        errors['max_qty'] = 'Maximum quantity cannot be negative'

    if min_qty is not None and max_qty is not None and max_qty and max_qty < min_qty:
        errors['max_qty'] = 'Maximum quantity cannot be below minimum quantity'

    return errors
