from .date_utils import utcnow, utc_today, convert_to_date, days_in_range, range_bounds, trailing_window
from .helpers import mask_id, as_float
from .validation import (
    validate_identifiers, require_identifiers, validate_positive_quantity,
    validate_absolute_quantity, validate_choice, validate_reason, validate_thresholds
)

__all__ = [
    'utcnow',
    'utc_today',
    'convert_to_date',
    'days_in_range',
    'range_bounds',
    'trailing_window',
    'mask_id',
    'as_float',
    'validate_identifiers',
    'require_identifiers',
    'validate_positive_quantity',
    'validate_absolute_quantity',
    'validate_choice',
    'validate_reason',
    'validate_thresholds'
]
