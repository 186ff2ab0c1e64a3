from typing import Any, Optional

def mask_id(value: Optional[Any], visible: int = 8) -> str:
    """Shorten an identifier for log lines."""
    if value is None:
        return 'all'
    text = str(value)
    if len(text) <= visible:
        return text
    return text[:visible] + '...'

def as_float(value: Any, default: float = 0.0) -> float:
    """Convert a numeric store value to float, treating NULL as default."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
