# supply_inventory/utils/date_utils.py
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Tuple, Union

DateLike = Union[date, datetime, str]

SECONDS_PER_DAY = 24 * 60 * 60

def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form movements are stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def utc_today() -> date:
    """Current UTC date."""
    return utcnow().date()

def add_days(start_date: date, days: int) -> date:
    """Add days to a date.

    Args:
        start_date: Start date
        days: Number of days to add

    Returns:
        New date
    """
    return start_date + timedelta(days=days)

def convert_to_date(date_string: str, format_string: str = "%Y-%m-%d") -> date:
    """Convert string to date.

    Args:
        date_string: Date string
        format_string: Format string

    Returns:
        Date object
    """
    return datetime.strptime(date_string, format_string).date()

def to_datetime(value: DateLike) -> datetime:
    """Coerce a date, datetime or ISO string to a naive datetime.

    Plain dates (and date-only strings) become midnight of that day.
    Aware datetimes are converted to UTC first.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            value = convert_to_date(text)
        else:
            value = datetime.fromisoformat(text.replace('Z', '+00:00'))

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    return datetime.combine(value, time.min)

def is_date_only(value: DateLike) -> bool:
    """Whether a range bound names a whole day rather than an instant."""
    if isinstance(value, str):
        return len(value.strip()) == 10
    return not isinstance(value, datetime)

def days_in_range(from_value: DateLike, to_value: DateLike) -> int:
    """Number of days spanned by a range, rounded up.

    Args:
        from_value: Range start
        to_value: Range end

    Returns:
        ceil((to - from) in days); never negative
    """
    delta = to_datetime(to_value) - to_datetime(from_value)
    days = math.ceil(delta.total_seconds() / SECONDS_PER_DAY)
    return max(0, days)

def range_bounds(from_value: DateLike, to_value: DateLike) -> Tuple[datetime, datetime]:
    """Query bounds for an inclusive date range.

    Returns:
        (start, end_exclusive); a date-only end covers that whole day
    """
    start = to_datetime(from_value)
    end = to_datetime(to_value)

    if is_date_only(to_value):
        end = end + timedelta(days=1)
    else:
        end = end + timedelta(microseconds=1)

    return start, end

def trailing_window(days: int, end_date: date = None) -> Tuple[date, date]:
    """Get the (from, to) dates of a window ending today.

    Args:
        days: Window length in days
        end_date: Optional end date (defaults to today, UTC)

    Returns:
        Tuple with start and end dates
    """
    end_date = end_date or utc_today()
    return add_days(end_date, -days), end_date

def date_sequence(start_date: date, end_date: date) -> List[date]:
    """Every calendar day from start_date through end_date."""
    return [add_days(start_date, i) for i in range((end_date - start_date).days + 1)]
