"""Date-time cell codec.

Tables store combined date-times as ``dd-MMM-yyyy h:mm:ss a``
(``21-Oct-2026 9:00:00 AM``) and dates as ``dd-MMM-yyyy``.
"""

from datetime import date, datetime, time

from clinic_ledger.core.exceptions import ValidationException

DATE_TIME_PARSE_FORMAT = "%d-%b-%Y %I:%M:%S %p"
DATE_FORMAT = "%d-%b-%Y"


def parse_date_time(value: str) -> datetime:
    """Parse a date-time cell."""
    try:
        return datetime.strptime(value.strip(), DATE_TIME_PARSE_FORMAT)
    except ValueError as e:
        raise ValidationException(f"Invalid date-time cell {value!r}") from e


def format_date_time(value: datetime) -> str:
    """Format a date-time cell (hour is not zero padded)."""
    hour = value.hour % 12 or 12
    return f"{value:%d-%b-%Y} {hour}:{value:%M:%S} {value:%p}"


def parse_date(value: str) -> date:
    """Parse a date cell."""
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as e:
        raise ValidationException(f"Invalid date cell {value!r}") from e


def format_date(value: date) -> str:
    """Format a date cell."""
    return value.strftime(DATE_FORMAT)


def join_date_time(day: date, at: time) -> datetime:
    """Combine a date and a time, dropping sub-second precision."""
    return datetime.combine(day, at.replace(microsecond=0))


def is_upcoming(value: datetime, now: datetime) -> bool:
    """Later today or on a future date."""
    return (value.date() == now.date() and value.time() > now.time()) or value.date() > now.date()
