"""Value parsing helpers shared by the result formatter and the sorter.

Cells reach the sorter as display strings, so recognising numbers and
timestamps in text is the only type information available there.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

NUMERIC_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")

# Characters hinting that a value may be a date or timestamp
DATE_HINT_CHARS = ("-", ":", "T")

_DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S",  # ISO 8601: 2024-01-15T10:30:00
    "%Y-%m-%dT%H:%M:%S.%f",  # ISO with microseconds
    "%Y-%m-%d %H:%M:%S",  # SQL format: 2024-01-15 10:30:00
    "%Y-%m-%d %H:%M:%S.%f",  # SQL with microseconds
    "%Y-%m-%d %H:%M",  # Without seconds
    "%d/%m/%Y %H:%M:%S",  # EU format: 15/01/2024 10:30:00
    "%m/%d/%Y %H:%M:%S",  # US format: 01/15/2024 10:30:00
]

_DATE_FORMATS = [
    "%Y-%m-%d",  # ISO: 2024-01-15
    "%d-%m-%Y",  # EU with dashes: 15-01-2024
    "%m-%d-%Y",  # US with dashes: 01-15-2024
]


def parse_decimal(value: str) -> Decimal | None:
    """Parse an integer or decimal literal, None if it is not one."""
    if not NUMERIC_PATTERN.match(value):
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def has_date_hint(value: str) -> bool:
    return any(ch in value for ch in DATE_HINT_CHARS)


def parse_timestamp(value: str) -> datetime | None:
    """Try to parse a timestamp from string using ISO 8601 and common formats.

    Timezone-aware results are converted to naive UTC so that any two
    parsed values can be compared.

    Args:
        value: String to parse

    Returns:
        datetime object if successful, None otherwise
    """
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not value:
        return None

    parsed = None
    candidate = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        for fmt in _DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_iso(value: date) -> str:
    """ISO-8601 text for dates, times and timestamps"""
    return value.isoformat()


def format_size(size: int) -> str:
    """Human readable byte count, e.g. 1536 -> '1.5 KB'"""
    units = ["B", "KB", "MB", "GB"]
    idx = 0
    value = float(size)
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    return f"{value:.0f} {units[idx]}" if idx == 0 else f"{value:.1f} {units[idx]}"
