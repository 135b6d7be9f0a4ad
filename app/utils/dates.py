"""
Date helpers for values read from and written to the maintenance sheet.

Cells arrive in one of three shapes:
    - a numeric serial day count (spreadsheet epoch)
    - a ``Date(y,m,d[,h,mi,s])`` literal from the query endpoint, month 0-based
    - a plain text date typed into the sheet
"""
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

# Days between the spreadsheet serial epoch (1899-12-30) and 1970-01-01
SERIAL_EPOCH_OFFSET = 25569
SECONDS_PER_DAY = 86400
UNIX_EPOCH = datetime(1970, 1, 1)

DISPLAY_FORMAT = "%d/%m/%Y"
SHEET_DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"

DATE_LITERAL_RE = re.compile(
    r"Date\((\d{4}),\s*(\d{1,2}),\s*(\d{1,2})(?:,\s*(\d{1,2}))?(?:,\s*(\d{1,2}))?(?:,\s*(\d{1,2}))?\)"
)

TEXT_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


def serial_to_datetime(serial: float) -> datetime:
    seconds = (serial - SERIAL_EPOCH_OFFSET) * SECONDS_PER_DAY
    return UNIX_EPOCH + timedelta(seconds=seconds)


def datetime_to_serial(value: Union[date, datetime]) -> float:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    seconds = (value - UNIX_EPOCH).total_seconds()
    return seconds / SECONDS_PER_DAY + SERIAL_EPOCH_OFFSET


def parse_sheet_datetime(value: Any) -> Optional[datetime]:
    """Parse any supported cell shape into a naive datetime, or None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return serial_to_datetime(float(value))
        except OverflowError:
            return None

    text = str(value).strip()
    match = DATE_LITERAL_RE.search(text)
    if match:
        year, month, day = int(match.group(1)), int(match.group(2)) + 1, int(match.group(3))
        hour, minute, second = (int(g) if g else 0 for g in match.group(4, 5, 6))
        try:
            return datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None

    for fmt in TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_display_date(value: Any) -> str:
    """Normalize a cell value to DD/MM/YYYY. Unparseable text is returned unchanged."""
    if value is None or value == "":
        return ""
    parsed = parse_sheet_datetime(value)
    if parsed is None:
        return str(value)
    return parsed.strftime(DISPLAY_FORMAT)


def format_sheet_datetime(value: Optional[datetime] = None) -> str:
    """Timestamp format written back to the sheet: DD/MM/YYYY HH:MM:SS."""
    if value is None:
        value = datetime.now()
    return value.strftime(SHEET_DATETIME_FORMAT)


def format_sheet_date(value: Union[str, date, datetime, None]) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, (date, datetime)):
        return value.strftime(DISPLAY_FORMAT)
    parsed = parse_sheet_datetime(value)
    if parsed is None:
        return str(value)
    return parsed.strftime(DISPLAY_FORMAT)
