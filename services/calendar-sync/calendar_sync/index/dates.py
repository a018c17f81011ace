from datetime import date, datetime
from typing import Optional, Union

DayLike = Union[date, datetime, str]

# Display form used by the calendar screen ("05.12.2025").
DISPLAY_FORMAT = "%d.%m.%Y"


def parse_day(value: Optional[str]) -> Optional[date]:
    """Day bucket for a server date string, or None when it cannot be parsed.

    The server sends ``YYYY-MM-DDTHH:MM:SS``; bare ``YYYY-MM-DD`` and the other
    ISO-8601 forms ``fromisoformat`` understands are accepted too. The time of
    day (and any offset) is stripped without converting time zones.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def parse_selected_day(value: str) -> Optional[date]:
    if not isinstance(value, str):
        return None
    parsed = parse_day(value)
    if parsed is not None:
        return parsed
    try:
        return datetime.strptime(value.strip(), DISPLAY_FORMAT).date()
    except ValueError:
        return None


def to_day(value: DayLike) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_selected_day(value)
