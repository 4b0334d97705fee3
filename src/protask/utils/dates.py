"""Date helpers shared by the models and the view pipeline."""

from __future__ import annotations

from datetime import date, datetime


def parse_due_date(value: str | date | None) -> date | None:
    """Parse a due date into a calendar date.

    Accepts ``YYYY-MM-DD`` strings, full ISO timestamps (time of day is
    dropped) and date/datetime objects. Anything else yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def timestamp_or_zero(value: datetime | None) -> float:
    """Epoch seconds for a timestamp, 0.0 when it is missing."""
    if value is None:
        return 0.0
    return value.timestamp()
