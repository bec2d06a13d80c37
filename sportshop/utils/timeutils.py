from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_business_time(moment: datetime, offset_hours: int = 7) -> datetime:
    return moment + timedelta(hours=offset_hours)


def format_history_date(moment: datetime, offset_hours: int = 7) -> str:
    """Render a naive UTC timestamp as ``HH:MM:SS,MM/DD/YY`` in business local time."""
    return to_business_time(moment, offset_hours).strftime("%H:%M:%S,%m/%d/%y")
