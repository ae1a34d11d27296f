from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_datetimes(values: dict) -> dict:
    return {key: ensure_utc(value) if isinstance(value, datetime) else value for key, value in values.items()}


def month_label(dt: datetime) -> str:
    return dt.strftime("%B %Y")
