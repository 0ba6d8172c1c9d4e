from datetime import datetime, timezone


def _as_utc(dt: datetime) -> datetime:
    # naive datetimes are considered to be UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_epoch(dt: datetime) -> int:
    """Unix epoch seconds, the timestamp format of request bodies and filters."""
    return int(_as_utc(dt).timestamp())


def to_epoch_micro(dt: datetime) -> int:
    """Unix epoch microseconds, only used by the logs endpoint."""
    delta = _as_utc(dt) - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
