from datetime import datetime, timedelta

_ZERO = timedelta(0)
_MILLISECOND = timedelta(milliseconds=1)


def elapsed(start: datetime, finish: datetime) -> timedelta:
    return max(finish - start, _ZERO)


def format_seconds(duration: timedelta) -> str:
    """Render seconds with millisecond resolution; a zero span is just ``0``."""
    millis = duration // _MILLISECOND
    if millis <= 0:
        return "0"
    seconds, millis = divmod(millis, 1000)
    return f"{seconds}.{millis:03d}"


def format_timestamp(instant: datetime) -> str:
    # naive instants are taken as local wall-clock time already
    local = instant.astimezone() if instant.tzinfo is not None else instant
    return local.replace(tzinfo=None, microsecond=0).isoformat()
