"""
Date and Time utilities

This module handles UTC to Stockholm conversion and the rolling schedule window.
The API reports times in UTC; everything shown to consumers is local wall-clock time.
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo
import logging

logger = logging.getLogger(__name__)

WINDOW_HOURS = 12
LOCAL_TIMEZONE = ZoneInfo("Europe/Stockholm")

UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
LOCAL_FORMAT = "%Y-%m-%d %H:%M:%S"
QUERY_DATE_FORMAT = "%Y-%m-%d"

UNKNOWN_TIME = "-"


def _ensure_aware(now: datetime) -> datetime:
    """Normalize now to UTC, treating naive datetimes as UTC"""
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def utc_to_local(timestamp: str | None) -> str:
    """
    Convert an API UTC timestamp to local wall-clock time

    Args:
        timestamp: UTC time like '2025-10-09T14:00:00Z'

    Returns:
        Local time like '2025-10-09 16:00:00', or UNKNOWN_TIME if the
        timestamp cannot be parsed
    """
    try:
        dt = datetime.strptime(timestamp, UTC_FORMAT)
    except (TypeError, ValueError):
        logger.debug("Unparseable UTC timestamp: %r", timestamp)
        return UNKNOWN_TIME

    local = dt.replace(tzinfo=timezone.utc).astimezone(LOCAL_TIMEZONE)
    return local.strftime(LOCAL_FORMAT)


def parse_local(value: str) -> datetime:
    """
    Parse a local wall-clock string into an aware datetime

    Raises:
        ValueError: If the string is not in LOCAL_FORMAT
    """
    return datetime.strptime(value, LOCAL_FORMAT).replace(tzinfo=LOCAL_TIMEZONE)


def window_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return the (lower, upper) bounds of the window around now"""
    now = _ensure_aware(now)
    span = timedelta(hours=WINDOW_HOURS)
    return now - span, now + span


def is_within_window(start_time_local: str | None, now: datetime) -> bool:
    """
    Check whether a program start lies within WINDOW_HOURS of now

    Both bounds are inclusive and are recomputed from now on every call.

    Args:
        start_time_local: Local start time in LOCAL_FORMAT
        now: Reference time (naive values are treated as UTC)

    Returns:
        True if the start time is inside the window, False otherwise or
        when the start time cannot be parsed
    """
    try:
        start = parse_local(start_time_local)
    except (TypeError, ValueError):
        return False

    lower, upper = window_bounds(now)
    return lower <= start <= upper


def query_days(now: datetime) -> tuple[str, str]:
    """
    Calculate the UTC calendar days covering the window around now

    The schedule API is queried by whole day, so the pair may cover more
    than the window itself; is_within_window does the precise cut.

    Returns:
        Tuple of (from_date, to_date) as 'YYYY-MM-DD'
    """
    lower, upper = window_bounds(now)
    return (
        lower.astimezone(timezone.utc).strftime(QUERY_DATE_FORMAT),
        upper.astimezone(timezone.utc).strftime(QUERY_DATE_FORMAT),
    )
