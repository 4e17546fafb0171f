"""
Centralized time utilities for consistent timestamp handling across the
repository service. All persisted timestamps are UTC ISO-8601 strings.
"""

from datetime import datetime, timedelta
import pytz
from typing import Optional

# Display format used in logs and CLI output
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
# Format persisted in meta.json and versions.json
ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(pytz.UTC)


def to_iso(dt: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string with millisecond precision."""
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    dt = dt.astimezone(pytz.UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def iso_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return to_iso(utc_now())


def from_epoch(seconds: float) -> str:
    """Convert an st_mtime style epoch value into an ISO-8601 string."""
    return to_iso(datetime.fromtimestamp(seconds, pytz.UTC))


def parse_timestamp(timestamp_str: str) -> Optional[datetime]:
    """
    Parse a timestamp string into a datetime object with UTC timezone.

    Accepts the ISO format written by this service as well as the plain
    display format.

    Returns:
        datetime object with UTC timezone or None if parsing fails
    """
    formats_to_try = [
        ISO_FORMAT,
        "%Y-%m-%dT%H:%M:%SZ",
        TIME_FORMAT,
        "%Y-%m-%d",
    ]

    for fmt in formats_to_try:
        try:
            dt = datetime.strptime(timestamp_str, fmt)
            return pytz.UTC.localize(dt)
        except (ValueError, TypeError):
            continue

    return None


def timestamp_to_age_string(timestamp_str: str) -> str:
    """
    Convert a timestamp to a human-readable age string (e.g., "2 days ago").
    """
    dt_utc = parse_timestamp(timestamp_str)
    if dt_utc is None:
        return "unknown time ago"

    delta = utc_now() - dt_utc
    if delta < timedelta(0):
        return "just now"

    if delta.days > 365:
        years = delta.days // 365
        return f"{years} year{'s' if years != 1 else ''} ago"
    elif delta.days > 30:
        months = delta.days // 30
        return f"{months} month{'s' if months != 1 else ''} ago"
    elif delta.days > 0:
        return f"{delta.days} day{'s' if delta.days != 1 else ''} ago"
    elif delta.seconds >= 3600:
        hours = delta.seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    elif delta.seconds >= 60:
        minutes = delta.seconds // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    else:
        return "just now"
