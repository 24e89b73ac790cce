"""
UTC timestamp utilities for LLM Mention Scanner.

All timestamps MUST be in UTC with explicit timezone markers.

This module provides:
- utc_now(): Current time as timezone-aware datetime
- utc_timestamp(): ISO 8601 timestamp string with 'Z' suffix
- scan_id_from_timestamp(): Sortable identifier for a scan batch

Examples:
    >>> from llm_mention_scanner.utils.time import utc_timestamp
    >>> utc_timestamp()
    '2025-11-02T08:30:45Z'
"""

import uuid
from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Return current time in UTC with timezone info.

    This is the canonical way to get current time in the codebase.
    Never use datetime.utcnow(), it returns a naive datetime.
    """
    return datetime.now(UTC)


def utc_timestamp(dt: datetime | None = None) -> str:
    """
    Return ISO 8601 timestamp string with 'Z' suffix.

    Format: YYYY-MM-DDTHH:MM:SSZ

    Args:
        dt: Optional timezone-aware datetime. Defaults to utc_now().

    Returns:
        str: ISO 8601 formatted timestamp in UTC
    """
    if dt is None:
        dt = utc_now()
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def scan_id_from_timestamp(dt: datetime | None = None) -> str:
    """
    Generate a scan_id from a UTC timestamp plus a short random suffix.

    Format: YYYY-MM-DDTHH-MM-SSZ-xxxxxxxx

    Two scans started in the same second still get distinct ids, and ids
    still sort chronologically.

    Args:
        dt: Optional datetime to convert. If None, uses utc_now().
            Must be timezone-aware if provided.

    Raises:
        ValueError: If dt is naive (missing timezone)

    Examples:
        >>> from datetime import datetime, timezone
        >>> fixed_time = datetime(2025, 11, 2, 8, 30, 45, tzinfo=timezone.utc)
        >>> scan_id_from_timestamp(fixed_time)[:20]
        '2025-11-02T08-30-45Z'
    """
    if dt is None:
        dt = utc_now()

    if dt.tzinfo is None:
        raise ValueError(
            "Datetime must be timezone-aware (use timezone.utc). "
            "Got naive datetime. Use utc_now() or ensure dt has tzinfo set."
        )

    return f"{dt.strftime('%Y-%m-%dT%H-%M-%SZ')}-{uuid.uuid4().hex[:8]}"
