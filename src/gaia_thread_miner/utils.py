"""
Utility functions for Gaia Thread Miner.

This module provides helpers for input validation, timestamp normalisation
and writing JSON output files.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import orjson

from .errors import ValidationError

# Formats the forum uses for post timestamps, tried after ISO 8601
TIMESTAMP_FORMATS = (
    "%a %b %d, %Y %I:%M %p",   # Fri Apr 11, 2025 6:30 pm
    "%a %b %d, %Y %I:%M%p",    # Fri Apr 11, 2025 6:30pm
    "%b %d, %Y %I:%M %p",      # Apr 11, 2025 6:30 pm
    "%b %d, %Y %I:%M%p",       # Apr 11, 2025 6:30pm
    "%B %d, %Y %I:%M %p",      # April 11, 2025 6:30 pm
    "%m/%d/%Y %I:%M %p",       # 04/11/2025 6:30 pm
    "%m/%d/%Y %H:%M",          # 04/11/2025 18:30
    "%b %d, %Y",               # Apr 11, 2025
)

_THREAD_ID_RE = re.compile(r"^[0-9]+$")


def parse_thread_id(raw_id: Any) -> int:
    """
    Validate a raw thread identifier.

    Args:
        raw_id: Identifier as received from the caller (e.g. "42")

    Returns:
        The identifier as a positive integer

    Raises:
        ValidationError: If raw_id is not a base-10 positive integer

    Example:
        parse_thread_id(" 42 ")  # 42
        parse_thread_id("42abc")  # raises ValidationError
    """
    text = raw_id.strip() if isinstance(raw_id, str) else ""
    if not _THREAD_ID_RE.match(text):
        raise ValidationError(f"Invalid ID provided: {raw_id!r}")

    thread_id = int(text, 10)
    if thread_id < 1:
        raise ValidationError(f"Invalid ID provided: {raw_id!r}")
    return thread_id


def parse_timestamp(text: str) -> Optional[datetime]:
    """
    Parse a post timestamp as rendered by the forum.

    ISO 8601 is tried first (a trailing "Z" is accepted), then the display
    formats in TIMESTAMP_FORMATS. Naive results are taken to be UTC.

    Returns:
        An aware datetime in UTC, or None if no format matched
    """
    value = " ".join(text.split())
    if not value:
        return None

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        for fmt in TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_utc_iso(moment: datetime) -> str:
    """
    Format a datetime as a UTC ISO 8601 string with millisecond precision.

    Example:
        to_utc_iso(datetime(2025, 4, 11, 18, 30, tzinfo=timezone.utc))
        # Returns: "2025-04-11T18:30:00.000Z"
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def write_json_atomic(path: Union[str, Path], data: Any) -> Path:
    """
    Write data as indented JSON using a temp file + rename.

    A crash mid-write leaves the previous file intact rather than a
    truncated one.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
    tmp.replace(path)
    return path
