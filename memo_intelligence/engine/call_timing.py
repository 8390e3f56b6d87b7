"""
Call date/time and duration fields for the summary template.

Recorders name files like ``20240115_1030.mp3`` or ``202401151030.m4a``; when
the name carries a date the call window is derived from it and the decoded
audio length. Otherwise the file's last-modified time is used as-is.
"""

import math
import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from domain.models import CallTiming


FILENAME_DATETIME: re.Pattern = re.compile(
    r"(?<!\d)(\d{4})(\d{2})(\d{2})(?:[_\-T ]?(\d{2})(\d{2})(\d{2})?)?(?!\d)"
)


def parse_filename_datetime(filename: str) -> Optional[Tuple[datetime, bool]]:
    """Find the first valid ``YYYYMMDD[HHmm[ss]]`` in *filename*.

    Returns:
        ``(start, has_time)`` or None when no valid date is embedded.
    """
    for match in FILENAME_DATETIME.finditer(filename or ""):
        year, month, day, hour, minute, second = match.groups()
        try:
            start = datetime(
                int(year), int(month), int(day),
                int(hour or 0), int(minute or 0), int(second or 0),
            )
        except ValueError:
            continue
        return start, hour is not None
    return None


def format_duration(duration_seconds: float) -> str:
    """Whole minutes, rounded up (``"21 min"`` for 20m01s)."""
    return f"{math.ceil(max(duration_seconds, 0.0) / 60)} min"


def derive_call_timing(
    filename: str,
    duration_seconds: float,
    modified_at: datetime,
) -> CallTiming:
    """Build the date/time and duration labels for one recording.

    Args:
        filename: Source file name (no directories needed).
        duration_seconds: Total decoded audio length.
        modified_at: File last-modified timestamp, used when the name has no date.
    """
    parsed = parse_filename_datetime(filename)

    if parsed is None:
        return CallTiming(
            datetime_label=f"{modified_at:%Y/%m/%d %H:%M}",
            duration_label=format_duration(duration_seconds),
            duration_seconds=duration_seconds,
            source="mtime",
        )

    start, has_time = parsed
    if not has_time:
        label = f"{start:%Y/%m/%d}"
    else:
        end = start + timedelta(seconds=duration_seconds)
        end_fmt = "%H:%M" if end.date() == start.date() else "%Y/%m/%d %H:%M"
        label = f"{start:%Y/%m/%d %H:%M}-{end.strftime(end_fmt)}"

    return CallTiming(
        datetime_label=label,
        duration_label=format_duration(duration_seconds),
        duration_seconds=duration_seconds,
        source="filename",
    )
