"""Value codecs shared by the resolver, the dispatchers and the formatters.

Every attribute crosses the daemon boundary as a string. Each semantic type
(list, unsigned integer, duration) has exactly one encoder here so the wire
form and the displayed form never drift apart between commands.
"""

from __future__ import annotations

import re
from typing import Iterable, List

from .errors import UsageError

UNLIMITED_UINT32 = 2**32 - 1

# Largest duration protobuf can represent; the daemon uses it to mean "no limit".
MAX_DURATION_SECONDS = 315_576_000_000

BYTES_PER_MB = 1024 * 1024

_TIME_LIMIT_PATTERN = re.compile(r"^(?:(?P<days>[^-]*)-)?(?P<hours>[^:]*):(?P<minutes>[^:]*):(?P<seconds>[^:]*)$")


def split_list(value: str) -> List[str]:
    """Split a comma separated flag value, dropping blanks and surrounding spaces."""
    return [item.strip() for item in value.split(",") if item.strip()]


def join_list(items: Iterable[str]) -> str:
    return ",".join(items)


def encode_uint(value: int, *, name: str = "value") -> str:
    """Return the wire form of a non-negative integer.

    Raises:
        UsageError: If ``value`` is negative or not an integer.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise UsageError(f"{name} must be a non-negative integer, got {value!r}")
    return str(value)


def encode_duration(seconds: int, *, name: str = "duration") -> str:
    """Return the wire form of a duration, in whole seconds."""
    return encode_uint(seconds, name=name)


def format_duration(seconds: int) -> str:
    """Render a duration as ``D-HH:MM:SS``, or ``unlimited`` for the sentinel.

    Examples:
        >>> format_duration(93784)
        '1-02:03:04'
        >>> format_duration(MAX_DURATION_SECONDS)
        'unlimited'
    """
    if seconds >= MAX_DURATION_SECONDS:
        return "unlimited"
    seconds = max(int(seconds), 0)
    days, seconds = divmod(seconds, 24 * 3600)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    return f"{days}-{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_limit(value: int) -> str:
    """Render a job/CPU limit, showing the 32-bit sentinel as ``unlimited``."""
    if value >= UNLIMITED_UINT32:
        return "unlimited"
    return str(value)


def bytes_to_mb(value: int) -> int:
    return int(value) // BYTES_PER_MB


def parse_time_limit(value: str) -> int:
    """Parse ``[D-]HH:MM:SS`` into seconds.

    Raises:
        UsageError: If the string does not match or a component is not a number.
    """
    match = _TIME_LIMIT_PATTERN.match(value.strip())
    if not match:
        raise UsageError(f"Time format error: {value!r}, expected [D-]HH:MM:SS")

    days = 0
    if match.group("days"):
        days = _parse_component(match.group("days"), "day")
    hours = _parse_component(match.group("hours"), "hour")
    minutes = _parse_component(match.group("minutes"), "minute")
    seconds = _parse_component(match.group("seconds"), "second")
    return 24 * 3600 * days + 3600 * hours + 60 * minutes + seconds


def _parse_component(text: str, label: str) -> int:
    if not text.isdigit():
        raise UsageError(f"The {label} time format error: {text!r}")
    return int(text)
