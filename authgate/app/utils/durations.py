"""
utils/durations.py — "<digits><unit>" duration strings.

Token lifetimes and the verification window are configured as short strings
such as "15m", "2h" or "3d". They are parsed once, at startup, by
AuthSettings.from_config(); a malformed value stops the app from starting.
"""

from __future__ import annotations

import re

_DURATION_RE = re.compile(r"(\d+)([mhd])", re.IGNORECASE | re.ASCII)

_UNIT_MS = {
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}


class DurationFormatError(ValueError):
    """Raised for any duration string that is not digits followed by m, h or d."""


def milliseconds_from_duration(duration: str) -> int:
    """
    Converts a duration string to milliseconds.

        >>> milliseconds_from_duration("15m")
        900000
        >>> milliseconds_from_duration("2H")
        7200000

    Raises:
      DurationFormatError — anything other than ^\\d+[mhd]$ (case-insensitive).
    """
    match = _DURATION_RE.fullmatch(duration) if isinstance(duration, str) else None
    if match is None:
        raise DurationFormatError(
            f"Invalid duration format {duration!r}. Use a number followed by "
            '"m" for minutes, "h" for hours, or "d" for days, e.g. "15m", "2h", "3d".'
        )

    value = int(match.group(1))
    unit = match.group(2).lower()
    return value * _UNIT_MS[unit]
