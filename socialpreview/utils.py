"""Small formatting helpers shared by the services."""

from __future__ import annotations

_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: int | float) -> str:
    """Return a human readable size using 1024-based units."""

    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    if unit == 0:
        return f"{int(value)} {_UNITS[unit]}"
    return f"{value:.1f} {_UNITS[unit]}"


__all__ = ["format_bytes"]
