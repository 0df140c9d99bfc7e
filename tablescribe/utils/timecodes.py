"""Duration and size formatting for summaries."""

from __future__ import annotations


def format_duration(seconds: float) -> str:
    """Format seconds as '0.1s' or '3m 41s' (per-step timings)."""
    if seconds >= 60:
        m, s = divmod(int(seconds), 60)
        return f"{m}m {s:02d}s"
    return f"{seconds:.1f}s"


def format_minutes_seconds(seconds: float) -> str:
    """Format seconds as ``<m>m <s>s`` with seconds rounded to the nearest whole.

    ``125.4`` → ``"2m 5s"``; ``59.5`` → ``"1m 0s"`` (halves round up).
    """
    total = int(max(0.0, seconds) + 0.5)
    m, s = divmod(total, 60)
    return f"{m}m {s}s"


def format_bytes(size: int) -> str:
    """Format a byte count with a binary unit, e.g. ``'12.3 MB'``."""
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"
