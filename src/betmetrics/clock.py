"""Epoch-millisecond time helpers and trailing window boundaries."""

from datetime import datetime, timezone

DAY_MS = 24 * 60 * 60 * 1000

WINDOW_DAYS: dict[str, int] = {"day": 1, "week": 7, "month": 30}


def now_ms() -> int:
    """Return the current UTC time in epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def window_start(now: int, window: str, window_days: dict[str, int] | None = None) -> int:
    """
    Get the start of a trailing window ending at ``now``.

    Args:
        now: Pinned "current" time in epoch milliseconds
        window: Window label (day, week, month)
        window_days: Optional override of the window lengths in days

    Returns:
        Window start in epoch milliseconds
    """
    days_by_window = window_days if window_days is not None else WINDOW_DAYS
    # MetricsWindow members and plain labels look up the same way
    label = getattr(window, "value", window)
    if label not in days_by_window:
        raise ValueError(f"Invalid window: {window}. Must be one of {sorted(days_by_window)}")
    return now - days_by_window[label] * DAY_MS
