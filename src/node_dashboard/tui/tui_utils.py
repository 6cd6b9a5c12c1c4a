"""TUI utility functions for formatting and display helpers."""

import shutil
from datetime import UTC, datetime

# Placeholder cell for a missing optional value
PLACEHOLDER = ("-", "bright_black")

_NANOS_PER_SECOND = 1_000_000_000


def format_time_unit(nanos: int | float) -> str:
    """
    Format a duration in nanoseconds using the largest fitting unit.

    Args:
        nanos: Duration in nanoseconds

    Returns:
        Two decimals for seconds, milliseconds and microseconds, integer nanoseconds

    Examples:
        >>> format_time_unit(1_500_000_000)
        '1.50s'
        >>> format_time_unit(2_340_000)
        '2.34ms'
        >>> format_time_unit(999)
        '999ns'
    """
    magnitude = abs(nanos)
    if magnitude >= 1_000_000_000:
        return f"{nanos / 1_000_000_000:.2f}s"
    if magnitude >= 1_000_000:
        return f"{nanos / 1_000_000:.2f}ms"
    if magnitude >= 1_000:
        return f"{nanos / 1_000:.2f}μs"
    return f"{int(nanos)}ns"


def time_style(nanos: int | float) -> str:
    """
    Colour for a latency: plain below 20ms, orange below 50ms, red above.

    Examples:
        >>> time_style(5_000_000)
        ''
        >>> time_style(30_000_000)
        'dark_orange'
        >>> time_style(80_000_000)
        'red'
    """
    if nanos < 20_000_000:
        return ""
    if nanos < 50_000_000:
        return "dark_orange"
    return "red"


def time_cell(nanos: int | None, style: str | None = None) -> tuple[str, str]:
    """Cell for an optional latency, the placeholder when it is missing."""
    if nanos is None:
        return PLACEHOLDER
    return format_time_unit(nanos), time_style(nanos) if style is None else style


def format_clock(nanos: int | None) -> str:
    """
    Format a unix timestamp in nanoseconds as a UTC wall clock HH:MM:SS.

    Examples:
        >>> format_clock(0)
        '00:00:00'
        >>> format_clock(3_723_000_000_000)
        '01:02:03'
    """
    if not nanos:
        return "00:00:00"
    moment = datetime.fromtimestamp(nanos / _NANOS_PER_SECOND, tz=UTC)
    return moment.strftime("%H:%M:%S")


def short_hash(value: str, keep: int = 6) -> str:
    """
    Shorten a block or operation hash to its first and last characters.

    Examples:
        >>> short_hash("BLockGenesisGenesisGenesisGenesis")
        'BLockG..enesis'
        >>> short_hash("abc")
        'abc'
    """
    if len(value) <= keep * 2 + 2:
        return value
    return f"{value[:keep]}..{value[-keep:]}"


def truncate_text(text: str, max_len: int) -> str:
    """
    Truncate text to max length, adding ellipsis if needed.

    Args:
        text: Text to truncate
        max_len: Maximum length including ellipsis

    Returns:
        Truncated text with "..." suffix if text exceeds max_len

    Examples:
        >>> truncate_text("short", 10)
        'short'
        >>> truncate_text("this is a long text", 10)
        'this is...'
    """
    if len(text) <= max_len:
        return text

    if max_len <= 3:
        return "..."[:max_len]

    return text[: max_len - 3] + "..."


def format_bytes(count: float) -> str:
    """
    Human readable byte count.

    Examples:
        >>> format_bytes(512)
        '512 B'
        >>> format_bytes(2048)
        '2.00 KiB'
    """
    value = float(count)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(value) < 1024 or unit == "GiB":
            return f"{int(value)} B" if unit == "B" else f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} GiB"


def get_terminal_size() -> tuple[int, int]:
    """
    Get terminal size as (columns, rows) tuple.

    Returns:
        Tuple of (columns, rows), defaults to (80, 24) if unavailable
    """
    try:
        size = shutil.get_terminal_size(fallback=(80, 24))
        return (size.columns, size.lines)
    except OSError:
        return (80, 24)
