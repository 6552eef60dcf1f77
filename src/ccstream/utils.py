"""Formatting helpers for ccstream output."""

from pathlib import Path


def compress_paths_in_text(text: str) -> str:
    """Replace home directory paths with ~ throughout the text.

    Args:
        text: Text containing paths.

    Returns:
        Text with home directory replaced by ~.
    """
    if not text:
        return ""
    home = str(Path.home())
    return text.replace(home, "~")


def truncate(text: str, max_len: int) -> str:
    """Shorten text to at most max_len characters, marking the cut with '...'.

    A max_len of 0 or less disables truncation.
    """
    if max_len <= 0 or len(text) <= max_len:
        return text
    if max_len <= 3:
        return text[:max_len]
    return text[: max_len - 3] + "..."


def format_duration_ms(duration_ms: int | None) -> str:
    """Format a millisecond duration for display.

    Args:
        duration_ms: Duration in milliseconds, or None.

    Returns:
        String like "850ms", "12.3s", "4m 05s" or "-" when unknown.
    """
    if not duration_ms:
        return "-"
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    secs = duration_ms / 1000
    if secs < 60:
        return f"{secs:.1f}s"
    mins, secs_int = divmod(int(secs), 60)
    if mins < 60:
        return f"{mins}m {secs_int:02d}s"
    hours, mins = divmod(mins, 60)
    return f"{hours}h {mins:02d}m"


def format_cost(cost: float | None) -> str:
    """Format a USD cost, keeping sub-cent precision."""
    if cost is None:
        return "-"
    if cost < 0.01:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


def format_tokens(count: int) -> str:
    """Format token count like "1.2K" or "1.5M"."""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)
