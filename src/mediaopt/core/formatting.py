"""Formatting utilities for CLI display."""


def format_file_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes.

    Returns:
        Formatted string (e.g., "4.2 GB", "128.0 MB", "1.5 KB").
    """
    if size_bytes >= 1024**3:
        return f"{size_bytes / (1024**3):.1f} GB"
    elif size_bytes >= 1024**2:
        return f"{size_bytes / (1024**2):.1f} MB"
    elif size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes} B"


def format_duration(seconds: float | None) -> str:
    """Format a media duration as H:MM:SS.

    Args:
        seconds: Duration in seconds, or None if unknown.

    Returns:
        Formatted string (e.g., "1:02:03") or "—" if unknown.
    """
    if seconds is None or seconds < 0:
        return "—"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def truncate_filename(filename: str, max_length: int = 40) -> str:
    """Truncate filename preserving start and extension.

    Examples:
        >>> truncate_filename("some-very-long-movie-name.mkv", 25)
        'some-very-long-movie….mkv'
        >>> truncate_filename("short.mp4", 40)
        'short.mp4'
    """
    if not filename or len(filename) <= max_length:
        return filename

    dot_index = filename.rfind(".")
    if dot_index > 0:
        extension = filename[dot_index:]
        base = filename[:dot_index]
    else:
        extension = ""
        base = filename

    available_for_base = max_length - len(extension) - 1
    if available_for_base < 1:
        return filename[: max_length - 1] + "…"

    return base[:available_for_base] + "…" + extension
