from typing import Optional


def format_clock(seconds) -> Optional[str]:
    """Format elapsed seconds as ``HH:MM:SS`` (hours are not wrapped at 24)."""
    try:
        seconds = int(seconds)
    except (ValueError, TypeError):
        return None
    if seconds < 0:
        seconds = 0
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
