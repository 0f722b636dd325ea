"""
Timestamp parsing and formatting.

Offsets are whole seconds from the start of the video.
"""

from .errors import InvalidRange, MalformedTimestamp


def parse_offset(text: str) -> int:
    """
    Convert MM:SS or HH:MM:SS to whole seconds.

    Components are not range-checked ("90:00" is 5400 seconds), but each one
    must be a non-negative integer.

    Example:
        >>> parse_offset("01:02:03")
        3723
    """
    if not isinstance(text, str):
        raise MalformedTimestamp(f"Timestamp must be a string, got {type(text).__name__}")
    value = text.strip()
    if ":" not in value:
        raise MalformedTimestamp(f"Timestamp has no ':' separator: {text!r}")
    parts = value.split(":")
    if len(parts) not in (2, 3):
        raise MalformedTimestamp(f"Timestamp must be MM:SS or HH:MM:SS: {text!r}")
    for part in parts:
        if not (part.isascii() and part.isdigit()):
            raise MalformedTimestamp(f"Non-numeric timestamp component {part!r} in {text!r}")
    if len(parts) == 2:
        hours = 0
        minutes, seconds = (int(p) for p in parts)
    else:
        hours, minutes, seconds = (int(p) for p in parts)
    return hours * 3600 + minutes * 60 + seconds


def duration(start_text: str, end_text: str) -> int:
    """Seconds between two textual timestamps. Raises InvalidRange if end < start."""
    start = parse_offset(start_text)
    end = parse_offset(end_text)
    if end < start:
        raise InvalidRange(f"Range ends before it starts: {start_text} -> {end_text}")
    return end - start


def format_offset(seconds: int) -> str:
    """Format seconds as HH:MM:SS."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
