"""
Turn one category of the analysis document into ordered segment descriptors.

Accepted payload shapes:
    {"00:00": {"start": "00:00", "end": "00:05", "name": "Intro"}, ...}   records
    {"00:00": "Intro", "00:05": "Setup", ...}                              legacy
    [{"start_time": "00:00", "end_time": "00:05", "description": ...}]     list

Entries are sorted by parsed start; document order is never trusted.
Entries without an end run until the next entry starts, the last one
until the end of the video.
"""

import logging

from .errors import DocumentMalformed, InvalidRange, MalformedTimestamp
from .models import SegmentDescriptor
from .timecode import format_offset, parse_offset

logger = logging.getLogger("segmenter")

LABEL_KEYS = ("name", "title", "label", "description", "chapter_name")
START_KEYS = ("start", "start_time")
END_KEYS = ("end", "end_time")


def _first(record: dict, keys: tuple[str, ...]):
    for key in keys:
        if key in record and record[key] not in (None, ""):
            return record[key]
    return None


def _record_label(record: dict) -> str:
    label = _first(record, LABEL_KEYS)
    return "" if label is None else str(label).strip()


def _record_metadata(record: dict) -> dict[str, str]:
    meta: dict[str, str] = {}
    for key, value in record.items():
        if isinstance(value, (str, int, float, bool)):
            meta[str(key)] = str(value)
    return meta


def _explicit_duration(record: dict, start: int, start_text: str) -> int | None:
    end_text = _first(record, END_KEYS)
    if end_text is not None:
        end = parse_offset(end_text)
        if end < start:
            raise InvalidRange(f"Range ends before it starts: {start_text} -> {end_text}")
        return end - start

    raw = record.get("duration")
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise DocumentMalformed(f"Invalid duration {raw!r} for segment at {start_text}")
    if isinstance(raw, str) and ":" in raw:
        seconds = parse_offset(raw)
    else:
        try:
            seconds = int(float(raw))
        except (TypeError, ValueError, OverflowError):
            raise DocumentMalformed(f"Invalid duration {raw!r} for segment at {start_text}") from None
    if seconds < 0:
        raise InvalidRange(f"Negative duration {raw!r} for segment at {start_text}")
    return seconds


def _collect_entries(payload) -> list[tuple[str, object]]:
    """Return (start text, value) pairs in document order."""
    if isinstance(payload, dict):
        entries = []
        for key, value in payload.items():
            start_text = key
            if isinstance(value, dict):
                own_start = _first(value, START_KEYS)
                if own_start is not None:
                    # the key is a timestamp too and must parse
                    key_offset = parse_offset(key)
                    if parse_offset(own_start) != key_offset:
                        logger.warning("Segment key %r disagrees with its start %r; using the start", key, own_start)
                    start_text = own_start
            entries.append((start_text, value))
        return entries

    if isinstance(payload, list):
        entries = []
        for pos, item in enumerate(payload, 1):
            if not isinstance(item, dict):
                raise DocumentMalformed(f"List entry {pos} is not an object: {item!r}")
            start_text = _first(item, START_KEYS)
            if start_text is None:
                raise DocumentMalformed(f"List entry {pos} has no start time")
            entries.append((start_text, item))
        return entries

    raise DocumentMalformed(
        f"Category payload must be an object or a list, got {type(payload).__name__}"
    )


def normalize_category(payload) -> list[SegmentDescriptor]:
    """
    Validate one category payload and return descriptors sorted by start.

    Raises MalformedTimestamp if any start fails to parse (the whole category
    is rejected), InvalidRange for an end before its start, and
    DocumentMalformed for payloads of the wrong shape.
    """
    parsed: list[tuple[int, str, object]] = []
    for start_text, value in _collect_entries(payload):
        if not isinstance(value, (str, dict)):
            raise DocumentMalformed(
                f"Segment at {start_text!r} must be a label or an object, got {type(value).__name__}"
            )
        try:
            start = parse_offset(start_text)
        except MalformedTimestamp:
            logger.debug("Rejecting category: bad start %r", start_text)
            raise
        parsed.append((start, str(start_text), value))

    # sort() is stable: equal starts keep document order
    parsed.sort(key=lambda item: item[0])

    descriptors: list[SegmentDescriptor] = []
    for i, (start, start_text, value) in enumerate(parsed):
        if isinstance(value, dict):
            seg_duration = _explicit_duration(value, start, start_text)
            label = _record_label(value)
            metadata = _record_metadata(value)
        else:
            seg_duration = None
            label = value.strip()
            metadata = {}
        metadata.setdefault("start", start_text)

        if seg_duration is None and i + 1 < len(parsed):
            seg_duration = parsed[i + 1][0] - start

        descriptors.append(
            SegmentDescriptor(start=start, duration=seg_duration, label=label, metadata=metadata)
        )
    return descriptors


def apply_min_duration(
    descriptors: list[SegmentDescriptor], category: str, min_seconds: int
) -> tuple[list[SegmentDescriptor], list[SegmentDescriptor]]:
    """
    Split descriptors into (kept, rejected) by a minimum duration.
    Open-ended descriptors cannot be checked and are kept.
    """
    if min_seconds <= 0:
        return list(descriptors), []
    kept: list[SegmentDescriptor] = []
    rejected: list[SegmentDescriptor] = []
    for desc in descriptors:
        if desc.duration is not None and desc.duration < min_seconds:
            logger.warning(
                "Rejecting %s segment at %s: %ds is shorter than the %ds minimum",
                category,
                format_offset(desc.start),
                desc.duration,
                min_seconds,
            )
            rejected.append(desc)
        else:
            kept.append(desc)
    return kept, rejected
