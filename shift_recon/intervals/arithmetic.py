"""
Interval arithmetic over TimeSpans.

Every function here is pure. Overlap uses open-interval semantics, so a
shift ending at 12:00 and another starting at 12:00 do not overlap.

Only ``span_violation`` accepts malformed spans; the other functions assume
a well-formed span and callers must check first.
"""

from datetime import time
from typing import Optional, Tuple

from shift_recon.models.interval import TimeSpan

Window = Tuple[int, int]  # (start, end) in minutes since midnight


def minutes_of(value: time) -> int:
    """Minutes since midnight, ignoring seconds."""
    return value.hour * 60 + value.minute


def span_violation(span: TimeSpan) -> Optional[str]:
    """Return a human-readable reason if the span is malformed, else None."""
    start, end = minutes_of(span.start), minutes_of(span.end)
    if end <= start:
        return "End time must be after start time"

    if span.has_break:
        break_start, break_end = minutes_of(span.break_start), minutes_of(span.break_end)
        if break_end <= break_start:
            return "Break end must be after break start"
        if break_start < start or break_end > end:
            return "Break must fall within working hours"

    return None


def overlaps(a: TimeSpan, b: TimeSpan) -> bool:
    """Spans on the same date overlap iff a.start < b.end and b.start < a.end."""
    if a.date != b.date:
        return False
    return (
        minutes_of(a.start) < minutes_of(b.end)
        and minutes_of(b.start) < minutes_of(a.end)
    )


def duration_minutes(span: TimeSpan) -> int:
    return minutes_of(span.end) - minutes_of(span.start)


def contains_break(span: TimeSpan) -> bool:
    return span.has_break


def break_minutes(span: TimeSpan) -> int:
    if not span.has_break:
        return 0
    return minutes_of(span.break_end) - minutes_of(span.break_start)


def working_minutes(span: TimeSpan) -> int:
    """Scheduled working time: gross duration minus the break."""
    return max(0, duration_minutes(span) - break_minutes(span))


def overlap_window(a: TimeSpan, b: TimeSpan) -> Optional[Window]:
    if not overlaps(a, b):
        return None
    return (
        max(minutes_of(a.start), minutes_of(b.start)),
        min(minutes_of(a.end), minutes_of(b.end)),
    )


def overlap_minutes(a: TimeSpan, b: TimeSpan) -> int:
    window = overlap_window(a, b)
    if window is None:
        return 0
    return window[1] - window[0]


def window_within_break(window: Window, span: TimeSpan) -> bool:
    """True if the window lies entirely inside the span's break."""
    if not span.has_break:
        return False
    return (
        minutes_of(span.break_start) <= window[0]
        and window[1] <= minutes_of(span.break_end)
    )


def same_slot(a: TimeSpan, b: TimeSpan) -> bool:
    """Bit-for-bit identical start, end and break bounds on the same date."""
    return a.date == b.date and a.slot() == b.slot()
