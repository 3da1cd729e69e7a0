"""Clock-time parsing and slot compatibility.

Times are free text coming from the sales sheet ("10:00 AM", "2:30pm").
Anything that cannot be parsed is treated as compatible: formatting noise
must never block a placement.
"""
from __future__ import annotations

import re
from typing import Iterable

BUFFER_MINUTES = 30

_CLOCK = r"(\d{1,2}):(\d{2})\s*([AaPp][Mm])"
_CLOCK_RE = re.compile(_CLOCK)
_WINDOW_RE = re.compile(rf"{_CLOCK}\s*-\s*{_CLOCK}")


def _to_minutes(hour: str, minute: str, meridiem: str) -> int | None:
    hours = int(hour)
    minutes = int(minute)
    if not 1 <= hours <= 12 or minutes > 59:
        return None
    meridiem = meridiem.upper()
    if meridiem == "PM" and hours != 12:
        hours += 12
    elif meridiem == "AM" and hours == 12:
        hours = 0
    return hours * 60 + minutes


def parse_clock(value: str | None) -> int | None:
    """Return minutes since midnight for an ``H:MM AM|PM`` string."""

    if not value:
        return None
    match = _CLOCK_RE.search(value)
    if not match:
        return None
    return _to_minutes(*match.groups())


def parse_window(value: str | None) -> tuple[int, int] | None:
    """Return ``(start, end)`` minutes for a ``"9:00 AM - 11:00 AM"`` window."""

    if not value:
        return None
    match = _WINDOW_RE.search(value)
    if not match:
        return None
    groups = match.groups()
    start = _to_minutes(*groups[:3])
    end = _to_minutes(*groups[3:])
    if start is None or end is None:
        return None
    return start, end


def is_compatible(requested_time: str | None, slot_window: str) -> bool:
    requested = parse_clock(requested_time)
    if requested is None:
        return True
    window = parse_window(slot_window)
    if window is None:
        return True
    start, end = window
    return start - BUFFER_MINUTES <= requested <= end + BUFFER_MINUTES


def compatible_slots(requested_time: str | None, slots: Iterable[str]) -> list[str]:
    """Slots a requested time fits into, in configured order."""

    return [slot for slot in slots if is_compatible(requested_time, slot)]
