"""
Time-of-day arithmetic and overlap detection.

Intervals are minute-of-day pairs on a 1440-minute clock. An interval whose
end is before its start wraps past midnight; start == end occupies nothing.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

MINUTES_PER_DAY = 1440

# Booking statuses that hold the resource.
OCCUPYING_STATUSES = frozenset({"pending", "approved", "confirmed", "attended"})

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d(:[0-5]\d)?$", re.ASCII)

# Lenient form accepted by to_minutes: "HH", "HH:MM" or "HH:MM:SS".
_CLOCK_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2})(?::(\d{2}))?)?$", re.ASCII)


def is_valid_time(text: str | None) -> bool:
    """Strict "HH:MM[:SS]" check for callers that must reject bad input."""
    return isinstance(text, str) and bool(_TIME_PATTERN.match(text.strip()))


def to_minutes(text: str | None) -> int:
    """
    Parse "HH:MM", "HH:MM:SS" or "HH" into minutes after midnight.

    Returns 0 for missing or malformed input. Callers that must reject bad
    input validate the format before calling.
    """
    if not text or not isinstance(text, str):
        return 0

    match = _CLOCK_PATTERN.match(text.strip())
    if match is None:
        return 0

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    if not (hours <= 23 and minutes <= 59 and seconds <= 59):
        return 0
    return hours * 60 + minutes


def _segments(start: int, end: int) -> list[tuple[int, int]]:
    if start == end:
        return []
    if end > start:
        return [(start, end)]
    segments = [(start, MINUTES_PER_DAY)]
    if end > 0:
        segments.append((0, end))
    return segments


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test that understands intervals crossing midnight."""
    for seg_a_start, seg_a_end in _segments(a_start, a_end):
        for seg_b_start, seg_b_end in _segments(b_start, b_end):
            if seg_a_start < seg_b_end and seg_b_start < seg_a_end:
                return True
    return False


@dataclass(frozen=True, slots=True)
class TimeInterval:
    start: int
    end: int

    def __post_init__(self):
        for value in (self.start, self.end):
            if not 0 <= value < MINUTES_PER_DAY:
                raise ValueError(f"minute of day out of range: {value}")

    @classmethod
    def from_strings(cls, start: str | None, end: str | None) -> "TimeInterval":
        return cls(to_minutes(start), to_minutes(end))

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    @property
    def is_wrapping(self) -> bool:
        return self.end < self.start

    @property
    def duration_minutes(self) -> int:
        return sum(end - start for start, end in self.segments())

    def segments(self) -> list[tuple[int, int]]:
        return _segments(self.start, self.end)

    def overlaps(self, other: "TimeInterval") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)


@dataclass(frozen=True, slots=True)
class BookingSlot:
    """A booking's claim on a resource for part of one day."""

    booking_id: str | int | None
    resource_id: str | int
    booking_date: date
    interval: TimeInterval
    status: str = "pending"

    @property
    def is_occupying(self) -> bool:
        return (self.status or "").lower() in OCCUPYING_STATUSES


def find_booking_conflicts(
    candidate: BookingSlot, existing: Iterable[BookingSlot]
) -> list[BookingSlot]:
    """Existing occupying bookings on the same resource and day that overlap candidate."""
    conflicts = []
    for slot in existing:
        if candidate.booking_id is not None and slot.booking_id == candidate.booking_id:
            continue
        if slot.resource_id != candidate.resource_id or slot.booking_date != candidate.booking_date:
            continue
        if not slot.is_occupying:
            continue
        if slot.interval.overlaps(candidate.interval):
            conflicts.append(slot)
    return conflicts
