from datetime import date

import pytest

from clubsync.rules.interval_math import (
    BookingSlot,
    TimeInterval,
    find_booking_conflicts,
    is_valid_time,
    overlaps,
    to_minutes,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("12:30", 750),
        ("10", 600),
        ("00:00", 0),
        ("23:59", 1439),
        ("14:30:00", 870),
        (" 08:30 ", 510),
        (None, 0),
        ("", 0),
        ("noon", 0),
        ("12:xx", 0),
        ("25:00", 0),
        ("10:75", 0),
        ("1:2:3:4", 0),
        ("12:30:zz", 0),
        ("12:30:75", 0),
        ("1_0", 0),
        ("1_0:00", 0),
        ("\u0661\u0662:30", 0),
        ("12:3", 0),
        ("-1:30", 0),
    ],
)
def test_to_minutes(text, expected):
    assert to_minutes(text) == expected


def test_is_valid_time():
    assert is_valid_time("09:15")
    assert is_valid_time("23:59:59")
    assert not is_valid_time("24:00")
    assert not is_valid_time("10")
    assert not is_valid_time(None)
    assert not is_valid_time("\u0661\u0662:30")


def test_overlap_basic_cases():
    assert overlaps(60, 120, 60, 120) is True
    assert overlaps(60, 120, 90, 150) is True
    assert overlaps(60, 240, 90, 150) is True
    assert overlaps(60, 120, 120, 180) is False
    assert overlaps(60, 120, 180, 240) is False


def test_zero_length_never_overlaps():
    assert overlaps(60, 60, 60, 120) is False
    assert overlaps(60, 60, 60, 60) is False
    assert overlaps(0, 120, 90, 90) is False


def test_cross_midnight():
    assert overlaps(1380, 60, 0, 120) is True
    assert overlaps(1380, 60, 480, 600) is False
    assert overlaps(1380, 60, 0, 30) is True
    assert overlaps(1380, 60, 1400, 1430) is True
    assert overlaps(1380, 60, 1320, 1380) is False
    assert overlaps(1380, 60, 1200, 120) is True


def test_wrapping_to_midnight_exactly():
    # 23:00 - 00:00 occupies only the last hour of the day
    assert overlaps(1380, 0, 0, 60) is False
    assert overlaps(1380, 0, 1410, 1420) is True


def test_overlap_is_symmetric():
    points = range(0, 1440, 120)
    for a_start in points:
        for a_end in points:
            for b_start in points:
                for b_end in points:
                    assert overlaps(a_start, a_end, b_start, b_end) == overlaps(
                        b_start, b_end, a_start, a_end
                    )


def test_time_interval_properties():
    overnight = TimeInterval.from_strings("23:00", "01:00")

    assert overnight.is_wrapping
    assert not overnight.is_empty
    assert overnight.duration_minutes == 120
    assert overnight.segments() == [(1380, 1440), (0, 60)]
    assert overnight.overlaps(TimeInterval(0, 120))
    assert TimeInterval(600, 600).is_empty
    assert TimeInterval(600, 600).duration_minutes == 0


def test_time_interval_rejects_out_of_range():
    with pytest.raises(ValueError):
        TimeInterval(0, 1440)


def _slot(booking_id, start, end, *, resource="bay-1", day=date(2026, 10, 20), status="confirmed"):
    return BookingSlot(
        booking_id=booking_id,
        resource_id=resource,
        booking_date=day,
        interval=TimeInterval.from_strings(start, end),
        status=status,
    )


def test_find_booking_conflicts():
    candidate = _slot(None, "10:00", "11:00", status="pending")
    existing = [
        _slot(1, "10:30", "11:30"),
        _slot(2, "11:00", "12:00"),
        _slot(3, "10:00", "11:00", resource="bay-2"),
        _slot(4, "10:00", "11:00", day=date(2026, 10, 21)),
        _slot(5, "09:00", "10:30", status="cancelled"),
        _slot(6, "09:30", "10:15", status="Attended"),
    ]

    conflicts = find_booking_conflicts(candidate, existing)

    assert [slot.booking_id for slot in conflicts] == [1, 6]


def test_booking_does_not_conflict_with_itself():
    booking = _slot(7, "20:00", "22:00")

    assert find_booking_conflicts(booking, [booking]) == []


def test_overnight_booking_conflict():
    candidate = _slot(None, "23:00", "01:00")

    conflicts = find_booking_conflicts(candidate, [_slot(8, "00:30", "02:00"), _slot(9, "08:00", "10:00")])

    assert [slot.booking_id for slot in conflicts] == [8]
