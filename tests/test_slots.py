"""Tests for reschedule slot generation and the modification cutoff."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from wellness_portal.domain.appointments.slots import (
    Slot,
    StaffAvailability,
    can_modify,
    generate_reschedule_slots,
    overlaps,
)

SAST = ZoneInfo("Africa/Johannesburg")


@dataclass
class Appt:
    id: str
    start_time: datetime
    duration: int
    staff_id: str = "staff-1"
    staff_name: str = "Thandi Mokoena"
    status: str = "scheduled"


def local(y, m, d, hh, mm=0):
    return datetime(y, m, d, hh, mm, tzinfo=SAST)


class TestSlotGenerator:
    """Slot generation for one appointment on one day."""

    def test_confirmed_appointment_two_days_out_gives_fifteen_slots(self):
        """Same-day options exclude only the current start time."""
        now = local(2025, 6, 2, 10)
        appt = Appt("a1", now + timedelta(hours=48), 60, status="confirmed")

        slots = list(generate_reschedule_slots(date(2025, 6, 4), appt, clock=lambda: now, tz=SAST))

        assert len(slots) == 15
        assert all(s.end_time - s.start_time == timedelta(minutes=60) for s in slots)
        assert "10-0" not in [s.id for s in slots]

    def test_full_day_has_sixteen_candidates_from_nine_to_half_four(self):
        now = local(2025, 6, 1, 12)
        appt = Appt("a1", local(2025, 6, 9, 9), 45)

        slots = list(generate_reschedule_slots(date(2025, 6, 5), appt, clock=lambda: now, tz=SAST))

        assert len(slots) == 16
        assert slots[0].start_time == local(2025, 6, 5, 9)
        assert slots[-1].start_time == local(2025, 6, 5, 16, 30)
        assert slots[-1].id == "16-30"
        # End times are not clipped to closing time
        assert slots[-1].end_time == local(2025, 6, 5, 17, 15)

    def test_slots_at_or_before_now_are_excluded(self):
        now = local(2025, 6, 2, 12)
        appt = Appt("a1", local(2025, 6, 10, 9), 30)

        slots = list(generate_reschedule_slots(date(2025, 6, 2), appt, clock=lambda: now, tz=SAST))

        assert all(s.start_time > now for s in slots)
        # 12:00 itself is not offered; 12:30 is the first option
        assert slots[0].id == "12-30"
        assert len(slots) == 9

    def test_past_day_yields_nothing(self):
        now = local(2025, 6, 2, 8)
        appt = Appt("a1", local(2025, 6, 10, 9), 30)

        assert list(generate_reschedule_slots(date(2025, 6, 1), appt, clock=lambda: now, tz=SAST)) == []

    def test_slots_are_ascending_and_carry_staff(self):
        now = local(2025, 6, 1, 8)
        appt = Appt("a1", local(2025, 6, 10, 9), 60, staff_id="staff-9", staff_name="Lerato")

        slots = list(generate_reschedule_slots(date(2025, 6, 3), appt, clock=lambda: now, tz=SAST))

        starts = [s.start_time for s in slots]
        assert starts == sorted(starts)
        assert {s.staff_id for s in slots} == {"staff-9"}
        assert {s.staff_name for s in slots} == {"Lerato"}

    def test_same_inputs_and_clock_give_same_sequence(self):
        now = local(2025, 6, 2, 11, 15)
        appt = Appt("a1", local(2025, 6, 2, 14), 60)

        first = list(generate_reschedule_slots(date(2025, 6, 2), appt, clock=lambda: now, tz=SAST))
        second = list(generate_reschedule_slots(date(2025, 6, 2), appt, clock=lambda: now, tz=SAST))

        assert first == second

    def test_clock_is_read_once_per_call(self):
        readings = iter([local(2025, 6, 2, 9), local(2025, 6, 2, 16)])
        appt = Appt("a1", local(2025, 6, 10, 9), 30)

        slots = list(
            generate_reschedule_slots(date(2025, 6, 2), appt, clock=lambda: next(readings), tz=SAST)
        )

        # Only the first reading (09:00) applies; a second read would have dropped most slots
        assert len(slots) == 15

    def test_generator_is_lazy(self):
        now = local(2025, 6, 1, 8)
        appt = Appt("a1", local(2025, 6, 10, 9), 30)
        seen = []

        def predicate(slot):
            seen.append(slot.id)
            return True

        slots = generate_reschedule_slots(date(2025, 6, 3), appt, clock=lambda: now, is_available=predicate, tz=SAST)
        assert seen == []
        next(slots)
        assert seen == ["9-0"]

    def test_availability_predicate_marks_slots(self):
        now = local(2025, 6, 1, 8)
        appt = Appt("a1", local(2025, 6, 10, 9), 30)

        slots = list(
            generate_reschedule_slots(
                date(2025, 6, 3),
                appt,
                clock=lambda: now,
                is_available=lambda s: s.start_time.astimezone(SAST).hour != 11,
                tz=SAST,
            )
        )

        unavailable = [s.id for s in slots if not s.is_available]
        assert unavailable == ["11-0", "11-30"]

    def test_naive_stored_start_is_treated_as_utc(self):
        now = local(2025, 6, 1, 8)
        # 08:00 UTC is 10:00 in Johannesburg
        appt = Appt("a1", datetime(2025, 6, 3, 8, 0), 60)

        slots = list(generate_reschedule_slots(date(2025, 6, 3), appt, clock=lambda: now, tz=SAST))

        assert len(slots) == 15
        assert "10-0" not in [s.id for s in slots]


class TestModificationGate:
    """The 24-hour cancel/reschedule cutoff."""

    NOW = datetime(2025, 6, 2, 6, 0, tzinfo=timezone.utc)

    def test_boundary_just_inside_cutoff_is_closed(self):
        appt = Appt("a1", self.NOW + timedelta(hours=23, minutes=59), 60)
        assert can_modify(appt, self.NOW) is False

    def test_boundary_just_outside_cutoff_is_open(self):
        appt = Appt("a1", self.NOW + timedelta(hours=24, minutes=1), 60)
        assert can_modify(appt, self.NOW) is True

    def test_exactly_24_hours_is_closed(self):
        appt = Appt("a1", self.NOW + timedelta(hours=24), 60)
        assert can_modify(appt, self.NOW) is False

    @pytest.mark.parametrize("status", ["completed", "cancelled", "no-show", "rescheduled"])
    def test_non_modifiable_statuses_are_closed_regardless_of_time(self, status):
        appt = Appt("a1", self.NOW + timedelta(days=30), 60, status=status)
        assert can_modify(appt, self.NOW) is False

    def test_confirmed_is_open(self):
        appt = Appt("a1", self.NOW + timedelta(days=2), 60, status="confirmed")
        assert can_modify(appt, self.NOW) is True

    def test_malformed_input_never_raises(self):
        assert can_modify(None, self.NOW) is False
        assert can_modify(SimpleNamespace(status="scheduled"), self.NOW) is False
        assert can_modify(SimpleNamespace(status="scheduled", start_time="tomorrow"), self.NOW) is False


class TestStaffAvailability:
    """Overlap check against existing bookings."""

    def booking(self, id, start, minutes, status="scheduled"):
        return SimpleNamespace(id=id, start_time=start, end_time=start + timedelta(minutes=minutes), status=status)

    def slot(self, start, minutes):
        return Slot(id="x", start_time=start, end_time=start + timedelta(minutes=minutes), staff_id="s", staff_name="S")

    def test_overlap_is_half_open(self):
        t = local(2025, 6, 3, 9)
        assert overlaps(t, t + timedelta(hours=1), t + timedelta(minutes=30), t + timedelta(hours=2))
        assert not overlaps(t, t + timedelta(hours=1), t + timedelta(hours=1), t + timedelta(hours=2))

    def test_overlapping_booking_blocks_slot(self):
        t = local(2025, 6, 3, 10)
        check = StaffAvailability([self.booking("b1", t, 60)])
        assert check(self.slot(t + timedelta(minutes=30), 60)) is False
        assert check(self.slot(t + timedelta(minutes=60), 60)) is True

    def test_moved_appointment_and_cancelled_bookings_are_ignored(self):
        t = local(2025, 6, 3, 10)
        check = StaffAvailability(
            [self.booking("moving", t, 60), self.booking("old", t, 60, status="cancelled")],
            exclude_id="moving",
        )
        assert check(self.slot(t, 60)) is True
