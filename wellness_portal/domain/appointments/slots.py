"""
Reschedule slot generation and the cancel/reschedule cutoff rule.

Both are pure functions of their inputs plus a single reading of the clock,
so they can be called on every request without side effects.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Iterable, Iterator, Optional, Protocol

from ...shared.clock import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)

# Operating window for reschedule options, local to the centre
DAY_START_HOUR = 9
DAY_END_HOUR = 17
SLOT_INTERVAL_MINUTES = 30

# Cancel/reschedule is only allowed this far ahead of the start time
MODIFICATION_CUTOFF = timedelta(hours=24)
MODIFIABLE_STATUSES = frozenset({"scheduled", "confirmed"})

# Statuses that occupy a staff member's time
BLOCKING_STATUSES = ("scheduled", "confirmed")


class SlotSubject(Protocol):
    """What slot generation needs to know about the appointment being moved"""

    id: str
    start_time: datetime
    duration: int
    staff_id: str
    staff_name: str


@dataclass(frozen=True)
class Slot:
    id: str
    start_time: datetime
    end_time: datetime
    staff_id: str
    staff_name: str
    is_available: bool = True


AvailabilityCheck = Callable[[Slot], bool]


def always_available(_slot: Slot) -> bool:
    return True


def _candidate_starts(day: date, tz: tzinfo) -> Iterator[tuple[int, int, datetime]]:
    for hour in range(DAY_START_HOUR, DAY_END_HOUR):
        for minute in range(0, 60, SLOT_INTERVAL_MINUTES):
            yield hour, minute, datetime.combine(day, time(hour, minute), tzinfo=tz)


def _iter_slots(
    day: date,
    appointment: SlotSubject,
    now: datetime,
    is_available: AvailabilityCheck,
    tz: tzinfo,
) -> Iterator[Slot]:
    current_start = ensure_utc(appointment.start_time)
    duration = timedelta(minutes=appointment.duration)

    for hour, minute, local_start in _candidate_starts(day, tz):
        start = local_start.astimezone(now.tzinfo)
        if start <= now:
            continue
        if start == current_start:
            continue

        slot = Slot(
            id=f"{hour}-{minute}",
            start_time=start,
            end_time=start + duration,
            staff_id=appointment.staff_id,
            staff_name=appointment.staff_name,
        )
        available = is_available(slot)
        yield slot if available else replace(slot, is_available=False)


def generate_reschedule_slots(
    day: date,
    appointment: SlotSubject,
    clock: Clock = utc_now,
    is_available: AvailabilityCheck = always_available,
    tz: Optional[tzinfo] = None,
) -> Iterator[Slot]:
    """
    Lazily produce replacement slots for one appointment on one calendar day.

    Candidates start every 30 minutes from 09:00 to 16:30 in the centre's local
    time. A candidate is skipped when it starts at or before now, or when it
    starts exactly at the appointment's current start. Each slot keeps the
    appointment's duration and staff member.

    The clock is read once here, not per candidate, so the same inputs and the
    same clock reading always give the same sequence.
    """
    now = ensure_utc(clock())
    return _iter_slots(day, appointment, now, is_available, tz or now.tzinfo)


def can_modify(appointment, now: datetime) -> bool:
    """
    Whether an appointment may currently be cancelled or rescheduled.

    True only for scheduled/confirmed appointments starting more than 24 hours
    after now. Never raises: anything missing or malformed counts as false.
    """
    try:
        if getattr(appointment, "status", None) not in MODIFIABLE_STATUSES:
            return False
        start = getattr(appointment, "start_time", None)
        if start is None:
            return False
        return ensure_utc(start) > ensure_utc(now) + MODIFICATION_CUTOFF
    except (TypeError, ValueError, AttributeError):
        return False


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open interval overlap; back-to-back bookings do not conflict"""
    return start < other_end and end > other_start


class StaffAvailability:
    """
    Availability check against a staff member's existing bookings.

    A slot is unavailable when it overlaps any blocking appointment of the same
    staff member, ignoring the appointment being moved.
    """

    def __init__(self, bookings: Iterable, exclude_id: Optional[str] = None):
        self.busy = [
            (ensure_utc(b.start_time), ensure_utc(b.end_time))
            for b in bookings
            if b.id != exclude_id and b.status in BLOCKING_STATUSES
        ]

    def __call__(self, slot: Slot) -> bool:
        start, end = ensure_utc(slot.start_time), ensure_utc(slot.end_time)
        return not any(overlaps(start, end, b_start, b_end) for b_start, b_end in self.busy)
