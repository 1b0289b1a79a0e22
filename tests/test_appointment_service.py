"""Tests for booking, rescheduling, cancelling and listing appointments"""

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from conftest import FIXED_NOW, fixed_clock
from wellness_portal.auth import CurrentSession
from wellness_portal.domain.appointments.schemas import (
    AppointmentCreate,
    CancelRequest,
    RescheduleRequest,
)
from wellness_portal.domain.appointments.service import AppointmentService, can_transition
from wellness_portal.models import User
from wellness_portal.shared.clock import ensure_utc

# Thursday 5 June 2025, 10:00 in Johannesburg
THURSDAY_TEN = datetime(2025, 6, 5, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def appointments(db):
    return AppointmentService(db, clock=fixed_clock)


def session_for(user):
    return CurrentSession.from_user(user)


class TestBook:
    def booking(self, centre, service, staff_user, start, **extra):
        return AppointmentCreate(
            serviceId=service.id, centreId=centre.id, staffId=staff_user.id, startTime=start, **extra
        )

    def test_client_books_for_themselves(self, appointments, centre, service, staff_user, client_user):
        start = FIXED_NOW + timedelta(days=2)

        appt = appointments.book(self.booking(centre, service, staff_user, start), session_for(client_user))

        assert appt.client_id == client_user.id
        assert appt.client_name == "Jane Smith"
        assert appt.staff_name == "Thandi Mokoena"
        assert appt.status == "scheduled"
        assert appt.payment_status == "pending"
        assert appt.price == 85000
        assert ensure_utc(appt.end_time) - ensure_utc(appt.start_time) == timedelta(minutes=60)
        assert appt.reschedule_history == []

    def test_staff_must_name_a_client(self, appointments, centre, service, staff_user):
        with pytest.raises(HTTPException) as exc_info:
            appointments.book(
                self.booking(centre, service, staff_user, FIXED_NOW + timedelta(days=2)), session_for(staff_user)
            )
        assert exc_info.value.status_code == 400

    def test_staff_books_on_behalf_of_client(self, appointments, centre, service, staff_user, client_user):
        data = self.booking(centre, service, staff_user, FIXED_NOW + timedelta(days=2), clientId=client_user.id)

        appt = appointments.book(data, session_for(staff_user))

        assert appt.client_id == client_user.id
        assert appt.created_by == staff_user.id

    def test_past_start_is_rejected(self, appointments, centre, service, staff_user, client_user):
        with pytest.raises(HTTPException) as exc_info:
            appointments.book(
                self.booking(centre, service, staff_user, FIXED_NOW - timedelta(hours=1)), session_for(client_user)
            )
        assert exc_info.value.status_code == 400

    def test_overlap_with_staff_booking_conflicts(
        self, appointments, make_appointment, centre, service, staff_user, client_user
    ):
        make_appointment(start_offset=timedelta(days=2))

        with pytest.raises(HTTPException) as exc_info:
            appointments.book(
                self.booking(centre, service, staff_user, FIXED_NOW + timedelta(days=2, minutes=30)),
                session_for(client_user),
            )
        assert exc_info.value.status_code == 409

    def test_back_to_back_booking_is_allowed(
        self, appointments, make_appointment, centre, service, staff_user, client_user
    ):
        make_appointment(start_offset=timedelta(days=2))

        appt = appointments.book(
            self.booking(centre, service, staff_user, FIXED_NOW + timedelta(days=2, hours=1)),
            session_for(client_user),
        )
        assert appt.status == "scheduled"

    def test_service_not_offered_at_centre(
        self, appointments, other_centre, service, staff_user, client_user
    ):
        with pytest.raises(HTTPException) as exc_info:
            appointments.book(
                self.booking(other_centre, service, staff_user, FIXED_NOW + timedelta(days=2)),
                session_for(client_user),
            )
        assert exc_info.value.status_code == 400

    def test_unknown_service(self, appointments, centre, staff_user, client_user):
        data = AppointmentCreate(
            serviceId="missing", centreId=centre.id, staffId=staff_user.id, startTime=FIXED_NOW + timedelta(days=2)
        )
        with pytest.raises(HTTPException) as exc_info:
            appointments.book(data, session_for(client_user))
        assert exc_info.value.status_code == 404


class TestReschedule:
    def test_moves_appointment_and_records_history(self, appointments, make_appointment, client_user):
        appt = make_appointment(status="confirmed")
        original_start = ensure_utc(appt.start_time)

        updated = appointments.reschedule(
            appt.id, RescheduleRequest(startTime=THURSDAY_TEN, reason="Work meeting"), session_for(client_user)
        )

        assert ensure_utc(updated.start_time) == THURSDAY_TEN
        assert ensure_utc(updated.end_time) == THURSDAY_TEN + timedelta(minutes=60)
        assert updated.status == "scheduled"
        assert len(updated.reschedule_history) == 1
        entry = updated.reschedule_history[0]
        assert entry["reason"] == "Work meeting"
        assert entry["previousStartTime"] == original_start.isoformat()
        assert entry["newStartTime"] == THURSDAY_TEN.isoformat()
        assert entry["rescheduledBy"] == client_user.id
        assert entry["rescheduledAt"] == FIXED_NOW.isoformat()

    def test_history_accumulates(self, appointments, make_appointment, client_user):
        appt = make_appointment()
        session = session_for(client_user)

        appointments.reschedule(appt.id, RescheduleRequest(startTime=THURSDAY_TEN, reason="First move"), session)
        updated = appointments.reschedule(
            appt.id,
            RescheduleRequest(startTime=THURSDAY_TEN + timedelta(hours=2), reason="Second move"),
            session,
        )

        assert [e["reason"] for e in updated.reschedule_history] == ["First move", "Second move"]

    def test_time_off_the_slot_grid_is_rejected(self, appointments, make_appointment, client_user):
        appt = make_appointment()

        with pytest.raises(HTTPException) as exc_info:
            appointments.reschedule(
                appt.id,
                RescheduleRequest(startTime=THURSDAY_TEN + timedelta(minutes=15), reason="Clash"),
                session_for(client_user),
            )
        assert exc_info.value.status_code == 400

    def test_staff_conflict_is_rejected(self, appointments, make_appointment, client_user):
        appt = make_appointment()
        make_appointment(start_offset=timedelta(days=3, hours=2))  # Thursday 10:00 local

        with pytest.raises(HTTPException) as exc_info:
            appointments.reschedule(
                appt.id, RescheduleRequest(startTime=THURSDAY_TEN, reason="Clash"), session_for(client_user)
            )
        assert exc_info.value.status_code == 409

    def test_inside_cutoff_is_forbidden(self, appointments, make_appointment, client_user):
        appt = make_appointment(start_offset=timedelta(hours=20))

        with pytest.raises(HTTPException) as exc_info:
            appointments.reschedule(
                appt.id, RescheduleRequest(startTime=THURSDAY_TEN, reason="Clash"), session_for(client_user)
            )
        assert exc_info.value.status_code == 403

    def test_other_client_cannot_reschedule(self, db, appointments, make_appointment):
        appt = make_appointment()
        stranger = User(id="client-2", email="sam@example.com", first_name="Sam", last_name="Lee", role="client")
        db.add(stranger)
        db.commit()

        with pytest.raises(HTTPException) as exc_info:
            appointments.reschedule(
                appt.id, RescheduleRequest(startTime=THURSDAY_TEN, reason="Clash"), session_for(stranger)
            )
        assert exc_info.value.status_code == 403


class TestRescheduleSlots:
    def test_slots_marked_against_staff_bookings(self, appointments, make_appointment, client_user):
        appt = make_appointment()
        make_appointment(start_offset=timedelta(days=3, hours=2))  # Thursday 10:00-11:00 local

        slots = appointments.get_reschedule_slots(appt.id, date(2025, 6, 5), session_for(client_user))

        assert len(slots) == 16
        assert [s.id for s in slots if not s.is_available] == ["9-30", "10-0", "10-30"]

    def test_gate_applies_to_slot_listing(self, appointments, make_appointment, client_user):
        appt = make_appointment(start_offset=timedelta(hours=23))

        with pytest.raises(HTTPException) as exc_info:
            appointments.get_reschedule_slots(appt.id, date(2025, 6, 5), session_for(client_user))
        assert exc_info.value.status_code == 403


class TestCancelAndStatus:
    def test_cancel_records_reason(self, appointments, make_appointment, client_user):
        appt = make_appointment()

        updated = appointments.cancel(appt.id, CancelRequest(reason="Feeling unwell"), session_for(client_user))

        assert updated.status == "cancelled"
        assert updated.cancellation_reason == "Feeling unwell"

    def test_cancel_inside_cutoff_is_forbidden(self, appointments, make_appointment, client_user):
        appt = make_appointment(start_offset=timedelta(hours=2))

        with pytest.raises(HTTPException) as exc_info:
            appointments.cancel(appt.id, CancelRequest(reason="Late"), session_for(client_user))
        assert exc_info.value.status_code == 403

    def test_cancelled_appointment_cannot_be_cancelled_again(self, appointments, make_appointment, client_user):
        appt = make_appointment(status="cancelled")

        with pytest.raises(HTTPException) as exc_info:
            appointments.cancel(appt.id, CancelRequest(), session_for(client_user))
        assert exc_info.value.status_code == 403

    def test_forward_transition(self, appointments, make_appointment, staff_user):
        appt = make_appointment()

        updated = appointments.update_status(appt.id, "confirmed", session_for(staff_user))

        assert updated.status == "confirmed"

    def test_terminal_status_cannot_change(self, appointments, make_appointment, staff_user):
        appt = make_appointment(status="completed")

        with pytest.raises(HTTPException) as exc_info:
            appointments.update_status(appt.id, "confirmed", session_for(staff_user))
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize(
        "current,new,allowed",
        [
            ("scheduled", "confirmed", True),
            ("confirmed", "completed", True),
            ("confirmed", "scheduled", False),
            ("no-show", "completed", False),
            ("rescheduled", "scheduled", True),
        ],
    )
    def test_can_transition(self, current, new, allowed):
        assert can_transition(current, new) is allowed

    def test_only_admins_delete(self, appointments, make_appointment, staff_user, admin_user):
        appt = make_appointment()

        with pytest.raises(HTTPException) as exc_info:
            appointments.delete(appt.id, session_for(staff_user))
        assert exc_info.value.status_code == 403

        appointments.delete(appt.id, session_for(admin_user))
        with pytest.raises(HTTPException) as exc_info:
            appointments.get_appointment(appt.id, session_for(admin_user))
        assert exc_info.value.status_code == 404


class TestListing:
    def test_client_sees_only_own(self, db, appointments, make_appointment, client_user):
        mine = make_appointment()
        other = User(id="client-2", email="sam@example.com", first_name="Sam", last_name="Lee", role="client")
        db.add(other)
        db.commit()
        make_appointment(client_id=other.id, start_offset=timedelta(days=4))

        listed = appointments.list_appointments(session_for(client_user), client_id=other.id)

        assert [a.id for a in listed] == [mine.id]

    def test_staff_sees_only_assigned_centres(
        self, appointments, make_appointment, other_centre, staff_user
    ):
        here = make_appointment()
        make_appointment(centre_id=other_centre.id, start_offset=timedelta(days=4))

        listed = appointments.list_appointments(session_for(staff_user))

        assert [a.id for a in listed] == [here.id]

    def test_admin_sees_all_with_date_range(self, appointments, make_appointment, admin_user):
        early = make_appointment(start_offset=timedelta(days=1))
        make_appointment(start_offset=timedelta(days=10))

        listed = appointments.list_appointments(
            session_for(admin_user),
            start_date=FIXED_NOW,
            end_date=FIXED_NOW + timedelta(days=7),
        )

        assert [a.id for a in listed] == [early.id]
