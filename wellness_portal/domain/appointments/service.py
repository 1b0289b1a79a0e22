"""Appointment service - Business logic for booking, rescheduling and cancelling"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CurrentSession
from ...config import CENTRE_TIMEZONE
from ...models import Appointment, Centre, STAFF_ROLES
from ...permissions import Permissions
from ...shared.clock import Clock, ensure_utc, utc_now
from ..catalogue.repository import CatalogueRepository
from ..staff.repository import StaffRepository
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, CancelRequest, RescheduleRequest
from .slots import Slot, StaffAvailability, can_modify, generate_reschedule_slots

logger = logging.getLogger(__name__)

# Forward-only status changes; completed, cancelled and no-show are terminal
ALLOWED_TRANSITIONS = {
    "scheduled": {"confirmed", "completed", "cancelled", "no-show", "rescheduled"},
    "confirmed": {"completed", "cancelled", "no-show", "rescheduled"},
    "rescheduled": {"scheduled"},
    "completed": set(),
    "cancelled": set(),
    "no-show": set(),
}

GATE_CLOSED_MESSAGE = (
    "Appointments can only be cancelled or rescheduled more than 24 hours in advance"
)


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


@dataclass
class _MovedAppointment:
    """An appointment as it would look with a different staff member"""

    id: str
    start_time: datetime
    duration: int
    staff_id: str
    staff_name: str


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session, clock: Clock = utc_now):
        self.db = db
        self.clock = clock
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _centre_tz(self, centre: Optional[Centre]) -> tzinfo:
        name = (centre.timezone if centre else None) or CENTRE_TIMEZONE
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"⚠️ Unknown centre timezone {name}, using {CENTRE_TIMEZONE}")
            return ZoneInfo(CENTRE_TIMEZONE)

    def _check_access(self, appointment: Appointment, session: CurrentSession) -> None:
        """Clients reach their own appointments, staff their centres', admins all"""
        if session.sees_all_centres:
            return
        if session.role == "staff" and appointment.centre_id in session.centre_ids:
            return
        if appointment.client_id == session.uid:
            return
        raise HTTPException(status_code=403, detail="You do not have access to this appointment")

    def _require_gate(self, appointment: Appointment, now: datetime) -> None:
        if not can_modify(appointment, now):
            logger.warning(f"🚫 Modification gate closed for appointment {appointment.id}")
            raise HTTPException(status_code=403, detail=GATE_CLOSED_MESSAGE)

    def _get_staff_member(self, staff_id: str, centre_id: str):
        staff = StaffRepository.get_user(self.db, staff_id)
        if not staff or staff.role not in STAFF_ROLES or not staff.is_active:
            raise HTTPException(status_code=400, detail="Selected staff member is not available")
        if centre_id not in (staff.centre_ids or []):
            raise HTTPException(
                status_code=400, detail="Selected staff member does not work at this centre"
            )
        return staff

    def _staff_conflicts(
        self, staff_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
    ) -> bool:
        bookings = self.repo.get_staff_bookings(self.db, staff_id, start, end)
        candidate = Slot(id="candidate", start_time=start, end_time=end, staff_id=staff_id, staff_name="")
        return not StaffAvailability(bookings, exclude_id=exclude_id)(candidate)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: str, session: CurrentSession) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        self._check_access(appointment, session)
        return appointment

    def list_appointments(
        self,
        session: CurrentSession,
        centre_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[Appointment]:
        """List appointments visible to the caller, for list and calendar views"""
        centre_scope = None
        if not session.sees_all_centres:
            if session.role == "staff":
                centre_scope = list(session.centre_ids)
            else:
                client_id = session.uid

        return self.repo.list_appointments(
            self.db,
            client_id=client_id,
            staff_id=staff_id,
            centre_id=centre_id,
            centre_ids=centre_scope,
            status=status,
            start_date=ensure_utc(start_date) if start_date else None,
            end_date=ensure_utc(end_date) if end_date else None,
        )

    def get_reschedule_slots(
        self, appointment_id: str, day: date, session: CurrentSession, staff_id: Optional[str] = None
    ) -> list[Slot]:
        """Replacement slots for an appointment on one day, marked for staff conflicts"""
        appointment = self.get_appointment(appointment_id, session)
        self._require_gate(appointment, self.clock())
        return list(self._generate_slots(appointment, day, staff_id))

    def _generate_slots(self, appointment: Appointment, day: date, staff_id: Optional[str] = None):
        subject = appointment
        if staff_id and staff_id != appointment.staff_id:
            staff = self._get_staff_member(staff_id, appointment.centre_id)
            subject = _MovedAppointment(
                id=appointment.id,
                start_time=appointment.start_time,
                duration=appointment.duration,
                staff_id=staff.id,
                staff_name=staff.full_name,
            )

        tz = self._centre_tz(CatalogueRepository.get_centre(self.db, appointment.centre_id))
        day_start = datetime.combine(day, time(0, 0), tzinfo=tz)
        window_end = day_start + timedelta(days=1, minutes=appointment.duration)
        bookings = self.repo.get_staff_bookings(
            self.db, subject.staff_id, ensure_utc(day_start), ensure_utc(window_end)
        )

        return generate_reschedule_slots(
            day,
            subject,
            clock=self.clock,
            is_available=StaffAvailability(bookings, exclude_id=appointment.id),
            tz=tz,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def book(self, data: AppointmentCreate, session: CurrentSession) -> Appointment:
        """Book a new appointment for the caller, or for a client when staff/admin"""
        logger.info(f"📥 Booking request from {session.email} for service {data.serviceId}")
        now = ensure_utc(self.clock())

        if session.role == "client":
            client_id = session.uid
        elif data.clientId:
            client_id = data.clientId
        else:
            raise HTTPException(status_code=400, detail="Please select a client")

        client = StaffRepository.get_user(self.db, client_id)
        if not client or not client.is_active:
            raise HTTPException(status_code=404, detail="Client not found")

        service = CatalogueRepository.get_service(self.db, data.serviceId)
        if not service or not service.is_active:
            raise HTTPException(status_code=404, detail="Service not found")

        centre = CatalogueRepository.get_centre(self.db, data.centreId)
        if not centre or not centre.is_active:
            raise HTTPException(status_code=404, detail="Centre not found")

        if not session.sees_all_centres and session.role == "staff":
            if centre.id not in session.centre_ids:
                raise HTTPException(status_code=403, detail="You are not assigned to this centre")

        if centre.id not in (service.available_at_centres or []):
            raise HTTPException(status_code=400, detail="This service is not offered at the selected centre")

        staff = self._get_staff_member(data.staffId, centre.id)

        start = ensure_utc(data.startTime)
        if start <= now:
            raise HTTPException(status_code=400, detail="Appointment time must be in the future")
        if start > now + timedelta(days=service.advance_booking_days):
            raise HTTPException(
                status_code=400,
                detail=f"Appointments can be booked at most {service.advance_booking_days} days ahead",
            )

        end = start + timedelta(minutes=service.duration)
        if self._staff_conflicts(staff.id, start, end):
            raise HTTPException(status_code=409, detail="The selected time slot is no longer available")

        appointment = self.repo.create(
            self.db,
            client_id=client.id,
            client_name=client.full_name,
            client_email=client.email,
            staff_id=staff.id,
            staff_name=staff.full_name,
            centre_id=centre.id,
            centre_name=centre.name,
            service_id=service.id,
            service_name=service.name,
            start_time=start,
            end_time=end,
            duration=service.duration,
            price=service.price,
            status="scheduled",
            notes=data.notes,
            reschedule_history=[],
            payment_status="pending",
            created_by=session.uid,
            last_modified_by=session.uid,
        )
        logger.info(f"✅ Appointment booked: {appointment.id} at {start.isoformat()}")
        return appointment

    def reschedule(
        self, appointment_id: str, data: RescheduleRequest, session: CurrentSession
    ) -> Appointment:
        """
        Move an appointment to one of its generated replacement slots.

        The gate must pass, and the requested start must be an available slot
        for the chosen staff member. Appends a history entry and resets the
        status to scheduled.
        """
        appointment = self.get_appointment(appointment_id, session)
        now = ensure_utc(self.clock())
        self._require_gate(appointment, now)

        new_start = ensure_utc(data.startTime)
        tz = self._centre_tz(CatalogueRepository.get_centre(self.db, appointment.centre_id))
        day = new_start.astimezone(tz).date()

        chosen = next(
            (s for s in self._generate_slots(appointment, day, data.staffId) if s.start_time == new_start),
            None,
        )
        if chosen is None:
            raise HTTPException(status_code=400, detail="Selected time is not an available slot")
        if not chosen.is_available:
            raise HTTPException(status_code=409, detail="The selected time slot is no longer available")

        entry = {
            "previousStartTime": ensure_utc(appointment.start_time).isoformat(),
            "previousEndTime": ensure_utc(appointment.end_time).isoformat(),
            "previousStaffId": appointment.staff_id,
            "previousStaffName": appointment.staff_name,
            "newStartTime": chosen.start_time.isoformat(),
            "newEndTime": chosen.end_time.isoformat(),
            "newStaffId": chosen.staff_id,
            "newStaffName": chosen.staff_name,
            "reason": data.reason,
            "rescheduledBy": session.uid,
            "rescheduledAt": now.isoformat(),
        }

        updated = self.repo.update(
            self.db,
            appointment,
            start_time=chosen.start_time,
            end_time=chosen.end_time,
            staff_id=chosen.staff_id,
            staff_name=chosen.staff_name,
            status="scheduled",
            reschedule_history=list(appointment.reschedule_history or []) + [entry],
            last_modified_by=session.uid,
        )
        logger.info(f"✅ Appointment {appointment_id} rescheduled to {chosen.start_time.isoformat()}")
        return updated

    def cancel(self, appointment_id: str, data: CancelRequest, session: CurrentSession) -> Appointment:
        appointment = self.get_appointment(appointment_id, session)
        self._require_gate(appointment, self.clock())

        updated = self.repo.update(
            self.db,
            appointment,
            status="cancelled",
            cancellation_reason=data.reason,
            last_modified_by=session.uid,
        )
        logger.info(f"✅ Appointment {appointment_id} cancelled by {session.email}")
        return updated

    def update_status(self, appointment_id: str, status: str, session: CurrentSession) -> Appointment:
        """Staff/admin status change, restricted to the forward transitions"""
        appointment = self.get_appointment(appointment_id, session)

        if not can_transition(appointment.status, status):
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change status from {appointment.status} to {status}",
            )

        updated = self.repo.update(self.db, appointment, status=status, last_modified_by=session.uid)
        logger.info(f"✅ Appointment {appointment_id} status -> {status}")
        return updated

    def delete(self, appointment_id: str, session: CurrentSession) -> dict:
        if not session.can(Permissions.DELETE_APPOINTMENT):
            raise HTTPException(status_code=403, detail="Only administrators can delete appointments")
        appointment = self.get_appointment(appointment_id, session)
        self.repo.delete(self.db, appointment)
        logger.info(f"🗑️ Appointment {appointment_id} deleted by {session.email}")
        return {"message": "Appointment deleted"}
