"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment
from .slots import BLOCKING_STATUSES


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def list_appointments(
        db: Session,
        client_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        centre_id: Optional[str] = None,
        centre_ids: Optional[list[str]] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[Appointment]:
        """
        List appointments with optional filters.

        centre_ids restricts the result to a set of centres (role scoping);
        centre_id is the caller's explicit filter. Both may apply.
        """
        query = db.query(Appointment)

        if client_id:
            query = query.filter(Appointment.client_id == client_id)
        if staff_id:
            query = query.filter(Appointment.staff_id == staff_id)
        if centre_id:
            query = query.filter(Appointment.centre_id == centre_id)
        if centre_ids is not None:
            query = query.filter(Appointment.centre_id.in_(centre_ids))
        if status:
            query = query.filter(Appointment.status == status)
        if start_date:
            query = query.filter(Appointment.start_time >= start_date)
        if end_date:
            query = query.filter(Appointment.start_time < end_date)

        return query.order_by(Appointment.start_time.asc()).all()

    @staticmethod
    def get_staff_bookings(
        db: Session, staff_id: str, window_start: datetime, window_end: datetime
    ) -> list[Appointment]:
        """Blocking appointments of one staff member that could overlap the window"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.staff_id == staff_id,
                Appointment.status.in_(BLOCKING_STATUSES),
                Appointment.start_time < window_end,
                Appointment.end_time > window_start,
            )
            .all()
        )

    @staticmethod
    def create(db: Session, **data) -> Appointment:
        appointment = Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Update an appointment with provided fields"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)

        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()
