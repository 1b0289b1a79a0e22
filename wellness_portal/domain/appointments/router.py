"""Appointment router - FastAPI endpoints for appointment operations"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentSession, get_current_session, require_permission
from ...database import get_db
from ...models import Appointment
from ...permissions import Permissions
from ...shared.clock import Clock, ensure_utc, get_clock
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    CancelRequest,
    RescheduleRequest,
    SlotResponse,
    StatusUpdate,
)
from .service import AppointmentService
from .slots import can_modify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db, clock)


def appointment_response(a: Appointment, now: datetime) -> AppointmentResponse:
    """Authoritative record returned after every read and mutation"""
    return AppointmentResponse(
        id=a.id,
        clientId=a.client_id,
        clientName=a.client_name,
        clientEmail=a.client_email,
        staffId=a.staff_id,
        staffName=a.staff_name,
        centreId=a.centre_id,
        centreName=a.centre_name,
        serviceId=a.service_id,
        serviceName=a.service_name,
        startTime=ensure_utc(a.start_time),
        endTime=ensure_utc(a.end_time),
        duration=a.duration,
        price=a.price,
        status=a.status,
        notes=a.notes,
        cancellationReason=a.cancellation_reason,
        rescheduleHistory=a.reschedule_history or [],
        paymentStatus=a.payment_status,
        canModify=can_modify(a, now),
        createdBy=a.created_by,
        lastModifiedBy=a.last_modified_by,
        createdAt=a.created_at,
        updatedAt=a.updated_at,
    )


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    centre_id: Optional[str] = Query(None, alias="centreId"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    client_id: Optional[str] = Query(None, alias="clientId"),
    status: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    session: CurrentSession = Depends(get_current_session),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Clock = Depends(get_clock),
):
    """List and calendar view, scoped by the caller's role"""
    appointments = service.list_appointments(
        session, centre_id, staff_id, client_id, status, start_date, end_date
    )
    now = clock()
    return [appointment_response(a, now) for a in appointments]


@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    session: CurrentSession = Depends(require_permission(Permissions.CREATE_APPOINTMENT)),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Clock = Depends(get_clock),
):
    return appointment_response(service.book(data, session), clock())


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    session: CurrentSession = Depends(get_current_session),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Clock = Depends(get_clock),
):
    return appointment_response(service.get_appointment(appointment_id, session), clock())


@router.get("/{appointment_id}/slots", response_model=list[SlotResponse])
async def get_reschedule_slots(
    appointment_id: str,
    day: date = Query(..., alias="date"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    session: CurrentSession = Depends(get_current_session),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Replacement slots for one day; 403 once the modification window has closed"""
    slots = service.get_reschedule_slots(appointment_id, day, session, staff_id)
    return [
        SlotResponse(
            id=s.id,
            startTime=s.start_time,
            endTime=s.end_time,
            staffId=s.staff_id,
            staffName=s.staff_name,
            isAvailable=s.is_available,
        )
        for s in slots
    ]


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    session: CurrentSession = Depends(get_current_session),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Clock = Depends(get_clock),
):
    return appointment_response(service.reschedule(appointment_id, data, session), clock())


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    data: CancelRequest,
    session: CurrentSession = Depends(get_current_session),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Clock = Depends(get_clock),
):
    return appointment_response(service.cancel(appointment_id, data, session), clock())


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_status(
    appointment_id: str,
    data: StatusUpdate,
    session: CurrentSession = Depends(require_permission(Permissions.PERFORM_SERVICE)),
    service: AppointmentService = Depends(get_appointment_service),
    clock: Clock = Depends(get_clock),
):
    return appointment_response(service.update_status(appointment_id, data.status, session), clock())


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.DELETE_APPOINTMENT)),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.delete(appointment_id, session)
