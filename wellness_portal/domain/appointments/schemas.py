"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import APPOINTMENT_STATUSES
from ...shared.clock import ensure_utc
from ...utils.sanitization import sanitize_text


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment"""

    serviceId: str
    centreId: str
    staffId: str
    startTime: datetime
    clientId: Optional[str] = None  # staff/admin booking on behalf of a client
    notes: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return ensure_utc(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        return sanitize_text(v)


class RescheduleRequest(BaseModel):
    """A chosen replacement slot plus the reason for moving the appointment"""

    startTime: Optional[datetime] = None
    reason: Optional[str] = None
    staffId: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return ensure_utc(v) if v is not None else v

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        return sanitize_text(v, max_length=500)

    @model_validator(mode="after")
    def require_slot_and_reason(self):
        if self.startTime is None:
            raise ValueError("Please select a new time slot")
        if not self.reason:
            raise ValueError("Please provide a reason for rescheduling")
        return self


class CancelRequest(BaseModel):
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        return sanitize_text(v, max_length=500)


class StatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in APPOINTMENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        return v


class RescheduleHistoryEntry(BaseModel):
    previousStartTime: datetime
    previousEndTime: datetime
    previousStaffId: str
    previousStaffName: str
    newStartTime: datetime
    newEndTime: datetime
    newStaffId: str
    newStaffName: str
    reason: str
    rescheduledBy: str
    rescheduledAt: datetime


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: str
    clientId: str
    clientName: str
    clientEmail: Optional[str] = None
    staffId: str
    staffName: str
    centreId: str
    centreName: str
    serviceId: str
    serviceName: str
    startTime: datetime
    endTime: datetime
    duration: int
    price: int
    status: str
    notes: Optional[str] = None
    cancellationReason: Optional[str] = None
    rescheduleHistory: list[RescheduleHistoryEntry] = []
    paymentStatus: str
    canModify: bool = False
    createdBy: Optional[str] = None
    lastModifiedBy: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    id: str
    startTime: datetime
    endTime: datetime
    staffId: str
    staffName: str
    isAvailable: bool
