"""Client domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import CLIENT_STATUSES
from ...shared.validators import validate_email, validate_phone


class ClientBase(BaseModel):
    gender: Optional[str] = None
    dateOfBirth: Optional[date] = None
    idNumber: Optional[str] = None
    passport: Optional[str] = None
    country: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    suburb: Optional[str] = None
    cityTown: Optional[str] = None
    province: Optional[str] = None
    postalCode: Optional[str] = None
    preferredMethodOfContact: Optional[str] = None
    maritalStatus: Optional[str] = None
    employmentStatus: Optional[str] = None
    currentMedication: Optional[str] = None
    chronicConditions: Optional[str] = None
    currentTreatments: Optional[str] = None
    allergies: Optional[str] = None
    reasonForTransformation: Optional[str] = None
    howDidYouHear: Optional[str] = None
    myNearestTreatmentCentre: Optional[str] = None
    referrerName: Optional[str] = None
    notes: Optional[str] = None


class ClientCreate(ClientBase):
    """Schema for creating a client record"""

    firstName: str = Field(..., min_length=1, max_length=100)
    lastName: str = Field(..., min_length=1, max_length=100)
    email: str
    mobile: str
    status: str = "active"

    @field_validator("email")
    @classmethod
    def clean_email(cls, v):
        return validate_email(v)

    @field_validator("mobile")
    @classmethod
    def clean_mobile(cls, v):
        return validate_phone(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in CLIENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(CLIENT_STATUSES)}")
        return v


class ClientUpdate(ClientBase):
    """Schema for updating an existing client"""

    firstName: Optional[str] = Field(None, min_length=1, max_length=100)
    lastName: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = None
    mobile: Optional[str] = None
    status: Optional[str] = None

    @field_validator("email")
    @classmethod
    def clean_email(cls, v):
        if v:
            return validate_email(v)
        return v

    @field_validator("mobile")
    @classmethod
    def clean_mobile(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in CLIENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(CLIENT_STATUSES)}")
        return v


class ClientResponse(ClientBase):
    """Schema for client response"""

    id: str
    firstName: str
    lastName: str
    email: str
    mobile: str
    status: str
    accountId: Optional[str] = None
    linkedAt: Optional[datetime] = None
    userAccountCreated: bool = False
    addedTime: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientImportResponse(BaseModel):
    imported: int
    failed: int
    errors: list[str]
