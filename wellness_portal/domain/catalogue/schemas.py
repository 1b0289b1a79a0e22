"""Catalogue schemas - services, centres and their membership"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone

SERVICE_CATEGORIES = ("treatment", "consultation", "assessment", "therapy", "wellness", "other")


class BookingSettings(BaseModel):
    advanceBookingDays: int = Field(90, ge=1, le=365)
    cancellationHours: int = Field(24, ge=0)
    requiresApproval: bool = False


class ServiceCreate(BaseModel):
    """Schema for creating a service"""

    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    category: str = "treatment"
    duration: int = Field(..., gt=0, le=480)  # minutes
    price: int = Field(0, ge=0)  # cents
    requiredQualifications: list[str] = []
    equipmentRequired: list[str] = []
    isActive: bool = True
    availableAtCentres: list[str] = []
    preparationInstructions: Optional[str] = None
    followUpRequired: bool = False
    maxConcurrentBookings: int = Field(1, ge=1)
    bookingSettings: BookingSettings = BookingSettings()

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        if v not in SERVICE_CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(SERVICE_CATEGORIES)}")
        return v


class ServiceUpdate(BaseModel):
    """Schema for updating a service; membership changes go through /centres"""

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0, le=480)
    price: Optional[int] = Field(None, ge=0)
    requiredQualifications: Optional[list[str]] = None
    equipmentRequired: Optional[list[str]] = None
    isActive: Optional[bool] = None
    preparationInstructions: Optional[str] = None
    followUpRequired: Optional[bool] = None
    maxConcurrentBookings: Optional[int] = Field(None, ge=1)
    bookingSettings: Optional[BookingSettings] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        if v is not None and v not in SERVICE_CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(SERVICE_CATEGORIES)}")
        return v


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: str
    duration: int
    price: int
    requiredQualifications: list[str]
    equipmentRequired: list[str]
    isActive: bool
    availableAtCentres: list[str]
    preparationInstructions: Optional[str] = None
    followUpRequired: bool
    maxConcurrentBookings: int
    bookingSettings: BookingSettings
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class CentreAddress(BaseModel):
    street: Optional[str] = None
    suburb: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None


class CentreCreate(BaseModel):
    """Schema for creating a centre"""

    name: str = Field(..., min_length=2, max_length=255)
    address: CentreAddress = CentreAddress()
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    timezone: Optional[str] = None
    operatingHours: dict = {}
    isActive: bool = True

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def clean_email(cls, v):
        if v:
            return validate_email(v)
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown timezone: {v}")
        return v


class CentreUpdate(CentreCreate):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[CentreAddress] = None
    operatingHours: Optional[dict] = None
    isActive: Optional[bool] = None


class CentreResponse(BaseModel):
    id: str
    name: str
    address: CentreAddress
    phone: Optional[str] = None
    email: Optional[str] = None
    description: Optional[str] = None
    timezone: Optional[str] = None
    operatingHours: dict
    isActive: bool
    services: list[str]
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class ServiceCentresUpdate(BaseModel):
    centreIds: list[str]


class CentreServicesUpdate(BaseModel):
    serviceIds: list[str]
