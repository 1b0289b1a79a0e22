"""Profile schemas - Pydantic models for the client's own profile"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_phone


class ProfileAddress(BaseModel):
    street: Optional[str] = None
    suburb: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postalCode: Optional[str] = None


class MedicalInfo(BaseModel):
    allergies: Optional[str] = None
    medications: Optional[str] = None
    conditions: Optional[str] = None
    treatments: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Partial update; omitted or null fields keep their stored value"""

    firstName: Optional[str] = Field(None, min_length=2, max_length=100)
    lastName: Optional[str] = Field(None, min_length=2, max_length=100)
    mobile: Optional[str] = None
    gender: Optional[str] = None
    dateOfBirth: Optional[date] = None
    idNumber: Optional[str] = None
    passport: Optional[str] = None
    country: Optional[str] = None
    address: Optional[ProfileAddress] = None
    medicalInfo: Optional[MedicalInfo] = None
    preferredMethodOfContact: Optional[str] = None
    maritalStatus: Optional[str] = None
    employmentStatus: Optional[str] = None
    preferredTreatmentCentre: Optional[str] = None
    reasonForTransformation: Optional[str] = None
    howDidYouHear: Optional[str] = None
    referrerName: Optional[str] = None
    termsAccepted: Optional[bool] = None

    @field_validator("mobile")
    @classmethod
    def clean_mobile(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("idNumber", "passport")
    @classmethod
    def strip_identifier(cls, v):
        if v is not None:
            return v.replace(" ", "").strip()
        return v


class ProfileResponse(BaseModel):
    id: str
    email: str
    firstName: str
    lastName: str
    role: str
    clientRecordId: Optional[str] = None
    mobile: Optional[str] = None
    gender: Optional[str] = None
    dateOfBirth: Optional[date] = None
    idNumber: Optional[str] = None
    passport: Optional[str] = None
    country: Optional[str] = None
    address: dict = {}
    medicalInfo: dict = {}
    preferredMethodOfContact: Optional[str] = None
    maritalStatus: Optional[str] = None
    employmentStatus: Optional[str] = None
    preferredTreatmentCentre: Optional[str] = None
    reasonForTransformation: Optional[str] = None
    howDidYouHear: Optional[str] = None
    referrerName: Optional[str] = None
    goals: list = []
    healthMetrics: list = []
    preferences: dict = {}
    termsAccepted: bool = False
    onboardingCompleted: bool = False
    onboardingCompletedAt: Optional[datetime] = None
    importedFromClientRecord: bool = False
    missingFields: list[str] = []
    completionPercentage: int = 0
