"""Staff domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...models import STAFF_ROLES, USER_ROLES
from ...shared.validators import validate_phone


class StaffCreate(BaseModel):
    """Schema for creating a staff member together with their login"""

    email: EmailStr
    password: str = Field(..., min_length=6)
    firstName: str = Field(..., min_length=2, max_length=100)
    lastName: str = Field(..., min_length=2, max_length=100)
    role: str = "staff"
    centreIds: list[str] = []
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    specializations: list[str] = []
    qualifications: list[str] = []
    bio: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in STAFF_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(STAFF_ROLES)}")
        return v

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class StaffUpdate(BaseModel):
    """Schema for updating a staff profile"""

    firstName: Optional[str] = Field(None, min_length=2, max_length=100)
    lastName: Optional[str] = Field(None, min_length=2, max_length=100)
    centreIds: Optional[list[str]] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    specializations: Optional[list[str]] = None
    qualifications: Optional[list[str]] = None
    bio: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, v):
        if v:
            return validate_phone(v)
        return v


class RoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in USER_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(USER_ROLES)}")
        return v


class StaffResponse(BaseModel):
    """Schema for staff and user account responses"""

    id: str
    email: str
    firstName: str
    lastName: str
    role: str
    isActive: bool
    centreIds: list[str]
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    specializations: list[str] = []
    qualifications: list[str] = []
    bio: Optional[str] = None
    photoUrl: Optional[str] = None
    permissions: list[str] = []
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class PhotoResponse(BaseModel):
    key: str
    url: Optional[str] = None
