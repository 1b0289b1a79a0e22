"""Signup schemas - Pydantic models for account registration"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


def clean_name(v: Optional[str]) -> Optional[str]:
    """Blank names are filled from the matched client record"""
    if v is None or not v.strip():
        return None
    v = v.strip()
    if len(v) < 2:
        raise ValueError("Must be at least 2 characters")
    return v


class LookupResponse(BaseModel):
    """
    What the signup form learns about an existing client record.

    Only the first initial of the stored name is disclosed; the full name is
    filled in server-side when the signup is submitted.
    """

    matched: bool
    clientId: Optional[str] = None
    firstInitial: Optional[str] = None
    lookupFailed: bool = False
    message: Optional[str] = None


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirmPassword: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    matchedClientId: Optional[str] = None

    @field_validator("firstName", "lastName")
    @classmethod
    def validate_name(cls, v):
        return clean_name(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirmPassword:
            raise ValueError("Passwords do not match")
        return self


class CompleteSignupRequest(BaseModel):
    """Names for an existing auth account whose signup writes did not finish"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    matchedClientId: Optional[str] = None

    @field_validator("firstName", "lastName")
    @classmethod
    def validate_name(cls, v):
        return clean_name(v)


class SignupResponse(BaseModel):
    accountId: str
    email: str
    linked: bool
    clientRecordId: Optional[str] = None
    onboardingCompleted: bool = False
    message: str
