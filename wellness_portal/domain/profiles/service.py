"""Profile service - a client's own profile and onboarding completion"""

import logging
import re
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CurrentSession
from ...config import DEFAULT_COUNTRY
from ...models import ClientProfile, User
from ...shared.clock import Clock, utc_now
from ...utils.sanitization import sanitize_text
from .repository import ProfileRepository
from .schemas import ProfileUpdate

logger = logging.getLogger(__name__)

# Request field -> ClientProfile column for the flat text fields
TEXT_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "gender": "gender",
    "idNumber": "id_number",
    "passport": "passport",
    "country": "country",
    "preferredMethodOfContact": "preferred_method_of_contact",
    "maritalStatus": "marital_status",
    "employmentStatus": "employment_status",
    "preferredTreatmentCentre": "preferred_treatment_centre",
    "reasonForTransformation": "reason_for_transformation",
    "howDidYouHear": "how_did_you_hear",
    "referrerName": "referrer_name",
}

# Reported name -> how to read it from a profile
REQUIRED_FIELDS = {
    "firstName": lambda p: p.first_name,
    "lastName": lambda p: p.last_name,
    "email": lambda p: p.email,
    "gender": lambda p: p.gender,
    "mobile": lambda p: p.mobile,
    "street": lambda p: (p.address or {}).get("street"),
    "suburb": lambda p: (p.address or {}).get("suburb"),
    "city": lambda p: (p.address or {}).get("city"),
    "province": lambda p: (p.address or {}).get("province"),
    "postalCode": lambda p: (p.address or {}).get("postalCode"),
    "country": lambda p: p.country,
    "preferredMethodOfContact": lambda p: p.preferred_method_of_contact,
    "maritalStatus": lambda p: p.marital_status,
    "employmentStatus": lambda p: p.employment_status,
    "reasonForTransformation": lambda p: p.reason_for_transformation,
    "howDidYouHear": lambda p: p.how_did_you_hear,
    "preferredTreatmentCentre": lambda p: p.preferred_treatment_centre,
    "termsAccepted": lambda p: p.terms_accepted,
}

SA_ID_PATTERN = re.compile(r"^\d{13}$")
SA_POSTAL_CODE_PATTERN = re.compile(r"^\d{4}$")


def is_south_african(country: Optional[str]) -> bool:
    """A blank country counts as South Africa"""
    return not country or country.strip().lower() == DEFAULT_COUNTRY.lower()


def _filled(value) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def missing_fields(profile: ClientProfile) -> list[str]:
    """
    Required fields still empty, in form order.

    South Africans need an ID number; everyone else needs a passport or an ID
    number. That requirement is reported as "idNumber" or "idNumberOrPassport".
    """
    missing = [name for name, read in REQUIRED_FIELDS.items() if not _filled(read(profile))]

    if is_south_african(profile.country):
        if not _filled(profile.id_number):
            missing.append("idNumber")
    elif not (_filled(profile.id_number) or _filled(profile.passport)):
        missing.append("idNumberOrPassport")
    return missing


def completion_percentage(profile: ClientProfile) -> int:
    total = len(REQUIRED_FIELDS) + 1
    return round(100 * (total - len(missing_fields(profile))) / total)


def _merge(current: Optional[dict], changes: Optional[dict]) -> dict:
    """Copy of a JSON sub-document with the non-empty changes applied"""
    merged = dict(current or {})
    for key, value in (changes or {}).items():
        value = sanitize_text(value) if isinstance(value, str) else value
        if value is not None:
            merged[key] = value
    return merged


class ProfileService:
    """Service layer for the signed-in client's profile"""

    def __init__(self, db: Session, clock: Clock = utc_now):
        self.db = db
        self.clock = clock
        self.repo = ProfileRepository()

    def get_profile(self, session: CurrentSession) -> ClientProfile:
        profile = self.repo.get_profile(self.db, session.uid)
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")
        return profile

    def update_profile(self, session: CurrentSession, data: ProfileUpdate) -> ClientProfile:
        """
        Apply a partial update and mark onboarding complete once nothing
        required is missing. Completion is recorded once and never reverts.
        """
        profile = self.get_profile(session)

        try:
            updates = {}
            for attr, column in TEXT_FIELDS.items():
                value = getattr(data, attr)
                updates[column] = sanitize_text(value) if isinstance(value, str) else value
            if data.address is not None:
                updates["address"] = _merge(profile.address, data.address.model_dump(exclude_none=True))
            if data.medicalInfo is not None:
                updates["medical_info"] = _merge(
                    profile.medical_info, data.medicalInfo.model_dump(exclude_none=True)
                )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        updates.update(
            mobile=data.mobile,
            date_of_birth=data.dateOfBirth,
            terms_accepted=data.termsAccepted,
        )

        country = updates["country"] or profile.country
        if is_south_african(country):
            id_number = updates["id_number"] or profile.id_number
            if id_number and not SA_ID_PATTERN.match(id_number):
                raise HTTPException(status_code=400, detail="South African ID number must be 13 digits")
            postal_code = (updates.get("address") or profile.address or {}).get("postalCode")
            if postal_code and not SA_POSTAL_CODE_PATTERN.match(postal_code):
                raise HTTPException(status_code=400, detail="South African postal code must be 4 digits")

        user = self.db.get(User, session.uid)
        profile = self.repo.update_profile(self.db, profile, user, **updates)

        if not profile.onboarding_completed and not missing_fields(profile):
            profile = self.repo.update_profile(
                self.db, profile, onboarding_completed=True, onboarding_completed_at=self.clock()
            )
            logger.info(f"✅ Onboarding completed for {session.uid}")
        else:
            logger.info(f"✅ Profile updated for {session.uid}")
        return profile
