"""Profile router - the signed-in client's own profile"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import CurrentSession, get_current_session
from ...database import get_db
from ...models import ClientProfile
from ...shared.clock import Clock, get_clock
from .schemas import ProfileResponse, ProfileUpdate
from .service import ProfileService, completion_percentage, missing_fields

router = APIRouter(prefix="/users/me/profile", tags=["Profiles"])


def get_profile_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> ProfileService:
    """Dependency injection for ProfileService"""
    return ProfileService(db, clock)


def profile_response(p: ClientProfile) -> ProfileResponse:
    return ProfileResponse(
        id=p.id,
        email=p.email,
        firstName=p.first_name,
        lastName=p.last_name,
        role=p.role,
        clientRecordId=p.client_record_id,
        mobile=p.mobile,
        gender=p.gender,
        dateOfBirth=p.date_of_birth,
        idNumber=p.id_number,
        passport=p.passport,
        country=p.country,
        address=p.address or {},
        medicalInfo=p.medical_info or {},
        preferredMethodOfContact=p.preferred_method_of_contact,
        maritalStatus=p.marital_status,
        employmentStatus=p.employment_status,
        preferredTreatmentCentre=p.preferred_treatment_centre,
        reasonForTransformation=p.reason_for_transformation,
        howDidYouHear=p.how_did_you_hear,
        referrerName=p.referrer_name,
        goals=p.goals or [],
        healthMetrics=p.health_metrics or [],
        preferences=p.preferences or {},
        termsAccepted=p.terms_accepted,
        onboardingCompleted=p.onboarding_completed,
        onboardingCompletedAt=p.onboarding_completed_at,
        importedFromClientRecord=p.imported_from_client_record,
        missingFields=missing_fields(p),
        completionPercentage=completion_percentage(p),
    )


@router.get("", response_model=ProfileResponse)
async def get_my_profile(
    session: CurrentSession = Depends(get_current_session),
    service: ProfileService = Depends(get_profile_service),
):
    """The caller's profile with what is still needed to finish onboarding"""
    return profile_response(service.get_profile(session))


@router.patch("", response_model=ProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    session: CurrentSession = Depends(get_current_session),
    service: ProfileService = Depends(get_profile_service),
):
    return profile_response(service.update_profile(session, data))
