"""Staff router - FastAPI endpoints for staff profiles, roles and photos"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from ...auth import CurrentSession, get_current_session, require_permission
from ...database import get_db
from ...firebase_accounts import FirebaseAccountProvider, get_account_provider
from ...models import User
from ...permissions import Permissions, get_permissions_for_role
from ...shared.clock import Clock, get_clock
from ...storage import generate_presigned_url
from .schemas import PhotoResponse, RoleUpdate, StaffCreate, StaffResponse, StaffUpdate
from .service import StaffService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["Staff"])
users_router = APIRouter(prefix="/users", tags=["Users"])


def get_staff_service(
    db: Session = Depends(get_db),
    account_provider: FirebaseAccountProvider = Depends(get_account_provider),
) -> StaffService:
    """Dependency injection for StaffService"""
    return StaffService(db, account_provider)


def staff_response(u: User, with_photo_url: bool = False) -> StaffResponse:
    return StaffResponse(
        id=u.id,
        email=u.email,
        firstName=u.first_name,
        lastName=u.last_name,
        role=u.role,
        isActive=u.is_active,
        centreIds=u.centre_ids or [],
        phone=u.phone,
        position=u.position,
        department=u.department,
        specializations=u.specializations or [],
        qualifications=u.qualifications or [],
        bio=u.bio,
        photoUrl=generate_presigned_url(u.photo_key) if with_photo_url and u.photo_key else None,
        permissions=get_permissions_for_role(u.role),
        createdAt=u.created_at,
    )


@router.get("", response_model=list[StaffResponse])
async def list_staff(
    centre_id: Optional[str] = Query(None, alias="centreId"),
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_STAFF)),
    service: StaffService = Depends(get_staff_service),
):
    """List active staff, scoped to the caller's centres unless admin"""
    return [staff_response(u) for u in service.list_staff(session, centre_id)]


@router.post("", response_model=StaffResponse, status_code=201)
async def create_staff(
    data: StaffCreate,
    session: CurrentSession = Depends(require_permission(Permissions.CREATE_STAFF)),
    service: StaffService = Depends(get_staff_service),
):
    return staff_response(await service.create_staff(data, session))


@router.get("/{user_id}", response_model=StaffResponse)
async def get_staff(
    user_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_STAFF)),
    service: StaffService = Depends(get_staff_service),
):
    return staff_response(service.get_user(user_id), with_photo_url=True)


@router.patch("/{user_id}", response_model=StaffResponse)
async def update_staff(
    user_id: str,
    data: StaffUpdate,
    session: CurrentSession = Depends(get_current_session),
    service: StaffService = Depends(get_staff_service),
):
    """Update a staff profile (own profile, or any with edit_staff)"""
    return staff_response(service.update_staff(user_id, data, session))


@router.post("/{user_id}/deactivate", response_model=StaffResponse)
async def deactivate_staff(
    user_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.DELETE_STAFF)),
    service: StaffService = Depends(get_staff_service),
):
    return staff_response(service.deactivate_staff(user_id, session))


@router.post("/{user_id}/photo", response_model=PhotoResponse)
async def upload_staff_photo(
    user_id: str,
    file: UploadFile = File(...),
    session: CurrentSession = Depends(get_current_session),
    service: StaffService = Depends(get_staff_service),
    clock: Clock = Depends(get_clock),
):
    key = await service.upload_photo(user_id, file, session, clock())
    return PhotoResponse(key=key, url=generate_presigned_url(key))


# ============================================================================
# ACCOUNTS
# ============================================================================


@users_router.get("/me", response_model=StaffResponse)
async def get_me(
    session: CurrentSession = Depends(get_current_session),
    service: StaffService = Depends(get_staff_service),
):
    """The caller's own account with its effective permissions"""
    return staff_response(service.get_user(session.uid), with_photo_url=True)


@users_router.post("/me/photo", response_model=PhotoResponse)
async def upload_own_photo(
    file: UploadFile = File(...),
    session: CurrentSession = Depends(get_current_session),
    service: StaffService = Depends(get_staff_service),
    clock: Clock = Depends(get_clock),
):
    key = await service.upload_photo(session.uid, file, session, clock())
    return PhotoResponse(key=key, url=generate_presigned_url(key))


@users_router.put("/{user_id}/role", response_model=StaffResponse)
async def change_role(
    user_id: str,
    data: RoleUpdate,
    session: CurrentSession = Depends(require_permission(Permissions.MANAGE_ROLES)),
    service: StaffService = Depends(get_staff_service),
):
    return staff_response(service.change_role(user_id, data, session))
