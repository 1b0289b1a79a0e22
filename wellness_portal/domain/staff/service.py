"""Staff service - Business logic for staff profiles and roles"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy.orm import Session

from ...auth import CurrentSession
from ...firebase_accounts import AccountCreationError, FirebaseAccountProvider
from ...models import User
from ...permissions import Permissions
from ...storage import upload_photo
from ...utils.sanitization import sanitize_text
from ..catalogue.repository import CatalogueRepository
from .repository import StaffRepository
from .schemas import RoleUpdate, StaffCreate, StaffUpdate

logger = logging.getLogger(__name__)


class StaffService:
    """Service layer for staff business logic"""

    def __init__(self, db: Session, account_provider: Optional[FirebaseAccountProvider] = None):
        self.db = db
        self.repo = StaffRepository()
        self.account_provider = account_provider

    def list_staff(self, session: CurrentSession, centre_id: Optional[str] = None) -> list[User]:
        """Staff visible to the caller, optionally for one centre"""
        if centre_id:
            if not session.sees_all_centres and centre_id not in session.centre_ids:
                raise HTTPException(status_code=403, detail="You are not assigned to this centre")
            return self.repo.list_staff(self.db, centre_ids=[centre_id])

        scope = None if session.sees_all_centres else session.centre_ids
        return self.repo.list_staff(self.db, centre_ids=scope)

    def get_user(self, user_id: str) -> User:
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def _require_centres(self, centre_ids: list[str]) -> None:
        found = {c.id for c in CatalogueRepository.get_centres(self.db, centre_ids)}
        missing = [c for c in centre_ids if c not in found]
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown centre ids: {', '.join(missing)}")

    async def create_staff(self, data: StaffCreate, session: CurrentSession) -> User:
        """Create the auth account and the staff profile for a new staff member"""
        logger.info(f"📥 {session.email} creating staff member {data.email}")

        if data.role == "admin" and not session.can(Permissions.MANAGE_ROLES):
            raise HTTPException(status_code=403, detail="You cannot create administrators")

        if self.repo.get_user_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="A user with this email already exists")

        self._require_centres(data.centreIds)

        display_name = f"{data.firstName.strip()} {data.lastName.strip()}"
        try:
            account = await self.account_provider.create_account(
                data.email.lower(), data.password, display_name
            )
        except AccountCreationError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)

        user = self.repo.create_user(
            self.db,
            id=account.uid,
            email=data.email.lower(),
            first_name=data.firstName.strip(),
            last_name=data.lastName.strip(),
            role=data.role,
            is_active=True,
            centre_ids=list(dict.fromkeys(data.centreIds)),
            phone=data.phone,
            position=data.position,
            department=data.department,
            specializations=data.specializations,
            qualifications=data.qualifications,
            bio=sanitize_text(data.bio),
        )
        logger.info(f"✅ Staff member created: {user.id} ({user.role})")
        return user

    def update_staff(self, user_id: str, data: StaffUpdate, session: CurrentSession) -> User:
        user = self.get_user(user_id)

        is_self = user.id == session.uid
        if not is_self and not session.can(Permissions.EDIT_STAFF):
            raise HTTPException(status_code=403, detail="You can only edit your own profile")

        updates = {
            "first_name": data.firstName.strip() if data.firstName else None,
            "last_name": data.lastName.strip() if data.lastName else None,
            "phone": data.phone,
            "position": data.position,
            "department": data.department,
            "specializations": data.specializations,
            "qualifications": data.qualifications,
            "bio": sanitize_text(data.bio),
        }

        if data.centreIds is not None:
            # Centre assignment is an administrative decision
            if not session.can(Permissions.EDIT_STAFF):
                raise HTTPException(status_code=403, detail="You cannot change centre assignments")
            self._require_centres(data.centreIds)
            updates["centre_ids"] = list(dict.fromkeys(data.centreIds))

        return self.repo.update_user(self.db, user, **updates)

    def deactivate_staff(self, user_id: str, session: CurrentSession) -> User:
        user = self.get_user(user_id)
        if user.id == session.uid:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
        if user.role == "super-admin" and session.role != "super-admin":
            raise HTTPException(status_code=403, detail="Only a super admin can deactivate a super admin")

        logger.info(f"🚫 {session.email} deactivating user {user.id}")
        return self.repo.update_user(self.db, user, is_active=False)

    def change_role(self, user_id: str, data: RoleUpdate, session: CurrentSession) -> User:
        """
        Change a user's role.

        Requires manage_roles. Granting or revoking super-admin is reserved to
        super-admins, and nobody changes their own role.
        """
        if not session.can(Permissions.MANAGE_ROLES):
            raise HTTPException(status_code=403, detail="You do not have permission to manage roles")

        user = self.get_user(user_id)
        if user.id == session.uid:
            raise HTTPException(status_code=400, detail="You cannot change your own role")

        touches_super_admin = "super-admin" in (data.role, user.role)
        if touches_super_admin and session.role != "super-admin":
            logger.warning(f"🚫 {session.email} attempted super-admin role change on {user.id}")
            raise HTTPException(
                status_code=403, detail="Only a super admin can grant or revoke super admin"
            )

        logger.info(f"🔑 Role change for {user.id}: {user.role} -> {data.role} by {session.email}")
        return self.repo.update_user(self.db, user, role=data.role)

    async def upload_photo(
        self, user_id: str, file: UploadFile, session: CurrentSession, now: datetime
    ) -> str:
        """Store a profile photo for a user and return the object key"""
        user = self.get_user(user_id)
        if user.id != session.uid and not session.can(Permissions.EDIT_STAFF):
            raise HTTPException(status_code=403, detail="You can only change your own photo")

        owner = "staff" if user.role in ("staff", "admin") else "users"
        key = await upload_photo(file, owner, user.id, now)
        self.repo.update_user(self.db, user, photo_key=key)
        return key
