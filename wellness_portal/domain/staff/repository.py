"""Staff repository - Database operations for user accounts"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import STAFF_ROLES, User
from ...shared.validators import normalize_email


class StaffRepository:
    """Repository for staff and user account operations"""

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    @staticmethod
    def list_staff(
        db: Session,
        centre_ids: Optional[list[str]] = None,
        include_inactive: bool = False,
    ) -> list[User]:
        """
        List staff members (role staff or admin).

        centre_ids keeps only staff assigned to at least one of the given
        centres; None means no centre filter.
        """
        query = db.query(User).filter(User.role.in_(STAFF_ROLES))
        if not include_inactive:
            query = query.filter(User.is_active.is_(True))

        staff = query.order_by(User.first_name.asc(), User.last_name.asc()).all()
        if centre_ids is None:
            return staff
        wanted = set(centre_ids)
        return [u for u in staff if wanted.intersection(u.centre_ids or [])]

    @staticmethod
    def create_user(db: Session, **data) -> User:
        user = User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        """Update a user with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)

        db.commit()
        db.refresh(user)
        return user
