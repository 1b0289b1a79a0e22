"""Profile repository - Database operations for client profiles"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ClientProfile, User


class ProfileRepository:
    """Repository for client profile database operations"""

    @staticmethod
    def get_profile(db: Session, account_id: str) -> Optional[ClientProfile]:
        return db.query(ClientProfile).filter(ClientProfile.id == account_id).first()

    @staticmethod
    def update_profile(db: Session, profile: ClientProfile, user: Optional[User] = None, **updates) -> ClientProfile:
        """
        Update a profile with the provided fields and mirror names and mobile
        onto the user row. None leaves a field unchanged.
        """
        for key, value in updates.items():
            if value is not None and hasattr(profile, key):
                setattr(profile, key, value)

        if user is not None:
            user.first_name = profile.first_name
            user.last_name = profile.last_name
            user.phone = profile.mobile

        db.commit()
        db.refresh(profile)
        return profile
