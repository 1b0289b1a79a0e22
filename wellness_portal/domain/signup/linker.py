"""
Client Record Linker.

Staff often create a client record (by hand or through import) before the
client signs up. When someone registers with the same email, the new account
is linked to that record and its details seed the client's profile.

The user row and profile are committed before the record link, so a failed
link never leaves an auth account that cannot log in. Both failures carry the
account id, and resume_signup finishes whatever was left unwritten.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import CENTRE_TIMEZONE, DEFAULT_COUNTRY
from ...firebase_accounts import AuthAccount
from ...models import Client, ClientProfile, User
from ...shared.clock import Clock, utc_now
from ...shared.validators import normalize_email
from ..clients.repository import ClientRepository

logger = logging.getLogger(__name__)


class LinkWriteError(Exception):
    """The profile was written but the matched client record could not be linked"""

    def __init__(self, account_id: str, client_id: str, outcome: Optional["SignupOutcome"] = None):
        super().__init__(f"Failed to link client record {client_id} to account {account_id}")
        self.account_id = account_id
        self.client_id = client_id
        self.outcome = outcome


class ProfileCreateError(Exception):
    """The account exists but its user row or client profile was not written"""

    def __init__(self, account_id: str):
        super().__init__(f"Failed to create profile for account {account_id}")
        self.account_id = account_id


@dataclass
class LookupResult:
    match: Optional[Client] = None
    lookup_failed: bool = False
    candidates: int = 0


@dataclass
class SignupOutcome:
    user: User
    profile: ClientProfile
    linked_client: Optional[Client] = None

    @property
    def linked(self) -> bool:
        return self.linked_client is not None


def default_preferences() -> dict:
    return {
        "timezone": CENTRE_TIMEZONE,
        "notifications": {"email": True, "push": True, "reminders": True},
        "privacy": {"shareDataWithAdmin": True, "allowAnalytics": True},
    }


def build_profile(
    account: AuthAccount, first_name: str, last_name: str, record: Optional[Client]
) -> ClientProfile:
    """
    Client profile for a new account, seeded from the matched record when there is one.

    client_record_id stays empty until link_record commits the link.
    """
    profile = ClientProfile(
        id=account.uid,
        email=normalize_email(account.email),
        first_name=first_name,
        last_name=last_name,
        role="client",
        address={},
        medical_info={},
        goals=[],
        health_metrics=[],
        preferences=default_preferences(),
        onboarding_completed=False,
        imported_from_client_record=record is not None,
    )
    if record is None:
        return profile

    profile.mobile = record.mobile
    profile.gender = record.gender
    profile.date_of_birth = record.date_of_birth
    profile.id_number = record.id_number
    profile.passport = record.passport
    profile.country = record.country or DEFAULT_COUNTRY
    profile.address = {
        "street": record.address1 or "",
        "suburb": record.suburb or "",
        "city": record.city_town or "",
        "province": record.province or "",
        "postalCode": record.postal_code or "",
    }
    profile.medical_info = {
        "allergies": record.allergies or "",
        "medications": record.current_medication or "",
        "conditions": record.chronic_conditions or "",
        "treatments": record.current_treatments or "",
    }
    profile.preferred_method_of_contact = record.preferred_method_of_contact
    profile.marital_status = record.marital_status
    profile.employment_status = record.employment_status
    profile.preferred_treatment_centre = record.my_nearest_treatment_centre
    profile.reason_for_transformation = record.reason_for_transformation
    profile.how_did_you_hear = record.how_did_you_hear
    profile.referrer_name = record.referrer_name
    return profile


class ClientRecordLinker:
    """Matches a signup email to an existing client record and links the two"""

    def __init__(self, db: Session, clock: Clock = utc_now):
        self.db = db
        self.clock = clock
        self.repo = ClientRepository()

    def find_match(self, email: str) -> LookupResult:
        """
        Exact match on the lower-cased, trimmed email.

        A store failure is reported as lookup_failed rather than raised, so
        signup can continue without a link.
        """
        normalized = normalize_email(email)
        if not normalized or "@" not in normalized:
            return LookupResult()

        try:
            records = self.repo.find_by_email(self.db, normalized)
        except SQLAlchemyError as e:
            logger.error(f"❌ Client record lookup failed for {normalized}: {str(e)}")
            self.db.rollback()
            return LookupResult(lookup_failed=True)

        if not records:
            return LookupResult()

        if len(records) > 1:
            logger.warning(
                f"⚠️ {len(records)} client records share {normalized}; using oldest {records[0].id}"
            )
        return LookupResult(match=records[0], candidates=len(records))

    def resolve_match(self, email: str, matched_client_id: Optional[str] = None) -> LookupResult:
        """Re-check the record chosen at lookup time, or look up again"""
        if matched_client_id:
            try:
                record = self.repo.get_client_by_id(self.db, matched_client_id)
            except SQLAlchemyError as e:
                logger.error(f"❌ Client record fetch failed for {matched_client_id}: {str(e)}")
                self.db.rollback()
                record = None
            if record is not None and record.email == normalize_email(email):
                return LookupResult(match=record, candidates=1)
            logger.warning(f"⚠️ Submitted client record {matched_client_id} does not match {email}")

        return self.find_match(email)

    def complete_signup(
        self,
        account: AuthAccount,
        first_name: str,
        last_name: str,
        record: Optional[Client] = None,
    ) -> SignupOutcome:
        """
        Persist everything that follows a successful account creation.

        The user row and profile are committed first, so the account can log
        in even when the record link fails afterwards. With a matched record
        the profile is seeded from it and the link is a second commit.

        Raises:
            ProfileCreateError: the user/profile commit failed; nothing was written
            LinkWriteError: the profile exists but the record link failed;
                `outcome` holds the stored user and profile
        """
        user = User(
            id=account.uid,
            email=normalize_email(account.email),
            first_name=first_name,
            last_name=last_name,
            role="client",
            is_active=True,
            centre_ids=[],
            specializations=[],
            qualifications=[],
            phone=record.mobile if record is not None else None,
        )
        profile = build_profile(account, first_name, last_name, record)

        try:
            self.db.add_all([user, profile])
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Profile creation failed for account {account.uid}: {str(e)}")
            raise ProfileCreateError(account.uid) from e

        self.db.refresh(user)
        self.db.refresh(profile)
        outcome = SignupOutcome(user=user, profile=profile)

        if record is not None:
            self.link_record(outcome, record)

        logger.info(f"✅ Signup completed for {account.uid} (linked={outcome.linked})")
        return outcome

    def link_record(self, outcome: SignupOutcome, record: Client) -> SignupOutcome:
        """Mark the record as belonging to the account and point the profile at it, in one commit"""
        account_id = outcome.user.id
        record_id = record.id
        try:
            record.account_id = account_id
            record.status = "active"
            record.linked_at = self.clock()
            record.user_account_created = True
            outcome.profile.client_record_id = record_id
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Link write failed for record {record_id} -> {account_id}: {str(e)}")
            raise LinkWriteError(account_id, record_id, outcome) from e

        self.db.refresh(record)
        outcome.linked_client = record
        logger.info(f"✅ Linked client record {record_id} to account {account_id}")
        return outcome

    def resume_signup(
        self,
        account: AuthAccount,
        first_name: str,
        last_name: str,
        record: Optional[Client] = None,
    ) -> SignupOutcome:
        """
        Finish a signup whose writes were interrupted.

        Writes whatever is still missing for an existing auth account and
        retries the record link. Safe to call again once everything is in place.
        """
        if record is not None and record.account_id and record.account_id != account.uid:
            logger.warning(f"⚠️ Client record {record.id} already belongs to account {record.account_id}")
            record = None

        user = self.db.get(User, account.uid)
        if user is None:
            return self.complete_signup(account, first_name, last_name, record)

        profile = self.db.get(ClientProfile, account.uid)
        if profile is None:
            profile = build_profile(account, first_name, last_name, record)
            try:
                self.db.add(profile)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Profile creation failed for account {account.uid}: {str(e)}")
                raise ProfileCreateError(account.uid) from e
            self.db.refresh(profile)

        outcome = SignupOutcome(user=user, profile=profile)

        if profile.client_record_id:
            outcome.linked_client = self.repo.get_client_by_id(self.db, profile.client_record_id)
            return outcome

        if record is None:
            return outcome
        return self.link_record(outcome, record)
