"""Signup router - public endpoints for client registration"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_verified_claims
from ...database import get_db
from ...firebase_accounts import AccountCreationError, AuthAccount, FirebaseAccountProvider, get_account_provider
from ...models import Client
from ...rate_limiter import signup_lookup_rate_limit, signup_rate_limit
from ...shared.clock import Clock, get_clock
from .linker import ClientRecordLinker, LinkWriteError, ProfileCreateError, SignupOutcome
from .schemas import CompleteSignupRequest, LookupResponse, SignupRequest, SignupResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/signup", tags=["Signup"])


def get_linker(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> ClientRecordLinker:
    """Dependency injection for ClientRecordLinker"""
    return ClientRecordLinker(db, clock)


def signup_failure(e: Exception) -> HTTPException:
    if isinstance(e, LinkWriteError):
        return HTTPException(
            status_code=502,
            detail={
                "code": "link_failed",
                "accountId": e.account_id,
                "profileCreated": True,
                "message": "Your account was created and you can sign in, but we could not link "
                "your client record. Please contact the centre.",
            },
        )
    return HTTPException(
        status_code=502,
        detail={
            "code": "profile_failed",
            "accountId": e.account_id,
            "profileCreated": False,
            "message": "Your account was created but your profile could not be saved. "
            "Please sign in to finish setting it up.",
        },
    )


def resolve_names(first_name: Optional[str], last_name: Optional[str], record: Optional[Client]) -> tuple[str, str]:
    """Submitted names, with blanks taken from the matched record"""
    if record is not None:
        first_name = first_name or record.first_name
        last_name = last_name or record.last_name
    if not first_name or not last_name:
        raise HTTPException(status_code=422, detail="First and last name are required")
    return first_name, last_name


def signup_response(outcome: SignupOutcome) -> SignupResponse:
    return SignupResponse(
        accountId=outcome.user.id,
        email=outcome.user.email,
        linked=outcome.linked,
        clientRecordId=outcome.profile.client_record_id,
        onboardingCompleted=outcome.profile.onboarding_completed,
        message=(
            "Account created and linked to your existing client record"
            if outcome.linked
            else "Account created successfully"
        ),
    )


@router.get("/lookup", response_model=LookupResponse)
async def lookup_client_record(
    email: str = Query(..., max_length=255),
    linker: ClientRecordLinker = Depends(get_linker),
    _: None = Depends(signup_lookup_rate_limit),
):
    """
    Check whether staff already hold a client record for this email.

    Called by the signup form (debounced). Only the first initial of the stored
    name is returned, since anyone can call this with any email. A failed
    lookup is reported so the form can warn, but never blocks signup.
    """
    result = linker.find_match(email)

    if result.lookup_failed:
        return LookupResponse(
            matched=False,
            lookupFailed=True,
            message="We could not check for an existing client record. You can still sign up.",
        )

    if result.match is None:
        return LookupResponse(matched=False)

    record = result.match
    return LookupResponse(
        matched=True,
        clientId=record.id,
        firstInitial=(record.first_name or "")[:1].upper() or None,
        message="We found your client record. Your information will be linked to your new account.",
    )


@router.post("", response_model=SignupResponse, status_code=201)
async def signup(
    data: SignupRequest,
    linker: ClientRecordLinker = Depends(get_linker),
    account_provider: FirebaseAccountProvider = Depends(get_account_provider),
    _: None = Depends(signup_rate_limit),
):
    """Create the auth account, then write the profile and link any matching client record"""
    email = data.email.lower()
    logger.info(f"📥 Signup request for {email}")

    lookup = linker.resolve_match(email, data.matchedClientId)
    first_name, last_name = resolve_names(data.firstName, data.lastName, lookup.match)

    try:
        account = await account_provider.create_account(email, data.password, f"{first_name} {last_name}")
    except AccountCreationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    try:
        outcome = linker.complete_signup(account, first_name, last_name, lookup.match)
    except (LinkWriteError, ProfileCreateError) as e:
        raise signup_failure(e)

    return signup_response(outcome)


@router.post("/complete", response_model=SignupResponse)
async def complete_signup(
    data: CompleteSignupRequest,
    claims: dict = Depends(get_verified_claims),
    linker: ClientRecordLinker = Depends(get_linker),
    _: None = Depends(signup_rate_limit),
):
    """
    Finish signup for a signed-in auth account.

    Writes the user row and profile if they are missing and retries the
    client record link. Repeating the call once everything exists is harmless.
    """
    email = (claims.get("email") or "").lower()
    if not email:
        raise HTTPException(status_code=400, detail="Token has no email address")

    logger.info(f"📥 Signup completion for {claims['uid']}")
    lookup = linker.resolve_match(email, data.matchedClientId)
    first_name, last_name = resolve_names(data.firstName, data.lastName, lookup.match)
    account = AuthAccount(uid=claims["uid"], email=email)

    try:
        outcome = linker.resume_signup(account, first_name, last_name, lookup.match)
    except (LinkWriteError, ProfileCreateError) as e:
        raise signup_failure(e)

    return signup_response(outcome)
