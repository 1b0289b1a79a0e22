import base64
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import httpx
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID
from .database import get_db
from .models import User
from .permissions import has_permission

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


@dataclass
class CurrentSession:
    """Identity of the caller, passed explicitly to anything that needs it"""

    uid: str
    email: str
    role: str
    centre_ids: list[str] = field(default_factory=list)
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    @property
    def sees_all_centres(self) -> bool:
        return self.role in ("admin", "super-admin")

    def can(self, permission: str) -> bool:
        return has_permission(self.role, permission)

    @classmethod
    def from_user(cls, user: User) -> "CurrentSession":
        return cls(
            uid=user.id,
            email=user.email,
            role=user.role,
            centre_ids=list(user.centre_ids or []),
            first_name=user.first_name or "",
            last_name=user.last_name or "",
        )


def _b64decode(segment: str) -> bytes:
    padding_len = 4 - len(segment) % 4
    return base64.urlsafe_b64decode(segment + ("=" * padding_len if padding_len != 4 else ""))


async def get_google_public_keys():
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys:
        logger.debug("✅ Using cached Google public keys")
        return _cached_keys

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(GOOGLE_CERTS_URL)
            if response.status_code == 200:
                _cached_keys = response.json()
                logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
                return _cached_keys
            logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token with full signature verification.
    Uses Google's public certificates to verify the RS256 JWT signature, then
    checks audience, issuer, expiry and issued-at claims.
    """
    global _cached_keys

    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
    except (ValueError, TypeError) as e:
        logger.error(f"❌ Failed to decode token header: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token header") from e

    if header.get("alg") != "RS256":
        raise HTTPException(status_code=401, detail="Invalid token algorithm")

    kid = header.get("kid")
    if not kid:
        raise HTTPException(status_code=401, detail="Token missing key ID")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, invalidating cache and retrying")
        _cached_keys = None
        public_keys = await get_google_public_keys()
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())

    try:
        signature = _b64decode(signature_b64)
        cert.public_key().verify(
            signature, f"{header_b64}.{payload_b64}".encode(), padding.PKCS1v15(), hashes.SHA256()
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    try:
        claims = json.loads(_b64decode(payload_b64))
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=401, detail="Invalid token payload") from e

    if claims.get("aud") != FIREBASE_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")

    if claims.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if claims.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )

    # Allow 60 seconds clock skew
    if claims.get("iat", 0) > now + 60:
        logger.warning("⚠️ Token issued in the future")
        raise HTTPException(status_code=401, detail="Invalid token")

    if "auth_time" not in claims:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return claims


async def get_verified_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Verified token claims with the account id under "uid".

    Does not require a user row, so an account whose signup was interrupted
    can still finish it.
    """
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = await verify_firebase_token(credentials.credentials)

    # Firebase ID tokens use 'sub' as the user ID claim
    uid = claims.get("sub") or claims.get("user_id")
    if not uid:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return {**claims, "uid": uid}


async def get_current_session(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> CurrentSession:
    """Resolve the caller's session from a Firebase ID token"""
    claims = await get_verified_claims(credentials)
    uid = claims["uid"]

    user = db.query(User).filter(User.id == uid).first()
    if not user:
        logger.warning(f"⚠️ Authenticated uid {uid} has no user profile")
        raise HTTPException(status_code=403, detail="User profile not found")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    logger.debug(f"✅ User authenticated: {user.email} ({user.role})")
    return CurrentSession.from_user(user)


def require_permission(permission: str):
    """
    Create a dependency that resolves the session and checks one permission.

    Example usage:
        @router.delete("/{appointment_id}")
        async def delete_appointment(
            session: CurrentSession = Depends(require_permission(Permissions.DELETE_APPOINTMENT)),
        ):
            ...
    """

    async def checker(session: CurrentSession = Depends(get_current_session)) -> CurrentSession:
        if not session.can(permission):
            logger.warning(f"🚫 {session.email} ({session.role}) lacks permission {permission}")
            raise HTTPException(status_code=403, detail="You do not have permission for this action")
        return session

    return checker


def optional_centre_scope(session: CurrentSession) -> Optional[list[str]]:
    """Centre ids a session is limited to, or None when it sees every centre"""
    return None if session.sees_all_centres else list(session.centre_ids)
