"""
Account creation against the Firebase Identity Toolkit REST API.

The signup flow only needs two calls: create an email/password account and set
its display name. Both go through httpx with a bounded timeout; failures are
raised as AccountCreationError and never retried here.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import FIREBASE_API_KEY, FIREBASE_HTTP_TIMEOUT

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error codes mapped to (HTTP status, user-facing message)
PROVIDER_ERRORS = {
    "EMAIL_EXISTS": (409, "An account with this email already exists"),
    "INVALID_EMAIL": (400, "Invalid email address"),
    "WEAK_PASSWORD": (400, "Password is too weak"),
    "OPERATION_NOT_ALLOWED": (403, "Email/password sign up is disabled"),
    "TOO_MANY_ATTEMPTS_TRY_LATER": (429, "Too many attempts. Please try again later"),
}


@dataclass
class AuthAccount:
    uid: str
    email: str
    id_token: Optional[str] = None


class AccountCreationError(Exception):
    """The auth provider did not create the account"""

    def __init__(self, message: str, status_code: int = 502, provider_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider_code = provider_code


def _provider_error(response: httpx.Response) -> AccountCreationError:
    try:
        raw = response.json().get("error", {}).get("message", "")
    except ValueError:
        raw = ""
    # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
    code = raw.split(":")[0].strip() if raw else ""
    status_code, message = PROVIDER_ERRORS.get(
        code, (502, "An error occurred during sign up. Please try again")
    )
    return AccountCreationError(message, status_code=status_code, provider_code=code or None)


class FirebaseAccountProvider:
    """Creates auth accounts through the Identity Toolkit REST endpoints"""

    def __init__(self, api_key: Optional[str] = None, timeout: float = FIREBASE_HTTP_TIMEOUT):
        self.api_key = api_key or FIREBASE_API_KEY
        self.timeout = timeout

    async def create_account(self, email: str, password: str, display_name: str) -> AuthAccount:
        if not self.api_key:
            logger.error("❌ FIREBASE_API_KEY not configured")
            raise AccountCreationError("Sign up is not configured", status_code=500)

        params = {"key": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{IDENTITY_TOOLKIT_URL}/accounts:signUp",
                    params=params,
                    json={"email": email, "password": password, "returnSecureToken": True},
                )
                if response.status_code != 200:
                    error = _provider_error(response)
                    logger.warning(f"⚠️ Account creation rejected for {email}: {error.provider_code}")
                    raise error

                data = response.json()
                account = AuthAccount(
                    uid=data["localId"], email=data.get("email", email), id_token=data.get("idToken")
                )

                # Display name is cosmetic; a failure here does not undo the account
                update = await client.post(
                    f"{IDENTITY_TOOLKIT_URL}/accounts:update",
                    params=params,
                    json={"idToken": account.id_token, "displayName": display_name},
                )
                if update.status_code != 200:
                    logger.warning(f"⚠️ Could not set display name for {account.uid}")
        except httpx.TimeoutException as e:
            logger.error(f"❌ Auth provider timed out creating account for {email}")
            raise AccountCreationError(
                "The sign up service timed out. Please try again", status_code=504
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ Auth provider request failed: {str(e)}")
            raise AccountCreationError("An error occurred during sign up. Please try again") from e

        logger.info(f"✅ Auth account created: {account.uid}")
        return account


def get_account_provider() -> FirebaseAccountProvider:
    """Dependency injection for the account provider"""
    return FirebaseAccountProvider()
