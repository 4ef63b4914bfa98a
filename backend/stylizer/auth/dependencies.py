"""
FastAPI dependencies for authentication.

- get_current_user: token required, rejects absent (401) and invalid (403) tokens
- get_optional_user: same verification, returns None for anonymous callers
- get_admin_user: authenticated user listed in ADMIN_UIDS
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from stylizer.auth.firebase import verify_token
from stylizer.config import settings
from stylizer.errors import AuthError, ForbiddenError, InvalidTokenError

logger = logging.getLogger(__name__)

# auto_error=False: missing credentials are reported with our own error codes
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity attached to a request after token verification."""
    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: dict) -> "AuthenticatedUser":
        email = claims.get("email")
        return cls(
            uid=claims["uid"],
            email=email,
            email_verified=bool(claims.get("email_verified", False)),
            name=claims.get("name") or email,
        )


async def _authenticate(token: str) -> AuthenticatedUser:
    """
    Verify token and build the request identity.

    Raises:
        InvalidTokenError: If verification fails or the token has no uid
    """
    try:
        claims = await verify_token(token)
    except (ValueError, RuntimeError) as e:
        logger.warning(
            f"Authentication error: {e}",
            extra={"event": "auth_failed"},
        )
        raise InvalidTokenError("Invalid or expired token")

    if not claims.get("uid"):
        raise InvalidTokenError("Invalid token: missing uid")

    return AuthenticatedUser.from_claims(claims)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """
    FastAPI dependency that verifies Firebase JWT token and returns the caller.

    Flow:
    1. Extract Bearer token from Authorization header
    2. Verify token with Firebase Admin SDK
    3. Return uid, email, verification status and display name

    Raises:
        AuthError (401): If token is missing
        InvalidTokenError (403): If token is invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required")

    user = await _authenticate(credentials.credentials)
    logger.debug("User authenticated", extra={"event": "auth_ok", "user_id": user.uid})
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthenticatedUser]:
    """
    Like get_current_user, but anonymous or invalid callers get None
    instead of an error.
    """
    if credentials is None or not credentials.credentials:
        return None

    try:
        return await _authenticate(credentials.credentials)
    except InvalidTokenError:
        logger.info("Optional auth: invalid token, continuing without user")
        return None


async def get_admin_user(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Require an authenticated user listed in ADMIN_UIDS."""
    if user.uid not in settings.admin_uid_set:
        raise ForbiddenError("Admin privileges required")
    return user
