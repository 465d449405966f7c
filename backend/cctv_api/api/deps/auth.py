"""Auth Dependencies — session-cookie users, static security tokens and their combinations.

Invariants:
    - authenticate_token: no cookie → 401 "Access token is required";
      bad/expired JWT → 403 "Invalid token"; deleted user → 401 "User not found"
    - require_security_token(purpose): no token → 401 MISSING_SECURITY_TOKEN;
      token not in the purpose's list → 403 INVALID_SECURITY_TOKEN
    - flexible_auth: cookie user first, then a general token; neither → 401
      AUTHENTICATION_REQUIRED with the accepted methods listed in details
    - optional_* variants never raise; they return None
    - Role names are attached to the caller but never consulted for access

Design Decisions:
    - Dependencies return a Caller value instead of mutating request.state:
      routes declare exactly what they need in their signature
    - The same get_db session is shared with the route (FastAPI caches
      dependencies per request)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import jwt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.config import get_settings
from cctv_api.core.errors import AuthenticationError, ForbiddenError
from cctv_api.infrastructure.database import get_db
from cctv_api.models import User
from cctv_api.services.auth_service import (
    AUTH_COOKIE_NAME, decode_session_token, extract_security_token,
    mask_token, verify_security_token,
)

logger = logging.getLogger(__name__)

USER_AUTH = "user_auth"
GENERAL_TOKEN_AUTH = "general_token"

ACCEPTED_METHODS = [
    "User session token (cookie: auth_token)",
    "General access token (header: x-security-token, x-api-token, authorization, or x-access-token)",
]


@dataclass(frozen=True)
class VerifiedToken:
    token: str
    purpose: str | None
    verified_at: str

    def to_dict(self) -> dict:
        return {"token": self.token, "purpose": self.purpose, "verifiedAt": self.verified_at}


@dataclass(frozen=True)
class Caller:
    """Who is making the request, however they proved it."""
    auth_method: str
    user_id: int | None = None
    email: str | None = None
    roles: list[dict] = field(default_factory=list)
    security_token: VerifiedToken | None = None


def _user_caller(user: User) -> Caller:
    return Caller(
        auth_method=USER_AUTH,
        user_id=user.id,
        email=user.email,
        roles=[{"name": role.name} for role in user.roles],
    )


def _verify(token: str, purpose: str | None) -> VerifiedToken | None:
    if not verify_security_token(token, get_settings(), purpose):
        return None
    return VerifiedToken(
        token=mask_token(token),
        purpose=purpose,
        verified_at=datetime.now(timezone.utc).isoformat(),
    )


async def _user_from_cookie(request: Request, db: AsyncSession) -> User | None:
    """Resolve the cookie's user; raises on a missing/invalid cookie or a deleted user."""
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if not token:
        raise AuthenticationError("Access token is required")
    try:
        payload = decode_session_token(token, get_settings())
    except jwt.InvalidTokenError:
        raise ForbiddenError("Invalid token")
    user_id = payload.get("userId")
    user = await db.get(User, user_id) if user_id is not None else None
    if user is None:
        raise AuthenticationError("User not found")
    return user


# ─── Session cookie ─────────────────────────────────────────────

async def authenticate_token(
    request: Request, db: AsyncSession = Depends(get_db),
) -> Caller:
    return _user_caller(await _user_from_cookie(request, db))


async def optional_authenticate_token(
    request: Request, db: AsyncSession = Depends(get_db),
) -> Caller | None:
    try:
        return _user_caller(await _user_from_cookie(request, db))
    except (AuthenticationError, ForbiddenError):
        return None


# ─── Static security tokens ─────────────────────────────────────

def require_security_token(purpose: str | None = None):
    """Dependency factory checking a header token against the purpose's list."""

    async def dependency(request: Request) -> Caller:
        token = extract_security_token(request.headers)
        if not token:
            raise AuthenticationError(
                "Security token is required", code="MISSING_SECURITY_TOKEN",
            )
        verified = _verify(token, purpose)
        if verified is None:
            logger.warning(
                f"Rejected security token {mask_token(token)}",
                extra={"path": request.url.path},
            )
            raise ForbiddenError("Invalid security token", code="INVALID_SECURITY_TOKEN")
        return Caller(auth_method=GENERAL_TOKEN_AUTH, security_token=verified)

    return dependency


require_registration_token = require_security_token("registration")
require_admin_token = require_security_token("admin")
require_sensitive_token = require_security_token("sensitive")
require_general_token = require_security_token("general")


# ─── Cookie or general token ────────────────────────────────────

async def _resolve_flexible(request: Request, db: AsyncSession) -> Caller | None:
    if request.cookies.get(AUTH_COOKIE_NAME):
        try:
            return _user_caller(await _user_from_cookie(request, db))
        except (AuthenticationError, ForbiddenError):
            logger.info("User authentication failed, trying general token")
    token = extract_security_token(request.headers)
    if token:
        verified = _verify(token, "general")
        if verified is not None:
            return Caller(auth_method=GENERAL_TOKEN_AUTH, security_token=verified)
    return None


async def flexible_auth(
    request: Request, db: AsyncSession = Depends(get_db),
) -> Caller:
    caller = await _resolve_flexible(request, db)
    if caller is None:
        raise AuthenticationError(
            "Authentication required. Please provide either a valid user session "
            "token or a general access token.",
            code="AUTHENTICATION_REQUIRED",
            details={"acceptedMethods": ACCEPTED_METHODS},
        )
    return caller


async def optional_flexible_auth(
    request: Request, db: AsyncSession = Depends(get_db),
) -> Caller | None:
    return await _resolve_flexible(request, db)
