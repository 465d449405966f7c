"""Auth Service — password hashing, session JWTs and static security-token checks.

Invariants:
    - Passwords hashed with bcrypt (passlib CryptContext); plaintext never stored or logged
    - Session JWT: HS256, payload {userId, email, iat, exp}, expiry from settings (24h)
    - Security tokens compared against the configured lists for a purpose;
      purpose None accepts a token from any list
    - Token headers read in fixed order: x-security-token, x-api-token,
      Authorization (Bearer stripped), x-access-token

Design Decisions:
    - CryptContext built per rounds value and cached: tests run with 4 rounds,
      production with 12, no global mutation
    - decode_session_token raises jwt.InvalidTokenError; dependencies map it to 403
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Mapping

import jwt
from passlib.context import CryptContext

from cctv_api.config import Settings

JWT_ALGORITHM = "HS256"
AUTH_COOKIE_NAME = "auth_token"
TOKEN_PURPOSES = ("registration", "admin", "sensitive", "general")
SECURITY_TOKEN_HEADERS = ("x-security-token", "x-api-token", "authorization", "x-access-token")


@lru_cache
def _crypt_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, rounds: int = 12) -> str:
    return _crypt_context(rounds).hash(password)


def verify_password(password: str, password_hash: str, rounds: int = 12) -> bool:
    try:
        return _crypt_context(rounds).verify(password, password_hash)
    except ValueError:
        # Malformed stored hash
        return False


def create_session_token(user_id: int, email: str, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expires_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str, settings: Settings) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])


def cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict",
        "max_age": settings.jwt_expires_hours * 60 * 60,
    }


def extract_security_token(headers: Mapping[str, str]) -> str | None:
    """First non-empty token among the accepted headers."""
    for name in SECURITY_TOKEN_HEADERS:
        value = headers.get(name)
        if not value:
            continue
        if name == "authorization":
            value = value.replace("Bearer ", "", 1)
        value = value.strip()
        if value:
            return value
    return None


def verify_security_token(token: str, settings: Settings, purpose: str | None = None) -> bool:
    if not token:
        return False
    purposes = (purpose,) if purpose else TOKEN_PURPOSES
    return any(token in settings.token_list(p) for p in purposes)


def mask_token(token: str) -> str:
    return token[:8] + "***"
