"""Auth Routes — register, login, current user, logout and password change.

Invariants:
    - register: rate limited (3/min per IP) and gated by a registration token
    - login: rate limited (10/min per IP); unknown email and wrong password
      produce the same 401 message
    - Successful register/login set the auth_token cookie (HTTP-only, strict)
    - /me never fails for a missing or bad cookie: it returns data null

Design Decisions:
    - Cookie set on the injected Response object so handlers can keep
      returning plain envelope dicts
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cctv_api.api.deps.auth import Caller, authenticate_token, optional_authenticate_token
from cctv_api.api.deps.auth import require_registration_token
from cctv_api.api.presenters import user_detail, user_dict
from cctv_api.api.rate_limit import login_limiter, register_limiter
from cctv_api.config import get_settings
from cctv_api.core.envelope import success
from cctv_api.core.errors import AuthenticationError, BusinessRuleError, ResourceNotFoundError
from cctv_api.infrastructure.database import get_db
from cctv_api.models import Role, User
from cctv_api.schemas.auth import ChangePasswordRequest, LoginRequest, RegisterRequest
from cctv_api.services.auth_service import (
    AUTH_COOKIE_NAME, cookie_options, create_session_token, hash_password, verify_password,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password"


def _set_session_cookie(response: Response, user: User) -> None:
    settings = get_settings()
    token = create_session_token(user.id, user.email, settings)
    response.set_cookie(AUTH_COOKIE_NAME, token, **cookie_options(settings))


async def _find_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(register_limiter), Depends(require_registration_token)],
)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    client = request.client.host if request.client else "unknown"
    logger.info(f"Registration attempt for {body.email} from {client}")
    if await _find_user_by_email(db, body.email):
        logger.warning(f"Registration attempt with existing email {body.email} from {client}")
        raise BusinessRuleError(
            "User with this email already exists", code="EMAIL_ALREADY_EXISTS",
        )

    roles = []
    if body.role_id is not None:
        role = await db.get(Role, body.role_id)
        if role is None:
            raise ResourceNotFoundError("Role not found")
        roles.append(role)

    settings = get_settings()
    user = User(
        email=body.email,
        password=hash_password(body.password, settings.bcrypt_rounds),
        roles=roles,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    _set_session_cookie(response, user)
    logger.info("User registered", extra={"user_id": user.id})
    return success(user_dict(user, with_permissions=False), "User registered successfully")


@router.post("/login", dependencies=[Depends(login_limiter)])
async def login(
    body: LoginRequest, response: Response, db: AsyncSession = Depends(get_db),
):
    user = await _find_user_by_email(db, body.email)
    if user is None:
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not verify_password(body.password, user.password, get_settings().bcrypt_rounds):
        raise AuthenticationError(INVALID_CREDENTIALS)

    _set_session_cookie(response, user)
    logger.info("User logged in", extra={"user_id": user.id})
    return success(user_dict(user), "Login successful")


@router.get("/me")
async def me(
    caller: Caller | None = Depends(optional_authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    if caller is None:
        return success(None, "No authenticated user")
    user = await db.get(User, caller.user_id)
    if user is None:
        return success(None, "User not found")
    return success(user_detail(user))


@router.post("/logout")
async def logout(response: Response, caller: Caller = Depends(authenticate_token)):
    options = cookie_options(get_settings())
    response.delete_cookie(
        AUTH_COOKIE_NAME,
        httponly=options["httponly"],
        secure=options["secure"],
        samesite=options["samesite"],
    )
    logger.info("User logged out", extra={"user_id": caller.user_id})
    return success(None, "Logout successful")


@router.put("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    caller: Caller = Depends(authenticate_token),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, caller.user_id)
    if user is None:
        raise ResourceNotFoundError("User not found")
    rounds = get_settings().bcrypt_rounds
    if not verify_password(body.current_password, user.password, rounds):
        raise BusinessRuleError("Current password is incorrect")
    if verify_password(body.new_password, user.password, rounds):
        raise BusinessRuleError("New password must be different from current password")

    user.password = hash_password(body.new_password, rounds)
    await db.commit()
    logger.info("Password changed", extra={"user_id": user.id})
    return success(None, "Password changed successfully")
