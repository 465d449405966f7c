"""Auth Schemas — register, login and change-password bodies.

Invariants:
    - email: trimmed, lowercased, <= 255 chars, must look like an address
    - password: 6-100 chars on register/change; login only requires non-empty
    - newPassword must differ from currentPassword (reported on newPassword)
"""

import re

from pydantic import Field, ValidationInfo, field_validator

from cctv_api.schemas.common import CamelModel

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not value:
        raise ValueError("Email is required")
    if len(value) > 255:
        raise ValueError("Email must be less than 255 characters")
    if not _EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def check_password_length(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters long")
    if len(value) > 100:
        raise ValueError("Password must be less than 100 characters")
    return value


class RegisterRequest(CamelModel):
    email: str
    password: str
    role_id: int | None = Field(None, gt=0)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_length(v)


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str

    @field_validator("current_password")
    @classmethod
    def current_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Current password is required")
        return v

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str, info: ValidationInfo) -> str:
        check_password_length(v)
        if v == info.data.get("current_password"):
            raise ValueError("New password must be different from current password")
        return v
