"""Role Schemas — role CRUD and user-role assignment bodies."""

from pydantic import Field, field_validator

from cctv_api.schemas.common import CamelModel


class RoleCreate(CamelModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Role name is required")
        return v


class RoleUpdate(RoleCreate):
    pass


class UserRoleRequest(CamelModel):
    """Attach or detach a single role."""
    user_id: int = Field(gt=0)
    role_id: int = Field(gt=0)


class BulkAttachRolesRequest(CamelModel):
    user_id: int = Field(gt=0)
    role_ids: list[int]

    @field_validator("role_ids")
    @classmethod
    def at_least_one_role(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("At least one role ID is required")
        if any(i <= 0 for i in v):
            raise ValueError("ID must be a positive integer")
        return v


class ReplaceUserRolesRequest(CamelModel):
    user_id: int = Field(gt=0)
    role_ids: list[int]

    @field_validator("role_ids")
    @classmethod
    def positive_ids(cls, v: list[int]) -> list[int]:
        if any(i <= 0 for i in v):
            raise ValueError("ID must be a positive integer")
        return v
