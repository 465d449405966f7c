"""Role Routes — role CRUD plus attaching and detaching roles on users.

Invariants:
    - Every route requires a session user
    - Role names are unique; create/update on a taken name → 400 "Role name already exists"
    - Bulk attach skips roles the user already has and reports them; replace with
      an empty list removes every role
    - Assignment routes answer on both /roles/<action> and /roles/users/<action>

Design Decisions:
    - Role.users is lazy on the model; the routes that render users ask for it
      with selectinload
    - Static paths (/users/...) are declared before /{role_id} so they win routing
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cctv_api.api.deps.auth import authenticate_token
from cctv_api.api.presenters import role_dict, role_with_users, user_detail
from cctv_api.core.envelope import paginated, success
from cctv_api.core.errors import BusinessRuleError, ResourceNotFoundError
from cctv_api.core.listing import normalize_search, resolve_page_params, resolve_sort
from cctv_api.db.listing import apply_search, apply_sort, paginate
from cctv_api.infrastructure.database import get_db
from cctv_api.models import Role, User
from cctv_api.schemas.role import (
    BulkAttachRolesRequest, ReplaceUserRolesRequest, RoleCreate, RoleUpdate, UserRoleRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/roles", tags=["roles"], dependencies=[Depends(authenticate_token)],
)

SORT_FIELDS = ("created_at", "updated_at", "name")
SORT_COLUMNS = {"created_at": Role.created_at, "updated_at": Role.updated_at, "name": Role.name}


async def _get_role_or_404(db: AsyncSession, role_id: int, with_users: bool = False) -> Role:
    stmt = select(Role).where(Role.id == role_id)
    if with_users:
        stmt = stmt.options(selectinload(Role.users))
    role = (await db.execute(stmt)).scalar_one_or_none()
    if role is None:
        raise ResourceNotFoundError("Role not found")
    return role


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise ResourceNotFoundError("User not found")
    return user


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    stmt = select(func.count()).select_from(Role).where(Role.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Role.id != exclude_id)
    if (await db.execute(stmt)).scalar_one():
        raise BusinessRuleError("Role name already exists")


async def _load_roles(db: AsyncSession, role_ids: list[int]) -> list[Role]:
    """All requested roles, or 404 listing the ids that do not exist."""
    roles = list((await db.execute(
        select(Role).where(Role.id.in_(role_ids)).order_by(Role.id),
    )).scalars().all())
    found = {r.id for r in roles}
    missing = [i for i in dict.fromkeys(role_ids) if i not in found]
    if missing:
        raise ResourceNotFoundError("Some roles not found", data={"missingRoleIds": missing})
    return roles


def _role_ref(role: Role) -> dict:
    return {"id": role.id, "name": role.name}


# ─── Role CRUD ──────────────────────────────────────────────────

@router.get("")
async def list_roles(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
):
    params = resolve_page_params(page, limit)
    stmt = select(Role).options(selectinload(Role.users))
    stmt = apply_search(stmt, [Role.name], normalize_search(search))
    stmt = apply_sort(stmt, resolve_sort(sort_by, sort_order, SORT_FIELDS), SORT_COLUMNS, Role.id)
    roles, meta = await paginate(db, stmt, params)
    return paginated([role_with_users(r) for r in roles], meta)


# ─── User-role assignment ───────────────────────────────────────

@router.get("/users/{user_id}")
async def get_user_roles(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await _get_user_or_404(db, user_id)
    return success(user_detail(user))


@router.post("/attach")
@router.post("/users/attach")
async def attach_role(body: UserRoleRequest, db: AsyncSession = Depends(get_db)):
    user = await _get_user_or_404(db, body.user_id)
    role = await _get_role_or_404(db, body.role_id)
    if any(r.id == role.id for r in user.roles):
        raise BusinessRuleError("User already has this role")

    user.roles.append(role)
    await db.commit()
    logger.info(f"Attached role {role.name}", extra={"user_id": user.id})
    return success(
        {"userId": user.id, "roleId": role.id, "roleName": role.name},
        "Role attached to user successfully",
    )


@router.post("/detach")
@router.post("/users/detach")
async def detach_role(body: UserRoleRequest, db: AsyncSession = Depends(get_db)):
    user = await _get_user_or_404(db, body.user_id)
    role = await _get_role_or_404(db, body.role_id)
    if not any(r.id == role.id for r in user.roles):
        raise BusinessRuleError("User does not have this role")

    user.roles = [r for r in user.roles if r.id != role.id]
    await db.commit()
    logger.info(f"Detached role {role.name}", extra={"user_id": user.id})
    return success(
        {"userId": user.id, "roleId": role.id, "roleName": role.name},
        "Role detached from user successfully",
    )


@router.post("/bulk-attach")
@router.post("/users/bulk-attach")
async def bulk_attach_roles(body: BulkAttachRolesRequest, db: AsyncSession = Depends(get_db)):
    user = await _get_user_or_404(db, body.user_id)
    roles = await _load_roles(db, body.role_ids)
    current = {r.id for r in user.roles}
    new_roles = [r for r in roles if r.id not in current]
    if not new_roles:
        raise BusinessRuleError("User already has all specified roles")

    user.roles.extend(new_roles)
    await db.commit()
    logger.info(f"Attached {len(new_roles)} roles", extra={"user_id": user.id})
    return success(
        {
            "userId": user.id,
            "attachedRoles": [_role_ref(r) for r in new_roles],
            "skippedRoles": [
                {**_role_ref(r), "reason": "User already has this role"}
                for r in roles if r.id in current
            ],
        },
        "Roles attached to user successfully",
    )


@router.put("/replace")
@router.put("/users/replace")
async def replace_user_roles(body: ReplaceUserRolesRequest, db: AsyncSession = Depends(get_db)):
    user = await _get_user_or_404(db, body.user_id)
    previous = [_role_ref(r) for r in user.roles]

    if not body.role_ids:
        user.roles = []
        await db.commit()
        return success(
            {"userId": user.id, "previousRoles": previous, "newRoles": []},
            "All roles removed from user successfully",
        )

    roles = await _load_roles(db, body.role_ids)
    user.roles = roles
    await db.commit()
    logger.info("Replaced user roles", extra={"user_id": user.id})
    return success(
        {
            "userId": user.id,
            "previousRoles": previous,
            "newRoles": [_role_ref(r) for r in roles],
        },
        "User roles replaced successfully",
    )


# ─── Single role ────────────────────────────────────────────────

@router.get("/{role_id}/users")
async def get_users_by_role(role_id: int, db: AsyncSession = Depends(get_db)):
    role = await _get_role_or_404(db, role_id, with_users=True)
    data = role_with_users(role, detailed=True)
    data["userCount"] = len(role.users)
    return success(data)


@router.get("/{role_id}")
async def get_role(role_id: int, db: AsyncSession = Depends(get_db)):
    role = await _get_role_or_404(db, role_id, with_users=True)
    return success(role_with_users(role))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_role(body: RoleCreate, db: AsyncSession = Depends(get_db)):
    await _ensure_name_free(db, body.name)
    role = Role(name=body.name, permissions=[])
    db.add(role)
    await db.commit()
    await db.refresh(role)
    logger.info(f"Role created: {role.name}")
    return success(role_dict(role), "Role created successfully")


@router.put("/{role_id}")
async def update_role(role_id: int, body: RoleUpdate, db: AsyncSession = Depends(get_db)):
    role = await _get_role_or_404(db, role_id)
    await _ensure_name_free(db, body.name, exclude_id=role_id)
    role.name = body.name
    await db.commit()
    await db.refresh(role)
    return success(role_dict(role), "Role updated successfully")


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: int, db: AsyncSession = Depends(get_db)):
    role = await _get_role_or_404(db, role_id)
    await db.delete(role)
    await db.commit()
    logger.info(f"Role deleted: {role.name}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
