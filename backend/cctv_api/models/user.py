"""User, Role and Permission ORM — accounts and their many-to-many role grants.

Invariants:
    - users.email, roles.name, permissions.name are unique
    - users.password stores a bcrypt hash, never plaintext
    - Association rows cascade away with either side

Design Decisions:
    - User.roles and Role.permissions load eagerly (selectin): every authenticated
      request needs role names, and /auth/me needs permissions
    - Role.users is lazy: only the role detail endpoints need it, and they ask for it
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cctv_api.db.base import Base, TimestampMixin

roles_users = Table(
    "roles_users",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

permissions_roles = Table(
    "permissions_roles",
    Base.metadata,
    Column(
        "permission_id", Integer,
        ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True,
    ),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    roles: Mapped[list["Role"]] = relationship(
        "Role", secondary=roles_users, back_populates="users", lazy="selectin",
    )


class Role(TimestampMixin, Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(191), nullable=False, unique=True)

    users: Mapped[list["User"]] = relationship(
        "User", secondary=roles_users, back_populates="roles",
    )
    permissions: Mapped[list["Permission"]] = relationship(
        "Permission", secondary=permissions_roles, back_populates="roles",
        lazy="selectin",
    )


class Permission(TimestampMixin, Base):
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(191), nullable=False, unique=True)

    roles: Mapped[list["Role"]] = relationship(
        "Role", secondary=permissions_roles, back_populates="permissions",
    )
