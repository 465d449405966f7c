"""Analytic ORM — analytic taxonomy and the primary analytic aggregate.

Invariants:
    - type_analytic.name is unique; a type in use cannot be deleted (RESTRICT)
    - A primary analytic belongs to one type, at most one server, one-or-more cameras
    - values and polygons attach through (model_id, model_type='primary') with no FK;
      embeds and sub analytics are real children and cascade with the analytic
    - status defaults to 'pending'

Design Decisions:
    - Every relationship a response needs loads eagerly (selectin) from the
      PrimaryAnalytic side only; back-references stay lazy so loading one
      analytic never walks the whole graph
    - values/polygons are viewonly relationships: writes go through explicit
      inserts/deletes in services/primary_analytic_service.py
"""

from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cctv_api.db.base import Base, TimestampMixin

PRIMARY_MODEL_TYPE = "primary"

cctv_primary_analytics = Table(
    "cctv_primary_analytics",
    Base.metadata,
    Column("cctv_id", Integer, ForeignKey("cctv.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "primary_analytics_id", Integer,
        ForeignKey("primary_analytics.id", ondelete="CASCADE"), primary_key=True,
    ),
)


class TypeAnalytic(TimestampMixin, Base):
    __tablename__ = "type_analytic"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(191), nullable=False, unique=True)

    primary_analytics: Mapped[list["PrimaryAnalytic"]] = relationship(
        "PrimaryAnalytic", back_populates="type_analytic",
    )


class SubTypeAnalytic(TimestampMixin, Base):
    __tablename__ = "sub_type_analytic"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(191), nullable=False)


class PrimaryAnalytic(TimestampMixin, Base):
    __tablename__ = "primary_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    servers_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("servers.id", ondelete="SET NULL"), nullable=True,
    )
    type_analytic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("type_analytic.id", ondelete="RESTRICT"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(191), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(191), nullable=False, default="pending")

    server: Mapped[Optional["Server"]] = relationship(
        "Server", back_populates="primary_analytics", lazy="selectin",
    )
    type_analytic: Mapped["TypeAnalytic"] = relationship(
        "TypeAnalytic", back_populates="primary_analytics", lazy="selectin",
    )
    cctvs: Mapped[list["Cctv"]] = relationship(
        "Cctv", secondary=cctv_primary_analytics, back_populates="primary_analytics",
        lazy="selectin", order_by="Cctv.id",
    )
    sub_analytics: Mapped[list["SubAnalytic"]] = relationship(
        "SubAnalytic", back_populates="primary_analytic",
        cascade="all, delete-orphan", lazy="selectin", order_by="SubAnalytic.id",
    )
    embeds: Mapped[list["ModelHasEmbed"]] = relationship(
        "ModelHasEmbed", back_populates="primary_analytic",
        cascade="all, delete-orphan", lazy="selectin", order_by="ModelHasEmbed.id",
    )
    values: Mapped[list["ModelHasValue"]] = relationship(
        "ModelHasValue",
        primaryjoin=(
            "and_(PrimaryAnalytic.id == foreign(ModelHasValue.model_id), "
            "ModelHasValue.model_type == 'primary')"
        ),
        viewonly=True, lazy="selectin", order_by="ModelHasValue.id",
    )
    polygons: Mapped[list["ModelHasPolygon"]] = relationship(
        "ModelHasPolygon",
        primaryjoin=(
            "and_(PrimaryAnalytic.id == foreign(ModelHasPolygon.model_id), "
            "ModelHasPolygon.model_type == 'primary')"
        ),
        viewonly=True, lazy="selectin", order_by="ModelHasPolygon.id",
    )


class SubAnalytic(TimestampMixin, Base):
    __tablename__ = "sub_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    primary_analytic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("primary_analytics.id", ondelete="CASCADE"), nullable=False,
    )
    sub_type_analytic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sub_type_analytic.id", ondelete="CASCADE"), nullable=False,
    )

    primary_analytic: Mapped["PrimaryAnalytic"] = relationship(
        "PrimaryAnalytic", back_populates="sub_analytics",
    )
    sub_type_analytic: Mapped["SubTypeAnalytic"] = relationship(
        "SubTypeAnalytic", lazy="selectin",
    )

