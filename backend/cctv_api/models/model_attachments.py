"""Polymorphic Attachments ORM — values, polygons and stream embeds hung off a model row.

Invariants:
    - (model_id, model_type) identifies the owner; only 'primary' is written today
    - polygon is a JSON list of {x, y} points normalized to [0, 1]
    - embeds always belong to a primary analytic and a camera (real FKs, cascade)
"""

from sqlalchemy import JSON, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cctv_api.db.base import Base, TimestampMixin


class ModelHasValue(TimestampMixin, Base):
    __tablename__ = "model_has_values"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    model_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    model_type: Mapped[str] = mapped_column(String(191), nullable=False)
    value_name: Mapped[str] = mapped_column(String(191), nullable=False)
    value: Mapped[str] = mapped_column(String(191), nullable=False)


class ModelHasPolygon(TimestampMixin, Base):
    __tablename__ = "model_has_polygons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(191), nullable=False, default="receptionist")
    cctv_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cctv.id", ondelete="CASCADE"), nullable=False,
    )
    model_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    model_type: Mapped[str] = mapped_column(String(191), nullable=False)
    polygon: Mapped[list] = mapped_column(JSON, nullable=False)


class ModelHasEmbed(TimestampMixin, Base):
    __tablename__ = "model_has_embeds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cctv_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cctv.id", ondelete="CASCADE"), nullable=False,
    )
    model_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("primary_analytics.id", ondelete="CASCADE"), nullable=False,
    )
    embed: Mapped[str] = mapped_column(Text, nullable=False)

    primary_analytic: Mapped["PrimaryAnalytic"] = relationship(
        "PrimaryAnalytic", back_populates="embeds",
    )
