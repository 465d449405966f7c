"""Detection Result ORM — rows pushed by edge devices for each analytic type.

Invariants:
    - Every result references a primary analytic and a camera (cascade on delete)
    - datetime_send is the device-side capture time, stored in UTC
    - capture_img / capture_person are paths relative to the upload directory

Design Decisions:
    - One table per analytic type rather than a generic JSON payload: each type
      has typed columns that charts and exports aggregate directly
    - primary_analytic / cctv load eagerly: every list response embeds a summary of both
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from cctv_api.db.base import Base, TimestampMixin, utc_now


class DetectionResultMixin(TimestampMixin):
    """Columns and relations shared by every result table."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    primary_analytics_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("primary_analytics.id", ondelete="CASCADE"), nullable=False,
    )
    cctv_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cctv.id", ondelete="CASCADE"), nullable=False,
    )
    datetime_send: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, index=True,
    )

    @declared_attr
    def primary_analytic(cls) -> Mapped["PrimaryAnalytic"]:
        return relationship("PrimaryAnalytic", lazy="selectin")

    @declared_attr
    def cctv(cls) -> Mapped["Cctv"]:
        return relationship("Cctv", lazy="selectin")


class ActivityMonitoring(DetectionResultMixin, Base):
    __tablename__ = "activity_monitoring"

    capture_img: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_type_analytic: Mapped[str] = mapped_column(String(191), nullable=False)


class WeaponDetection(DetectionResultMixin, Base):
    __tablename__ = "weapon_detection"

    weapon_type: Mapped[str] = mapped_column(String(191), nullable=False)
    capture_img: Mapped[str | None] = mapped_column(Text, nullable=True)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)


class AnimalPopulation(DetectionResultMixin, Base):
    __tablename__ = "animal_population"

    total: Mapped[int] = mapped_column(Integer, nullable=False)
    normal: Mapped[int] = mapped_column(Integer, nullable=False)
    sick: Mapped[int] = mapped_column(Integer, nullable=False)
    dead: Mapped[int] = mapped_column(Integer, nullable=False)


class NomorLambung(DetectionResultMixin, Base):
    __tablename__ = "nomor_lambung"

    status: Mapped[str] = mapped_column(String(191), nullable=False)
    avg_speed: Mapped[float] = mapped_column(Float, nullable=False)
    max_speed: Mapped[float] = mapped_column(Float, nullable=False)
    no_lambung: Mapped[str] = mapped_column(String(191), nullable=False)
    capture_img: Mapped[str | None] = mapped_column(Text, nullable=True)


class PpeDetection(DetectionResultMixin, Base):
    __tablename__ = "ppe_detection"

    object_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vest: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    helmet: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    mask: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    gloves: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    goggles: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    capture_person: Mapped[str | None] = mapped_column(String(191), nullable=True)
