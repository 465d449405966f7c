"""CCTV ORM — a registered camera stream owned by a user.

Invariants:
    - polygon_img is a path relative to the upload directory (rendered as a URL on read)
    - type_streaming is one of: embed, m3u8 (or NULL)
    - Result rows, embeds and polygons referencing a camera cascade away with it
"""

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cctv_api.db.base import Base, TimestampMixin
from cctv_api.models.analytics import cctv_primary_analytics

STREAMING_TYPES = ("embed", "m3u8")


class Cctv(TimestampMixin, Base):
    __tablename__ = "cctv"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    cctv_name: Mapped[str] = mapped_column(String(191), nullable=False)
    ip_cctv: Mapped[str | None] = mapped_column(String(191), nullable=True)
    ip_server: Mapped[str | None] = mapped_column(String(191), nullable=True)
    rtsp: Mapped[str] = mapped_column(String(191), nullable=False)
    embed: Mapped[str | None] = mapped_column(String(191), nullable=True)
    latitude: Mapped[str | None] = mapped_column(String(191), nullable=True)
    longitude: Mapped[str | None] = mapped_column(String(191), nullable=True)
    type_streaming: Mapped[str | None] = mapped_column(
        Enum(*STREAMING_TYPES, name="type_streaming"), nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    polygon_img: Mapped[str] = mapped_column(Text, nullable=False)

    primary_analytics: Mapped[list["PrimaryAnalytic"]] = relationship(
        "PrimaryAnalytic", secondary=cctv_primary_analytics, back_populates="cctvs",
    )
