"""Server ORM — inference hosts with per-analytic-type capacity counters.

Invariants:
    - ip is unique
    - cur_* <= max_* is maintained by services/server_capacity.py, not by a constraint
    - Deleting a server nulls primary_analytics.servers_id (but the API refuses
      to delete a server that still has analytics)
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cctv_api.db.base import Base, TimestampMixin


class Server(TimestampMixin, Base):
    __tablename__ = "servers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip: Mapped[str] = mapped_column(String(191), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(191), nullable=True)
    max_activity_monitoring: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cur_activity_monitoring: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_nomor_lambung: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cur_nomor_lambung: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_ppe_detection: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cur_ppe_detection: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    primary_analytics: Mapped[list["PrimaryAnalytic"]] = relationship(
        "PrimaryAnalytic", back_populates="server", passive_deletes=True,
    )
