"""Server Selection — pure capacity arithmetic and least-utilization server choice.

Invariants:
    - available = max - cur; utilization = cur / max * 100 (0 when max == 0)
    - Excluded ids and servers with available < required are never chosen
    - Activity monitoring (type 1) additionally requires max > 0
    - Ordering: lowest utilization first, ties broken by highest available capacity

Design Decisions:
    - Operates on plain snapshots, not ORM rows: the service layer loads rows,
      this module decides (testable without a database)
    - Only type 1 has a real capacity dimension; every other type is selected on
      the same activity-monitoring counters
"""

from dataclasses import dataclass
from typing import Iterable

ACTIVITY_MONITORING_TYPE_ID = 1
CUSTOMER_SERVICE_TIME_TYPE_ID = 2
AUTO_SELECT_TYPE_IDS = (ACTIVITY_MONITORING_TYPE_ID, CUSTOMER_SERVICE_TIME_TYPE_ID)

HIGH_UTILIZATION_RATIO = 0.8


@dataclass(frozen=True)
class ServerCapacity:
    id: int
    ip: str
    description: str | None
    max_activity_monitoring: int
    cur_activity_monitoring: int

    @property
    def available_capacity(self) -> int:
        return self.max_activity_monitoring - self.cur_activity_monitoring

    @property
    def utilization_percentage(self) -> float:
        if self.max_activity_monitoring <= 0:
            return 0.0
        return self.cur_activity_monitoring / self.max_activity_monitoring * 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ip": self.ip,
            "description": self.description,
            "max_activity_monitoring": self.max_activity_monitoring,
            "cur_activity_monitoring": self.cur_activity_monitoring,
            "availableCapacity": self.available_capacity,
            "utilizationPercentage": self.utilization_percentage,
        }


def select_best_server(
    servers: Iterable[ServerCapacity],
    type_analytic_id: int,
    required_capacity: int = 1,
    exclude_server_ids: Iterable[int] = (),
) -> ServerCapacity | None:
    """Pick the least utilized server able to take required_capacity more analytics."""
    excluded = set(exclude_server_ids)
    candidates = [
        s for s in servers
        if s.id not in excluded and s.available_capacity >= required_capacity
    ]
    if type_analytic_id == ACTIVITY_MONITORING_TYPE_ID:
        candidates = [s for s in candidates if s.max_activity_monitoring > 0]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda s: (s.utilization_percentage, -s.available_capacity),
    )


def has_capacity(
    server: ServerCapacity, type_analytic_id: int, required_capacity: int = 1,
) -> bool:
    if type_analytic_id != ACTIVITY_MONITORING_TYPE_ID:
        return True
    return (
        server.cur_activity_monitoring + required_capacity
        <= server.max_activity_monitoring
    )


def counter_type_id(type_analytic_id: int) -> int:
    """Type whose counters an analytic consumes; customer service time shares activity monitoring's."""
    if type_analytic_id in AUTO_SELECT_TYPE_IDS:
        return ACTIVITY_MONITORING_TYPE_ID
    return type_analytic_id


def capacity_status(max_capacity: int, current: int) -> str:
    """Bucket a server as full, high (>80% used) or available."""
    if current >= max_capacity:
        return "full"
    if max_capacity > 0 and current / max_capacity > HIGH_UTILIZATION_RATIO:
        return "high"
    return "available"
