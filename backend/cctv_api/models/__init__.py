"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - PrimaryAnalytic is the aggregate root for analytics and their attachments

Design Decisions:
    - One file per concern (accounts, servers, cameras, analytics, attachments, results)
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from cctv_api.models.user import User, Role, Permission, roles_users, permissions_roles  # noqa: F401
from cctv_api.models.server import Server  # noqa: F401
from cctv_api.models.analytics import (  # noqa: F401
    TypeAnalytic, SubTypeAnalytic, PrimaryAnalytic, SubAnalytic,
    cctv_primary_analytics, PRIMARY_MODEL_TYPE,
)
from cctv_api.models.cctv import Cctv  # noqa: F401
from cctv_api.models.model_attachments import (  # noqa: F401
    ModelHasValue, ModelHasPolygon, ModelHasEmbed,
)
from cctv_api.models.detection_results import (  # noqa: F401
    ActivityMonitoring, WeaponDetection, AnimalPopulation, NomorLambung, PpeDetection,
)
