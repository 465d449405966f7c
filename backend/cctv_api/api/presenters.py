"""Presenters — ORM rows to the JSON dicts the API returns.

Invariants:
    - Table columns keep their snake_case names (servers, cameras, analytics);
      detection results, roles and users are rendered camelCase
    - Timestamps are ISO-8601 UTC with a trailing 'Z'
    - Stored upload paths are rendered as absolute /static URLs
    - Presenters read only already-loaded attributes (selectin relationships),
      never trigger IO

Design Decisions:
    - Plain functions returning dicts rather than response models: shapes differ
      per endpoint (summary vs detail) and the dicts read like the JSON they produce
"""

from datetime import datetime

from cctv_api.core.jakarta_time import as_utc
from cctv_api.models import (
    ActivityMonitoring, Cctv, ModelHasEmbed, ModelHasPolygon, ModelHasValue,
    Permission, PrimaryAnalytic, Role, Server, SubAnalytic, TypeAnalytic, User,
    WeaponDetection,
)
from cctv_api.services.file_storage import format_image_url


def timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ─── Accounts ───────────────────────────────────────────────────

def permission_dict(permission: Permission) -> dict:
    return {"id": permission.id, "name": permission.name}


def role_dict(role: Role) -> dict:
    return {
        "id": role.id,
        "name": role.name,
        "createdAt": timestamp(role.created_at),
        "updatedAt": timestamp(role.updated_at),
        "permissions": [permission_dict(p) for p in role.permissions],
    }


def role_with_users(role: Role, detailed: bool = False) -> dict:
    if detailed:
        users = [
            {
                "id": u.id,
                "email": u.email,
                "createdAt": timestamp(u.created_at),
                "updatedAt": timestamp(u.updated_at),
            }
            for u in role.users
        ]
    else:
        users = [{"id": u.id, "email": u.email} for u in role.users]
    return {**role_dict(role), "users": users}


def user_dict(user: User, with_permissions: bool = True) -> dict:
    if with_permissions:
        roles = [role_dict(r) for r in user.roles]
    else:
        roles = [{"id": r.id, "name": r.name} for r in user.roles]
    return {"id": user.id, "email": user.email, "roles": roles}


def user_detail(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "createdAt": timestamp(user.created_at),
        "updatedAt": timestamp(user.updated_at),
        "roles": [role_dict(r) for r in user.roles],
    }


# ─── Infrastructure ─────────────────────────────────────────────

def server_summary(server: Server | None) -> dict | None:
    if server is None:
        return None
    return {"id": server.id, "ip": server.ip, "description": server.description}


def server_dict(server: Server) -> dict:
    return {
        "id": server.id,
        "ip": server.ip,
        "description": server.description,
        "max_activity_monitoring": server.max_activity_monitoring,
        "cur_activity_monitoring": server.cur_activity_monitoring,
        "max_nomor_lambung": server.max_nomor_lambung,
        "cur_nomor_lambung": server.cur_nomor_lambung,
        "max_ppe_detection": server.max_ppe_detection,
        "cur_ppe_detection": server.cur_ppe_detection,
        "created_at": timestamp(server.created_at),
        "updated_at": timestamp(server.updated_at),
    }


def cctv_dict(cctv: Cctv) -> dict:
    return {
        "id": cctv.id,
        "user_id": cctv.user_id,
        "cctv_name": cctv.cctv_name,
        "ip_cctv": cctv.ip_cctv,
        "ip_server": cctv.ip_server,
        "rtsp": cctv.rtsp,
        "embed": cctv.embed,
        "latitude": cctv.latitude,
        "longitude": cctv.longitude,
        "type_streaming": cctv.type_streaming,
        "is_active": cctv.is_active,
        "polygon_img": format_image_url(cctv.polygon_img),
        "created_at": timestamp(cctv.created_at),
        "updated_at": timestamp(cctv.updated_at),
    }


# ─── Analytics ──────────────────────────────────────────────────

def type_analytic_summary(type_analytic: TypeAnalytic | None) -> dict | None:
    if type_analytic is None:
        return None
    return {"id": type_analytic.id, "name": type_analytic.name}


def type_analytic_dict(type_analytic: TypeAnalytic) -> dict:
    return {
        "id": type_analytic.id,
        "name": type_analytic.name,
        "created_at": timestamp(type_analytic.created_at),
        "updated_at": timestamp(type_analytic.updated_at),
    }


def sub_analytic_dict(sub: SubAnalytic) -> dict:
    return {
        "id": sub.id,
        "primary_analytic_id": sub.primary_analytic_id,
        "sub_type_analytic_id": sub.sub_type_analytic_id,
        "sub_type_analytic": {"id": sub.sub_type_analytic.id, "name": sub.sub_type_analytic.name},
    }


def embed_dict(embed: ModelHasEmbed) -> dict:
    return {
        "id": embed.id,
        "cctv_id": embed.cctv_id,
        "model_id": embed.model_id,
        "embed": embed.embed,
    }


def value_dict(value: ModelHasValue) -> dict:
    return {
        "id": value.id,
        "model_id": value.model_id,
        "model_type": value.model_type,
        "value_name": value.value_name,
        "value": value.value,
    }


def polygon_dict(polygon: ModelHasPolygon) -> dict:
    return {
        "id": polygon.id,
        "name": polygon.name,
        "cctv_id": polygon.cctv_id,
        "model_id": polygon.model_id,
        "model_type": polygon.model_type,
        "polygon": polygon.polygon,
    }


def primary_analytic_dict(analytic: PrimaryAnalytic) -> dict:
    """List shape: the analytic with its server, type, cameras, sub analytics and embeds."""
    return {
        "id": analytic.id,
        "servers_id": analytic.servers_id,
        "type_analytic_id": analytic.type_analytic_id,
        "name": analytic.name,
        "description": analytic.description,
        "status": analytic.status,
        "created_at": timestamp(analytic.created_at),
        "updated_at": timestamp(analytic.updated_at),
        "servers": server_summary(analytic.server),
        "type_analytic": type_analytic_summary(analytic.type_analytic),
        "cctv": [cctv_dict(c) for c in analytic.cctvs],
        "sub_analytics": [sub_analytic_dict(s) for s in analytic.sub_analytics],
        "model_has_embeds": [embed_dict(e) for e in analytic.embeds],
    }


def primary_analytic_detail(analytic: PrimaryAnalytic) -> dict:
    """Detail shape: list shape plus values, polygons and embeds under camelCase keys."""
    return {
        **primary_analytic_dict(analytic),
        "modelHasValues": [value_dict(v) for v in analytic.values],
        "modelHasPolygons": [polygon_dict(p) for p in analytic.polygons],
        "modelHasEmbeds": [embed_dict(e) for e in analytic.embeds],
    }


def analytic_status_summary(analytic: PrimaryAnalytic | None) -> dict | None:
    if analytic is None:
        return None
    return {"id": analytic.id, "name": analytic.name, "status": analytic.status}


# ─── Detection results ──────────────────────────────────────────

def _cctv_status_summary(cctv: Cctv | None) -> dict | None:
    if cctv is None:
        return None
    return {"id": cctv.id, "cctv_name": cctv.cctv_name, "is_active": cctv.is_active}


def _result_base(record) -> dict:
    return {
        "id": record.id,
        "primaryAnalyticsId": record.primary_analytics_id,
        "cctvId": record.cctv_id,
    }


def _result_tail(record) -> dict:
    return {
        "datetimeSend": timestamp(record.datetime_send),
        "createdAt": timestamp(record.created_at),
        "updatedAt": timestamp(record.updated_at),
        "primaryAnalytics": analytic_status_summary(record.primary_analytic),
        "cctv": _cctv_status_summary(record.cctv),
    }


def activity_monitoring_dict(record: ActivityMonitoring) -> dict:
    return {
        **_result_base(record),
        "captureImg": format_image_url(record.capture_img),
        "subTypeAnalytic": record.sub_type_analytic,
        **_result_tail(record),
    }


def weapon_detection_dict(record: WeaponDetection) -> dict:
    return {
        **_result_base(record),
        "weaponType": record.weapon_type,
        "captureImg": format_image_url(record.capture_img),
        "confidence": record.confidence,
        **_result_tail(record),
    }
