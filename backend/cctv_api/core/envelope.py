"""Response Envelope — the {success, message, data, pagination} shape every route returns."""

from typing import Any


def success(data: Any = None, message: str | None = None, **extra: Any) -> dict:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update(extra)
    return body


def paginated(
    data: list, pagination: dict, message: str | None = None, **extra: Any,
) -> dict:
    body = success(data, message, **extra)
    body["pagination"] = pagination
    return body


def failure(
    message: str,
    errors: list[dict] | None = None,
    code: str | None = None,
) -> dict:
    body: dict[str, Any] = {"success": False, "message": message}
    if code:
        body["code"] = code
    if errors is not None:
        body["errors"] = errors
    return body
