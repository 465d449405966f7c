"""Schema Base — camelCase aliasing and validation-error formatting shared by all schemas.

Invariants:
    - CamelModel accepts both the camelCase alias and the snake_case field name
    - format_validation_errors drops the request-part prefix (body/query/form)
      from a location and strips pydantic's "Value error, " prefix from messages

Design Decisions:
    - Multipart forms are validated through validate_form() rather than as FastAPI
      Form(...) parameters: one model per form keeps its rules in one place, and
      the raised ValidationFailedError renders exactly like a JSON body failure
"""

from typing import Any, Iterable

from fastapi import Request
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from cctv_api.core.errors import ValidationFailedError

_REQUEST_PARTS = ("body", "query", "path", "form", "header", "cookie")
_VALUE_ERROR_PREFIX = "Value error, "


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _clean_message(message: str) -> str:
    if message.startswith(_VALUE_ERROR_PREFIX):
        return message[len(_VALUE_ERROR_PREFIX):]
    return message


def format_validation_errors(errors: Iterable[dict]) -> list[dict]:
    """Turn pydantic error dicts into the envelope's [{field, message}] list."""
    formatted = []
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] in _REQUEST_PARTS:
            loc = loc[1:]
        formatted.append({
            "field": ".".join(str(part) for part in loc),
            "message": _clean_message(str(error.get("msg", "Invalid value"))),
        })
    return formatted


def validate_form(model: type[BaseModel], data: dict[str, Any]):
    """Validate a multipart form dict against model, raising the API's 400 on failure."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ValidationFailedError(format_validation_errors(e.errors()))


def blank_to_none(value: Any) -> Any:
    """Empty or whitespace-only form strings mean 'not provided'."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def parse_form_bool(value: Any) -> Any:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
    return value


def validate_query(
    model: type[BaseModel], request: Request, list_fields: tuple[str, ...] = (),
):
    """Validate query params against model; list_fields keep every repeated value."""
    params = request.query_params
    data: dict[str, Any] = dict(params)
    for name in list_fields:
        values = params.getlist(name)
        if values:
            data[name] = values
    return validate_form(model, data)
