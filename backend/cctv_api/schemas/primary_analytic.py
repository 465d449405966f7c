"""Primary Analytic Schemas — create/update bodies for an analytic and its attachments.

Invariants:
    - Create requires >= 1 camera id and a primaryAnalytics block with type and name
    - Update makes every field optional; an omitted list leaves that attachment untouched,
      an empty list clears it
    - Polygon points are normalized coordinates in [0, 1]; a polygon has >= 2 points
    - isServer defaults to true (false pins the analytic to server 1 without reservation)
"""

from pydantic import Field, field_validator

from cctv_api.schemas.common import CamelModel


def _strip_required(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


class ValueInput(CamelModel):
    value_name: str = Field(max_length=100)
    value: str = Field(max_length=255)

    @field_validator("value_name")
    @classmethod
    def strip_value_name(cls, v: str) -> str:
        return _strip_required(v, "Value name")

    @field_validator("value")
    @classmethod
    def strip_value(cls, v: str) -> str:
        return _strip_required(v, "Value")


class PolygonPoint(CamelModel):
    x: float = Field(ge=0, le=1)
    y: float = Field(ge=0, le=1)


class PolygonInput(CamelModel):
    cctv_id: int = Field(gt=0)
    name: str = Field(max_length=100)
    polygon: list[PolygonPoint]

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_required(v, "Polygon name")

    @field_validator("polygon")
    @classmethod
    def at_least_two_points(cls, v: list[PolygonPoint]) -> list[PolygonPoint]:
        if len(v) < 2:
            raise ValueError("Polygon must have at least 2 points")
        return v


class EmbedInput(CamelModel):
    cctv_id: int = Field(gt=0)
    embed: str = Field(max_length=500)

    @field_validator("embed")
    @classmethod
    def strip_embed(cls, v: str) -> str:
        return _strip_required(v, "Embed URL")


class SubAnalyticInput(CamelModel):
    sub_type_analytic_id: int = Field(gt=0)


class PrimaryAnalyticFields(CamelModel):
    type_analytic_id: int = Field(gt=0)
    name: str = Field(max_length=255)
    description: str | None = None
    model_has_values: list[ValueInput] | None = None
    model_has_polygons: list[PolygonInput] | None = None
    model_has_embeds: list[EmbedInput] | None = None
    sub_analytics: list[SubAnalyticInput] | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_required(v, "Name")


class PrimaryAnalyticFieldsUpdate(CamelModel):
    type_analytic_id: int | None = Field(None, gt=0)
    name: str | None = Field(None, max_length=255)
    description: str | None = None
    model_has_values: list[ValueInput] | None = None
    model_has_polygons: list[PolygonInput] | None = None
    model_has_embeds: list[EmbedInput] | None = None
    sub_analytics: list[SubAnalyticInput] | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return _strip_required(v, "Name") if v is not None else None


class PrimaryAnalyticCreate(CamelModel):
    server_id: int | None = Field(None, gt=0)
    cctv_id: list[int]
    primary_analytics: PrimaryAnalyticFields
    is_server: bool = True

    @field_validator("cctv_id")
    @classmethod
    def at_least_one_cctv(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("At least one CCTV ID is required")
        if any(i <= 0 for i in v):
            raise ValueError("CCTV ID must be a positive integer")
        return v


class PrimaryAnalyticUpdate(CamelModel):
    server_id: int | None = Field(None, gt=0)
    cctv_id: list[int] | None = None
    primary_analytics: PrimaryAnalyticFieldsUpdate = Field(
        default_factory=PrimaryAnalyticFieldsUpdate,
    )

    @field_validator("cctv_id")
    @classmethod
    def positive_cctv_ids(cls, v: list[int] | None) -> list[int] | None:
        if v and any(i <= 0 for i in v):
            raise ValueError("CCTV ID must be a positive integer")
        return v
