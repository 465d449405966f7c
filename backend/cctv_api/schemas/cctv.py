"""CCTV Form Schemas — multipart create/update fields for a camera.

Invariants:
    - cctvName >= 2 chars; rtsp >= 5 chars
    - Optional text fields: empty string -> None
    - typeStreaming is 'embed' or 'm3u8' when given
    - isActive arrives as the string 'true'/'false'
    - On update, only fields present in the form are written (model_fields_set)
"""

from typing import Literal

from pydantic import field_validator

from cctv_api.schemas.common import CamelModel, blank_to_none, parse_form_bool

_OPTIONAL_TEXT = ("ip_cctv", "ip_server", "embed", "latitude", "longitude", "type_streaming")


class CctvForm(CamelModel):
    cctv_name: str
    rtsp: str
    ip_cctv: str | None = None
    ip_server: str | None = None
    embed: str | None = None
    latitude: str | None = None
    longitude: str | None = None
    type_streaming: Literal["embed", "m3u8"] | None = None
    is_active: bool = False

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)

    @field_validator("is_active", mode="before")
    @classmethod
    def parse_is_active(cls, v):
        return parse_form_bool(v)

    @field_validator("cctv_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("CCTV name must be at least 2 characters")
        return v

    @field_validator("rtsp")
    @classmethod
    def validate_rtsp(cls, v: str) -> str:
        if len(v) < 5:
            raise ValueError("RTSP URL is required")
        return v


class CctvUpdateForm(CctvForm):
    cctv_name: str | None = None
    rtsp: str | None = None

    @field_validator("cctv_name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is not None and len(v) < 2:
            raise ValueError("CCTV name must be at least 2 characters")
        return v

    @field_validator("rtsp")
    @classmethod
    def validate_rtsp(cls, v: str | None) -> str | None:
        if v is not None and len(v) < 5:
            raise ValueError("RTSP URL is required")
        return v
