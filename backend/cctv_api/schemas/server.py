"""Server Schemas — inference host create/update bodies.

Invariants:
    - ip must parse as an IPv4 or IPv6 address
    - capacity counters are non-negative integers; create defaults both to 0
    - Field names are snake_case on the wire (no camelCase aliasing here)
"""

import ipaddress

from pydantic import BaseModel, Field, field_validator


def check_ip(value: str) -> str:
    value = value.strip()
    try:
        ipaddress.ip_address(value)
    except ValueError:
        raise ValueError("Invalid IP address format")
    return value


class ServerCreate(BaseModel):
    ip: str
    description: str | None = None
    max_activity_monitoring: int = Field(0, ge=0)
    cur_activity_monitoring: int = Field(0, ge=0)

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v: str) -> str:
        return check_ip(v)


class ServerUpdate(BaseModel):
    ip: str | None = None
    description: str | None = None
    max_activity_monitoring: int | None = Field(None, ge=0)
    cur_activity_monitoring: int | None = Field(None, ge=0)

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v: str | None) -> str | None:
        return check_ip(v) if v is not None else None
