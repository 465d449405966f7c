"""Type Analytic Schemas — name-only create/update body (1-100 chars, trimmed)."""

from pydantic import BaseModel, field_validator


class TypeAnalyticWrite(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        if len(v) > 100:
            raise ValueError("Name must be less than 100 characters")
        return v
