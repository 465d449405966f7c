"""Detection Result Schemas — device upload forms, chart queries and export filters.

Invariants:
    - Ids arrive as digit strings and must be positive
    - datetime_send, when given, is 'YYYY-MM-DD HH:MM:SS' Jakarta local; stored as UTC
    - confidence is a numeric string in [0, 1]
    - Date ranges: start <= end and at most one year apart, checked by
      ensure_valid_range() after field validation (a 400 with a top-level message)
    - Export list filters accept a single value or a repeated query parameter
"""

import re
from datetime import date, datetime

from pydantic import field_validator

from cctv_api.core.errors import BusinessRuleError
from cctv_api.core.jakarta_time import (
    is_range_over_one_year, parse_datetime_send, parse_local_date,
)
from cctv_api.schemas.common import CamelModel, blank_to_none

_DIGITS = re.compile(r"^\d+$")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
_DECIMAL = re.compile(r"^\d*\.?\d+$")


def parse_positive_id(value, label: str) -> int:
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        if not _DIGITS.match(text):
            raise ValueError(f"{label} must be a valid number")
        number = int(text)
    if number <= 0:
        raise ValueError(f"{label} must be a positive integer")
    return number


def parse_send_time(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not _DATETIME.match(text):
        raise ValueError("Datetime must be in YYYY-MM-DD HH:MM:SS format")
    try:
        return parse_datetime_send(text)
    except ValueError:
        raise ValueError("Invalid datetime format")


def parse_query_date(value, label: str) -> date:
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not _DATE.match(text):
        raise ValueError(f"{label} must be in YYYY-MM-DD format")
    try:
        return parse_local_date(text)
    except ValueError:
        raise ValueError(f"Invalid {label.lower()} format")


def check_date_range(start: date, end: date) -> None:
    if start > end:
        raise BusinessRuleError("Start date must be before or equal to end date")
    if is_range_over_one_year(start, end):
        raise BusinessRuleError("Date range cannot exceed 1 year")


# ─── Result ownership ───────────────────────────────────────────

class ResultOwner(CamelModel):
    primary_analytics_id: int
    cctv_id: int

    @field_validator("primary_analytics_id", mode="before")
    @classmethod
    def validate_analytic_id(cls, v):
        return parse_positive_id(v, "Primary Analytics ID")

    @field_validator("cctv_id", mode="before")
    @classmethod
    def validate_cctv_id(cls, v):
        return parse_positive_id(v, "CCTV ID")


class OptionalResultOwner(CamelModel):
    primary_analytics_id: int | None = None
    cctv_id: int | None = None

    @field_validator("primary_analytics_id", mode="before")
    @classmethod
    def validate_analytic_id(cls, v):
        v = blank_to_none(v)
        return parse_positive_id(v, "Primary Analytics ID") if v is not None else None

    @field_validator("cctv_id", mode="before")
    @classmethod
    def validate_cctv_id(cls, v):
        v = blank_to_none(v)
        return parse_positive_id(v, "CCTV ID") if v is not None else None


# ─── Activity monitoring forms ──────────────────────────────────

class ActivityMonitoringForm(ResultOwner):
    sub_type_analytic: str
    datetime_send: datetime | None = None

    @field_validator("sub_type_analytic")
    @classmethod
    def sub_type_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Sub type analytic is required")
        return v

    @field_validator("datetime_send", mode="before")
    @classmethod
    def validate_datetime_send(cls, v):
        return parse_send_time(blank_to_none(v))


class ActivityMonitoringUpdateForm(OptionalResultOwner):
    sub_type_analytic: str | None = None
    datetime_send: datetime | None = None

    @field_validator("sub_type_analytic")
    @classmethod
    def sub_type_not_empty(cls, v: str | None) -> str | None:
        if v is not None and not v:
            raise ValueError("Sub type analytic is required")
        return v

    @field_validator("datetime_send", mode="before")
    @classmethod
    def validate_datetime_send(cls, v):
        return parse_send_time(blank_to_none(v))


# ─── Weapon detection forms ─────────────────────────────────────

def parse_confidence(value) -> float:
    text = str(value).strip()
    if not _DECIMAL.match(text):
        raise ValueError("Confidence must be a valid number")
    number = float(text)
    if not 0 <= number <= 1:
        raise ValueError("Confidence must be between 0 and 1")
    return number


class WeaponDetectionForm(ResultOwner):
    weapon_type: str
    confidence: float
    datetime_send: datetime | None = None

    @field_validator("weapon_type")
    @classmethod
    def weapon_type_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Weapon type is required")
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def validate_confidence(cls, v):
        return parse_confidence(v)

    @field_validator("datetime_send", mode="before")
    @classmethod
    def validate_datetime_send(cls, v):
        return parse_send_time(blank_to_none(v))


class WeaponDetectionUpdateForm(OptionalResultOwner):
    weapon_type: str | None = None
    confidence: float | None = None
    datetime_send: datetime | None = None

    @field_validator("weapon_type")
    @classmethod
    def weapon_type_not_empty(cls, v: str | None) -> str | None:
        if v is not None and not v:
            raise ValueError("Weapon type is required")
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def validate_confidence(cls, v):
        v = blank_to_none(v)
        return parse_confidence(v) if v is not None else None

    @field_validator("datetime_send", mode="before")
    @classmethod
    def validate_datetime_send(cls, v):
        return parse_send_time(blank_to_none(v))


# ─── Chart and export queries ───────────────────────────────────

class LatestDayQuery(CamelModel):
    cctv_id: int
    primary_analytics_id: int

    @field_validator("cctv_id", mode="before")
    @classmethod
    def validate_cctv_id(cls, v):
        if v is None or not _DIGITS.match(str(v)):
            raise ValueError("CCTV ID must be a number")
        return int(v)

    @field_validator("primary_analytics_id", mode="before")
    @classmethod
    def validate_analytic_id(cls, v):
        if v is None or not _DIGITS.match(str(v)):
            raise ValueError("Primary Analytics ID must be a number")
        return int(v)


class ChartQuery(LatestDayQuery):
    start_date: date
    end_date: date

    @field_validator("start_date", mode="before")
    @classmethod
    def validate_start(cls, v):
        return parse_query_date(v, "Start date")

    @field_validator("end_date", mode="before")
    @classmethod
    def validate_end(cls, v):
        return parse_query_date(v, "End date")

    def ensure_valid_range(self) -> None:
        check_date_range(self.start_date, self.end_date)


def _as_filter_list(value, label: str) -> list[str] | None:
    if value is None:
        return None
    items = [value] if isinstance(value, str) else list(value)
    for item in items:
        if not item:
            raise ValueError(f"{label} filter must not be empty")
        if len(item) > 255:
            raise ValueError(f"Each {label.lower()} filter must be less than 255 characters")
    return items


class ExportQuery(OptionalResultOwner):
    start_date: date
    end_date: date

    @field_validator("start_date", mode="before")
    @classmethod
    def validate_start(cls, v):
        return parse_query_date(v, "Start date")

    @field_validator("end_date", mode="before")
    @classmethod
    def validate_end(cls, v):
        return parse_query_date(v, "End date")

    def ensure_valid_range(self) -> None:
        check_date_range(self.start_date, self.end_date)


class ActivityExportQuery(ExportQuery):
    sub_type_analytic: list[str] | None = None

    @field_validator("sub_type_analytic", mode="before")
    @classmethod
    def validate_sub_types(cls, v):
        return _as_filter_list(v, "Sub type analytic")


class WeaponExportQuery(ExportQuery):
    weapon_type: list[str] | None = None

    @field_validator("weapon_type", mode="before")
    @classmethod
    def validate_weapon_types(cls, v):
        return _as_filter_list(v, "Weapon type")
