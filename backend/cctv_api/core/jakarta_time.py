"""Jakarta Time — fixed-offset (UTC+7) conversions for charts, exports and uploads.

Invariants:
    - The database stores UTC; every date the API accepts or renders is Jakarta local
    - A local day D covers [D 00:00+07, D+1 00:00+07), i.e. [D-1 17:00Z, D 17:00Z)
    - Naive datetimes read back from the database are treated as UTC

Design Decisions:
    - Fixed offset instead of a tz database: Indonesia has no DST, so
      timezone(timedelta(hours=7)) is exact and needs no system tzdata
"""

from datetime import date, datetime, time, timedelta, timezone

JAKARTA_TZ = timezone(timedelta(hours=7), "Asia/Jakarta")

DATE_FORMAT = "%Y-%m-%d"
DATETIME_SEND_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_jakarta() -> datetime:
    return datetime.now(JAKARTA_TZ)


def today_jakarta() -> date:
    return now_jakarta().date()


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_local_date(value: str) -> date:
    """Parse a YYYY-MM-DD string; raises ValueError on malformed input."""
    return datetime.strptime(value, DATE_FORMAT).date()


def parse_datetime_send(value: str) -> datetime:
    """Parse a device-supplied 'YYYY-MM-DD HH:MM:SS' Jakarta timestamp to UTC."""
    local = datetime.strptime(value, DATETIME_SEND_FORMAT)
    return local.replace(tzinfo=JAKARTA_TZ).astimezone(timezone.utc)


def local_day_start_utc(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=JAKARTA_TZ).astimezone(timezone.utc)


def day_window_utc(day: date) -> tuple[datetime, datetime]:
    """Half-open UTC window [start, end) covering one Jakarta calendar day."""
    start = local_day_start_utc(day)
    return start, start + timedelta(days=1)


def range_window_utc(start_day: date, end_day: date) -> tuple[datetime, datetime]:
    """Inclusive UTC bounds from start_day 00:00 to end_day 23:59:59.999 Jakarta."""
    start = local_day_start_utc(start_day)
    end = local_day_start_utc(end_day) + timedelta(days=1) - timedelta(milliseconds=1)
    return start, end


def date_range(start_day: date, end_day: date) -> list[date]:
    days = []
    current = start_day
    while current <= end_day:
        days.append(current)
        current += timedelta(days=1)
    return days


def format_chart_date(day: date) -> str:
    return day.strftime("%d/%m/%Y")


def to_local_date(value: datetime) -> date:
    return as_utc(value).astimezone(JAKARTA_TZ).date()


def format_jakarta(value: datetime | None) -> str:
    """Render a stored timestamp as Jakarta local 'YYYY-MM-DD HH:MM:SS'."""
    if value is None:
        return ""
    return as_utc(value).astimezone(JAKARTA_TZ).strftime(DATETIME_SEND_FORMAT)


def is_range_over_one_year(start_day: date, end_day: date) -> bool:
    return (end_day - start_day).days > 365
