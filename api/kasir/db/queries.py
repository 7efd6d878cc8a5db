import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_display_id(prefix: str, moment: datetime | None = None) -> str:
    moment = moment or utcnow()
    return f"{prefix}-{moment:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def as_datetime(value: Any) -> datetime | None:
    """Normalize a timestamp column; SQLite hands them back as strings."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def day_range(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open UTC range covering whole days from start to end."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper


def fetch_one(db: Session, sql: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
    row = db.execute(text(sql), params or {}).mappings().first()
    return dict(row) if row else None


def fetch_all(db: Session, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
    return [dict(row) for row in db.execute(text(sql), params or {}).mappings().all()]
