from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Query, Session

from marketplace.errors import NotFoundError, ValidationError


def coerce_uuid(value: Any) -> uuid.UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid identifier: {value}") from exc


def get_or_404(db: Session, model, item_id: Any, detail: str | None = None):
    item = db.get(model, coerce_uuid(item_id))
    if not item:
        raise NotFoundError(detail or f"{model.__name__} not found")
    return item


def apply_ordering(query: Query, order_by: str, order_dir: str, allowed_columns: dict[str, Any]) -> Query:
    if order_by not in allowed_columns:
        raise ValidationError(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}",
        )
    column = allowed_columns[order_by]
    if order_dir == "asc":
        return query.order_by(column.asc())
    return query.order_by(column.desc())


def apply_pagination(query: Query, limit: int, offset: int) -> Query:
    return query.limit(limit).offset(offset)


def apply_is_active_filter(query: Query, model, is_active: bool | None) -> Query:
    if is_active is None:
        return query
    return query.filter(model.is_active.is_(is_active))


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_float(value: Any, default: float = 0.0) -> float:
    try:
        if value is None:
            return default
        if isinstance(value, Decimal):
            return float(value)
        return float(value)
    except (TypeError, ValueError):
        return default
