from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from marketplace.config import settings
from marketplace.errors import ValidationError
from marketplace.models.quality import QualityPeriod


@dataclass(frozen=True)
class ScoreWindow:
    """Half-open scoring window ``[start_at, end_at)``."""

    start_at: datetime
    end_at: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start_at <= moment < self.end_at


def parse_period(value: str | QualityPeriod | None, default: QualityPeriod | None = None) -> QualityPeriod:
    if value is None or value == "":
        return default or QualityPeriod(settings.quality_default_period)
    if isinstance(value, QualityPeriod):
        return value
    try:
        return QualityPeriod(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(p.value for p in QualityPeriod)
        raise ValidationError(
            "Validation errors",
            errors=[{"field": "period", "message": f"Period must be one of: {allowed}"}],
        ) from exc


def _add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def window_for(period: QualityPeriod, reference: datetime | None = None) -> ScoreWindow:
    now = (reference or datetime.now(UTC)).astimezone(UTC)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == QualityPeriod.daily:
        return ScoreWindow(start_at=midnight, end_at=midnight + timedelta(days=1))

    if period == QualityPeriod.weekly:
        # Weeks start on Sunday.
        days_since_sunday = (now.weekday() + 1) % 7
        start_at = midnight - timedelta(days=days_since_sunday)
        return ScoreWindow(start_at=start_at, end_at=start_at + timedelta(days=7))

    if period == QualityPeriod.monthly:
        start_at = midnight.replace(day=1)
        year, month = _add_months(now.year, now.month, 1)
        return ScoreWindow(start_at=start_at, end_at=start_at.replace(year=year, month=month))

    if period == QualityPeriod.quarterly:
        first_month = ((now.month - 1) // 3) * 3 + 1
        start_at = midnight.replace(month=first_month, day=1)
        year, month = _add_months(now.year, first_month, 3)
        return ScoreWindow(start_at=start_at, end_at=start_at.replace(year=year, month=month))

    start_at = midnight.replace(month=1, day=1)
    return ScoreWindow(start_at=start_at, end_at=start_at.replace(year=now.year + 1))
