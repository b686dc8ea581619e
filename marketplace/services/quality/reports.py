from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.models.provider import ServiceCategory, ServiceProvider
from marketplace.models.quality import QualityPeriod, QualityScore
from marketplace.services.common import as_utc, to_float
from marketplace.services.quality.classification import QualityTier, tier_counts
from marketplace.services.quality.periods import parse_period

TOP_PROVIDERS_LIMIT = 10


def _avg(values: list[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def percentile(values: list[float], fraction: float) -> float:
    """Linear-interpolated percentile of ``values`` (``fraction`` in 0..1)."""
    if not values:
        return 0.0
    ordered = sorted(values)
    if len(ordered) == 1:
        return round(ordered[0], 2)
    position = (len(ordered) - 1) * min(max(fraction, 0.0), 1.0)
    lower = int(position)
    upper = min(lower + 1, len(ordered) - 1)
    weight = position - lower
    return round(ordered[lower] + (ordered[upper] - ordered[lower]) * weight, 2)


def _sqi_values(scores: list[QualityScore]) -> list[float]:
    return [to_float(score.sqi) for score in scores]


def _category_label(category: ServiceCategory | None) -> dict[str, Any]:
    if category is None:
        return {"category_id": None, "category_name": None, "category_slug": None}
    return {"category_id": str(category.id), "category_name": category.name, "category_slug": category.slug}


class QualityReportsService:
    def _active_rows(
        self,
        db: Session,
        period: QualityPeriod,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
    ) -> list[tuple[QualityScore, ServiceProvider, ServiceCategory | None]]:
        query = (
            db.query(QualityScore, ServiceProvider, ServiceCategory)
            .join(ServiceProvider, ServiceProvider.id == QualityScore.provider_id)
            .outerjoin(ServiceCategory, ServiceCategory.id == ServiceProvider.category_id)
            .filter(QualityScore.period == period, QualityScore.is_active.is_(True))
        )
        if start_at:
            query = query.filter(QualityScore.created_at >= start_at)
        if end_at:
            query = query.filter(QualityScore.created_at <= end_at)
        return query.all()

    def _resolve_category(self, db: Session, category: str | None) -> ServiceCategory | None:
        if not category:
            return None
        filters = [ServiceCategory.slug == category, ServiceCategory.name == category]
        try:
            filters.append(ServiceCategory.id == uuid.UUID(category))
        except ValueError:
            # Slugs and names are not UUIDs.
            pass
        return db.query(ServiceCategory).filter(or_(*filters)).first()

    def benchmarks(
        self, db: Session, period: str | QualityPeriod | None = None, category: str | None = None
    ) -> dict[str, Any]:
        period = parse_period(period)
        rows = self._active_rows(db, period)
        scores = [score for score, _provider, _category in rows]
        values = _sqi_values(scores)

        overall = {
            "provider_count": len(scores),
            "average_sqi": _avg(values),
            "median_sqi": percentile(values, 0.5),
            "p25_sqi": percentile(values, 0.25),
            "p75_sqi": percentile(values, 0.75),
            "p90_sqi": percentile(values, 0.90),
            "average_review_rating": _avg([to_float(s.review_rating) for s in scores]),
            "average_completion_rate": _avg([to_float(s.appointment_completion_rate) for s in scores]),
            "average_response_speed": _avg([to_float(s.response_speed) for s in scores]),
            "average_complaint_rate": _avg([to_float(s.complaint_rate) for s in scores]),
        }

        grouped: dict[str | None, list[float]] = defaultdict(list)
        categories: dict[str | None, ServiceCategory | None] = {}
        for score, _provider, score_category in rows:
            key = str(score_category.id) if score_category else None
            grouped[key].append(to_float(score.sqi))
            categories[key] = score_category

        all_categories = [
            {
                **_category_label(categories[key]),
                "average_sqi": _avg(sqis),
                "median_sqi": percentile(sqis, 0.5),
                "provider_count": len(sqis),
            }
            for key, sqis in grouped.items()
        ]
        all_categories.sort(key=lambda item: item["average_sqi"], reverse=True)

        category_block = None
        requested = self._resolve_category(db, category)
        if requested is not None and str(requested.id) in grouped:
            sqis = grouped[str(requested.id)]
            category_block = {
                **_category_label(requested),
                "average_sqi": _avg(sqis),
                "median_sqi": percentile(sqis, 0.5),
                "p25_sqi": percentile(sqis, 0.25),
                "p75_sqi": percentile(sqis, 0.75),
                "p90_sqi": percentile(sqis, 0.90),
                "provider_count": len(sqis),
            }

        return {
            "period": period.value,
            "overall": overall,
            "category": category_block,
            "all_categories": all_categories,
        }

    def analytics(
        self,
        db: Session,
        period: str | QualityPeriod | None = None,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
    ) -> dict[str, Any]:
        period = parse_period(period)
        rows = self._active_rows(db, period, as_utc(start_at), as_utc(end_at))
        bucket_format = "%Y-%m-%d" if period == QualityPeriod.daily else "%Y-%m"

        buckets: dict[str, list[float]] = defaultdict(list)
        for score, _provider, _category in rows:
            buckets[as_utc(score.created_at).strftime(bucket_format)].append(to_float(score.sqi))
        distribution = []
        for bucket in sorted(buckets, reverse=True):
            sqis = buckets[bucket]
            counts = tier_counts(sqis)
            distribution.append(
                {
                    "bucket": bucket,
                    "average_sqi": _avg(sqis),
                    "min_sqi": round(min(sqis), 2),
                    "max_sqi": round(max(sqis), 2),
                    "excellent_providers": counts[QualityTier.excellent.value],
                    "good_providers": counts[QualityTier.good.value],
                    "average_providers": counts[QualityTier.average.value],
                    "poor_providers": counts[QualityTier.poor.value],
                    "total_providers": len(sqis),
                }
            )

        per_provider: dict[str, list[tuple[QualityScore, ServiceProvider, ServiceCategory | None]]] = defaultdict(list)
        for row in rows:
            per_provider[str(row[1].id)].append(row)
        top_providers = []
        for provider_rows in per_provider.values():
            provider_rows.sort(key=lambda row: as_utc(row[0].created_at))
            latest, provider, category = provider_rows[-1]
            top_providers.append(
                {
                    "provider_id": str(provider.id),
                    "provider_name": provider.name,
                    **_category_label(category),
                    "average_sqi": _avg([to_float(row[0].sqi) for row in provider_rows]),
                    "latest_sqi": to_float(latest.sqi),
                    "total_scores": len(provider_rows),
                }
            )
        top_providers.sort(key=lambda item: item["latest_sqi"], reverse=True)

        by_category: dict[str | None, list[float]] = defaultdict(list)
        category_lookup: dict[str | None, ServiceCategory | None] = {}
        for score, _provider, category in rows:
            key = str(category.id) if category else None
            by_category[key].append(to_float(score.sqi))
            category_lookup[key] = category

        scores = [row[0] for row in rows]
        return {
            "period": period.value,
            "distribution": distribution,
            "top_providers": top_providers[:TOP_PROVIDERS_LIMIT],
            "by_category": sorted(
                (
                    {**_category_label(category_lookup[key]), "average_sqi": _avg(sqis), "provider_count": len(sqis)}
                    for key, sqis in by_category.items()
                ),
                key=lambda item: item["category_name"] or "",
            ),
            "metrics": {
                "average_review_rating": _avg([to_float(s.review_rating) for s in scores]),
                "average_completion_rate": _avg([to_float(s.appointment_completion_rate) for s in scores]),
                "average_response_speed": _avg([to_float(s.response_speed) for s in scores]),
                "average_complaint_rate": _avg([to_float(s.complaint_rate) for s in scores]),
                "total_appointments": sum(s.total_appointments or 0 for s in scores),
                "total_completed_appointments": sum(s.completed_appointments or 0 for s in scores),
                "total_complaints": sum(s.total_complaints or 0 for s in scores),
            },
        }


quality_reports = QualityReportsService()
