from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_db, require_role
from marketplace.errors import NotFoundError
from marketplace.schemas.common import Envelope, ListResponse
from marketplace.schemas.quality import QualityCalculateRequest, QualityScoreRead, RecommendationsRead
from marketplace.services.auth_dependencies import is_admin
from marketplace.services.providers import assert_can_access_provider, service_providers
from marketplace.services.quality import quality_recommendations, quality_reports, quality_scoring
from marketplace.services.quality.scoring import serialize_score
from marketplace.services.response import list_response, success_response

router = APIRouter(prefix="/quality", tags=["quality"])


@router.get("/scores", response_model=ListResponse[QualityScoreRead])
def list_scores(
    provider_id: str | None = None,
    period: str | None = None,
    min_sqi: float | None = Query(default=None, ge=0, le=100),
    max_sqi: float | None = Query(default=None, ge=0, le=100),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    if not is_admin(auth):
        own = service_providers.get_for_user(db, auth["user_id"])
        if not own:
            raise NotFoundError("Provider profile not found")
        provider_id = str(own.id)
    filters = {"provider_id": provider_id, "period": period, "min_sqi": min_sqi, "max_sqi": max_sqi}
    items = quality_scoring.list(db, limit=limit, offset=offset, **filters)
    return list_response(
        [serialize_score(item) for item in items],
        limit,
        offset,
        total=quality_scoring.count(db, **filters),
    )


@router.get("/scores/current/{provider_id}", response_model=Envelope[QualityScoreRead])
def current_score(
    provider_id: str,
    period: str | None = None,
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    assert_can_access_provider(db, auth, provider_id)
    score = quality_scoring.get_current(db, provider_id, period)
    if not score:
        raise NotFoundError("No quality score found for the specified period")
    return success_response(serialize_score(score))


@router.post("/scores/calculate/{provider_id}", response_model=Envelope[QualityScoreRead])
def calculate_score(
    provider_id: str,
    payload: QualityCalculateRequest | None = None,
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    assert_can_access_provider(db, auth, provider_id)
    period = payload.period if payload else None
    score = quality_scoring.calculate_and_save(db, provider_id, period)
    return success_response(serialize_score(score), "Quality score calculated and saved successfully")


@router.get("/scores/history/{provider_id}", response_model=Envelope[list[QualityScoreRead]])
def score_history(
    provider_id: str,
    period: str | None = None,
    limit: int = Query(default=24, ge=1, le=120),
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    assert_can_access_provider(db, auth, provider_id)
    rows = quality_scoring.history(db, provider_id, period, limit=limit)
    return success_response([serialize_score(row) for row in rows])


@router.get("/recommendations/{provider_id}", response_model=Envelope[RecommendationsRead])
def recommendations(
    provider_id: str,
    period: str | None = None,
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    assert_can_access_provider(db, auth, provider_id)
    return success_response(quality_recommendations.for_provider(db, provider_id, period))


@router.get("/benchmarks", response_model=Envelope[dict], dependencies=[Depends(require_role("admin"))])
def benchmarks(
    period: str | None = None,
    category: str | None = None,
    db: Session = Depends(get_db),
):
    return success_response(quality_reports.benchmarks(db, period, category))


@router.get("/analytics", response_model=Envelope[dict], dependencies=[Depends(require_role("admin"))])
def analytics(
    period: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
):
    return success_response(quality_reports.analytics(db, period, start_date, end_date))
