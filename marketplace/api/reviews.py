from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_db, require_role
from marketplace.schemas.common import Envelope, ListResponse, MessageResponse
from marketplace.schemas.review import (
    ReviewCreate,
    ReviewModerationRequest,
    ReviewRead,
    ReviewReportCreate,
    ReviewResponseCreate,
    ReviewUpdate,
)
from marketplace.services.response import list_response, success_response
from marketplace.services.reviews import reviews

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/provider/{provider_id}", response_model=ListResponse[ReviewRead])
def list_provider_reviews(
    provider_id: str,
    min_rating: int | None = Query(default=None, ge=1, le=5),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items = reviews.list_for_provider(
        db,
        provider_id,
        min_rating=min_rating,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )
    total = reviews.count_for_provider(db, provider_id, min_rating=min_rating)
    return list_response(items, limit, offset, total=total)


@router.get("/{review_id}", response_model=Envelope[ReviewRead])
def get_review(review_id: str, db: Session = Depends(get_db)):
    return success_response(reviews.get(db, review_id))


@router.post("", response_model=Envelope[ReviewRead], status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    auth=Depends(require_role("user")),
    db: Session = Depends(get_db),
):
    return success_response(reviews.create(db, auth["user_id"], payload), "Review submitted")


@router.put("/{review_id}", response_model=Envelope[ReviewRead])
def update_review(
    review_id: str,
    payload: ReviewUpdate,
    auth=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success_response(reviews.update(db, review_id, auth["user_id"], payload))


@router.post("/{review_id}/report", response_model=Envelope[ReviewRead])
def report_review(
    review_id: str,
    payload: ReviewReportCreate,
    auth=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success_response(reviews.report(db, review_id, auth["user_id"], payload.reason), "Review reported")


@router.post("/{review_id}/response", response_model=Envelope[ReviewRead])
def respond_to_review(
    review_id: str,
    payload: ReviewResponseCreate,
    auth=Depends(require_role("provider")),
    db: Session = Depends(get_db),
):
    return success_response(reviews.respond(db, review_id, auth, payload.response_text))


@router.patch(
    "/{review_id}/moderation",
    response_model=Envelope[ReviewRead],
    dependencies=[Depends(require_role("admin"))],
)
def moderate_review(review_id: str, payload: ReviewModerationRequest, db: Session = Depends(get_db)):
    review = reviews.moderate(db, review_id, payload.is_visible, payload.reason)
    outcome = "approved" if payload.is_visible else "hidden"
    return success_response(review, f"Review {outcome} successfully")


@router.delete("/{review_id}", response_model=MessageResponse)
def delete_review(review_id: str, auth=Depends(get_current_user), db: Session = Depends(get_db)):
    reviews.delete(db, review_id, auth)
    return {"message": "Review deleted"}
