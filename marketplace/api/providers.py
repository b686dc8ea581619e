from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_db, require_role
from marketplace.errors import NotFoundError
from marketplace.models.provider import ApprovalStatus
from marketplace.schemas.common import Envelope, ListResponse, MessageResponse
from marketplace.schemas.provider import (
    ProviderApprovalRequest,
    ServiceProviderCreate,
    ServiceProviderRead,
    ServiceProviderUpdate,
)
from marketplace.services.providers import service_providers
from marketplace.services.response import list_response, success_response

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=ListResponse[ServiceProviderRead])
def list_providers(
    category: str | None = None,
    location: str | None = None,
    min_rating: float | None = Query(default=None, ge=0, le=5),
    search: str | None = None,
    sort: str = Query(default="rating", pattern="^(rating|price|review_count|newest|name)$"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    filters = {"category": category, "location": location, "min_rating": min_rating, "search": search}
    items = service_providers.list(db, sort=sort, order_dir=order_dir, limit=limit, offset=offset, **filters)
    return list_response(items, limit, offset, total=service_providers.count(db, **filters))


@router.get(
    "/pending",
    response_model=ListResponse[ServiceProviderRead],
    dependencies=[Depends(require_role("admin"))],
)
def list_pending_providers(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items = service_providers.list(
        db, approval_status=ApprovalStatus.pending, sort="newest", limit=limit, offset=offset
    )
    total = service_providers.count(db, approval_status=ApprovalStatus.pending)
    return list_response(items, limit, offset, total=total)


@router.get("/me", response_model=Envelope[ServiceProviderRead], dependencies=[Depends(require_role("provider"))])
def my_provider_profile(auth=Depends(get_current_user), db: Session = Depends(get_db)):
    provider = service_providers.get_for_user(db, auth["user_id"])
    if not provider:
        raise NotFoundError("Provider profile not found")
    return success_response(provider)


@router.get("/{provider_id}", response_model=Envelope[ServiceProviderRead])
def get_provider(provider_id: str, db: Session = Depends(get_db)):
    return success_response(service_providers.get_public(db, provider_id))


@router.post("", response_model=Envelope[ServiceProviderRead], status_code=status.HTTP_201_CREATED)
def create_provider(
    payload: ServiceProviderCreate,
    auth=Depends(require_role("provider")),
    db: Session = Depends(get_db),
):
    provider = service_providers.create(db, auth["user_id"], payload)
    return success_response(provider, "Provider profile submitted for approval")


@router.put("/{provider_id}", response_model=Envelope[ServiceProviderRead])
def update_provider(
    provider_id: str,
    payload: ServiceProviderUpdate,
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    return success_response(service_providers.update(db, provider_id, auth, payload))


@router.patch(
    "/{provider_id}/approval",
    response_model=Envelope[ServiceProviderRead],
    dependencies=[Depends(require_role("admin"))],
)
def set_provider_approval(provider_id: str, payload: ProviderApprovalRequest, db: Session = Depends(get_db)):
    return success_response(service_providers.set_approval(db, provider_id, payload))


@router.delete("/{provider_id}", response_model=MessageResponse)
def delete_provider(
    provider_id: str,
    auth=Depends(require_role("provider", "admin")),
    db: Session = Depends(get_db),
):
    service_providers.delete(db, provider_id, auth)
    return {"message": "Provider deactivated"}
