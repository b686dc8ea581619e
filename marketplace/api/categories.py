from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from marketplace.api.deps import get_db, require_role
from marketplace.schemas.category import ServiceCategoryCreate, ServiceCategoryRead, ServiceCategoryUpdate
from marketplace.schemas.common import Envelope, ListResponse, MessageResponse
from marketplace.services.categories import service_categories
from marketplace.services.response import list_response, success_response

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=ListResponse[ServiceCategoryRead])
def list_categories(
    search: str | None = None,
    order_by: str = Query(default="sort_order"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items = service_categories.list(
        db, search=search, order_by=order_by, order_dir=order_dir, limit=limit, offset=offset
    )
    return list_response(items, limit, offset)


@router.get("/{category_id}", response_model=Envelope[ServiceCategoryRead])
def get_category(category_id: str, db: Session = Depends(get_db)):
    return success_response(service_categories.get(db, category_id))


@router.post(
    "",
    response_model=Envelope[ServiceCategoryRead],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role("admin"))],
)
def create_category(payload: ServiceCategoryCreate, db: Session = Depends(get_db)):
    return success_response(service_categories.create(db, payload), "Category created")


@router.put(
    "/{category_id}",
    response_model=Envelope[ServiceCategoryRead],
    dependencies=[Depends(require_role("admin"))],
)
def update_category(category_id: str, payload: ServiceCategoryUpdate, db: Session = Depends(get_db)):
    return success_response(service_categories.update(db, category_id, payload))


@router.patch(
    "/{category_id}/toggle",
    response_model=Envelope[ServiceCategoryRead],
    dependencies=[Depends(require_role("admin"))],
)
def toggle_category(category_id: str, db: Session = Depends(get_db)):
    return success_response(service_categories.toggle(db, category_id))


@router.delete(
    "/{category_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_role("admin"))],
)
def delete_category(category_id: str, db: Session = Depends(get_db)):
    service_categories.delete(db, category_id)
    return {"message": "Category deleted"}
