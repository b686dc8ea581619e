from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_current_user, get_db, require_role
from marketplace.models.user import UserRole
from marketplace.schemas.auth import UserRead
from marketplace.schemas.common import Envelope, ListResponse
from marketplace.schemas.user import UserAdminUpdate, UserUpdate
from marketplace.services.response import list_response, success_response
from marketplace.services.users import users

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=ListResponse[UserRead], dependencies=[Depends(require_role("admin"))])
def list_users(
    role: UserRole | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    items = users.list(
        db,
        role=role,
        is_active=is_active,
        search=search,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )
    total = users.count(db, role=role, is_active=is_active, search=search)
    return list_response(items, limit, offset, total=total)


@router.put("/me", response_model=Envelope[UserRead])
def update_me(payload: UserUpdate, auth=Depends(get_current_user), db: Session = Depends(get_db)):
    return success_response(users.update_profile(db, auth["user_id"], payload))


@router.get("/{user_id}", response_model=Envelope[UserRead], dependencies=[Depends(require_role("admin"))])
def get_user(user_id: str, db: Session = Depends(get_db)):
    return success_response(users.get(db, user_id))


@router.patch("/{user_id}", response_model=Envelope[UserRead])
def admin_update_user(
    user_id: str,
    payload: UserAdminUpdate,
    auth=Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    return success_response(users.admin_update(db, user_id, auth["user_id"], payload))
