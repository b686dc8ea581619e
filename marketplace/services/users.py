from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.errors import ValidationError
from marketplace.models.user import User, UserRole
from marketplace.schemas.user import UserAdminUpdate, UserUpdate
from marketplace.services.common import apply_is_active_filter, apply_ordering, apply_pagination, get_or_404

logger = logging.getLogger(__name__)


class Users:
    @staticmethod
    def get(db: Session, user_id: str) -> User:
        return get_or_404(db, User, user_id, detail="User not found")

    @staticmethod
    def _filtered(db: Session, role: UserRole | None, is_active: bool | None, search: str | None):
        query = apply_is_active_filter(db.query(User), User, is_active)
        if role is not None:
            query = query.filter(User.role == role)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        return query

    @staticmethod
    def list(
        db: Session,
        role: UserRole | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> list[User]:
        query = Users._filtered(db, role, is_active, search)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": User.created_at, "name": User.name, "email": User.email},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def count(
        db: Session, role: UserRole | None = None, is_active: bool | None = None, search: str | None = None
    ) -> int:
        return Users._filtered(db, role, is_active, search).count()

    @staticmethod
    def update_profile(db: Session, user_id: str, payload: UserUpdate) -> User:
        user = get_or_404(db, User, user_id, detail="User not found")
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(user, field, value.strip() if isinstance(value, str) else value)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def admin_update(db: Session, user_id: str, acting_user_id: str, payload: UserAdminUpdate) -> User:
        user = get_or_404(db, User, user_id, detail="User not found")
        data = payload.model_dump(exclude_unset=True)
        if str(user.id) == str(acting_user_id) and (
            data.get("is_active") is False or data.get("role") not in (None, UserRole.admin)
        ):
            raise ValidationError("Admins cannot demote or deactivate themselves")
        for field, value in data.items():
            setattr(user, field, value)
        db.commit()
        db.refresh(user)
        logger.info("User %s updated by admin %s fields=%s", user.id, acting_user_id, sorted(data))
        return user


users = Users()
