from __future__ import annotations

import logging
import re

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from marketplace.errors import ConflictError, ValidationError
from marketplace.models.provider import ServiceCategory, ServiceProvider
from marketplace.schemas.category import ServiceCategoryCreate, ServiceCategoryUpdate
from marketplace.services.common import apply_is_active_filter, apply_ordering, apply_pagination, get_or_404

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    if not slug:
        raise ValidationError(
            "Validation errors",
            errors=[{"field": "slug", "message": "Slug could not be derived from name"}],
        )
    return slug


def _ensure_unique(db: Session, name: str | None, slug: str | None, exclude_id=None) -> None:
    filters = []
    if name:
        filters.append(func.lower(ServiceCategory.name) == name.strip().lower())
    if slug:
        filters.append(ServiceCategory.slug == slug)
    if not filters:
        return
    query = db.query(ServiceCategory).filter(or_(*filters))
    if exclude_id is not None:
        query = query.filter(ServiceCategory.id != exclude_id)
    if query.first():
        raise ConflictError("Category with this name or slug already exists")


class ServiceCategories:
    @staticmethod
    def create(db: Session, payload: ServiceCategoryCreate) -> ServiceCategory:
        data = payload.model_dump()
        data["name"] = data["name"].strip()
        data["slug"] = data.get("slug") or slugify(data["name"])
        _ensure_unique(db, data["name"], data["slug"])
        category = ServiceCategory(**data)
        db.add(category)
        db.commit()
        db.refresh(category)
        logger.info("Category created id=%s slug=%s", category.id, category.slug)
        return category

    @staticmethod
    def get(db: Session, category_id: str) -> ServiceCategory:
        return get_or_404(db, ServiceCategory, category_id, detail="Category not found")

    @staticmethod
    def list(
        db: Session,
        is_active: bool | None = True,
        search: str | None = None,
        order_by: str = "sort_order",
        order_dir: str = "asc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[ServiceCategory]:
        query = db.query(ServiceCategory)
        query = apply_is_active_filter(query, ServiceCategory, is_active)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(ServiceCategory.name.ilike(pattern), ServiceCategory.description.ilike(pattern)))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "sort_order": ServiceCategory.sort_order,
                "name": ServiceCategory.name,
                "provider_count": ServiceCategory.provider_count,
                "created_at": ServiceCategory.created_at,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, category_id: str, payload: ServiceCategoryUpdate) -> ServiceCategory:
        category = get_or_404(db, ServiceCategory, category_id, detail="Category not found")
        data = payload.model_dump(exclude_unset=True)
        if "name" in data and data["name"]:
            data["name"] = data["name"].strip()
        _ensure_unique(db, data.get("name"), data.get("slug"), exclude_id=category.id)
        for field, value in data.items():
            setattr(category, field, value)
        db.commit()
        db.refresh(category)
        return category

    @staticmethod
    def toggle(db: Session, category_id: str) -> ServiceCategory:
        category = get_or_404(db, ServiceCategory, category_id, detail="Category not found")
        category.is_active = not category.is_active
        db.commit()
        db.refresh(category)
        logger.info("Category %s is_active=%s", category.id, category.is_active)
        return category

    @staticmethod
    def delete(db: Session, category_id: str) -> None:
        category = get_or_404(db, ServiceCategory, category_id, detail="Category not found")
        in_use = db.query(ServiceProvider.id).filter(ServiceProvider.category_id == category.id).first()
        if in_use:
            raise ValidationError("Cannot delete category that has providers assigned to it")
        db.delete(category)
        db.commit()
        logger.info("Category deleted id=%s", category_id)

    @staticmethod
    def refresh_provider_count(db: Session, category_id) -> None:
        category = db.get(ServiceCategory, category_id)
        if not category:
            return
        category.provider_count = (
            db.query(func.count(ServiceProvider.id))
            .filter(ServiceProvider.category_id == category.id, ServiceProvider.is_active.is_(True))
            .scalar()
            or 0
        )


service_categories = ServiceCategories()
