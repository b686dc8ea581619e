from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from marketplace.models.provider import ApprovalStatus, ServiceCategory, ServiceProvider
from marketplace.schemas.provider import ProviderApprovalRequest, ServiceProviderCreate, ServiceProviderUpdate
from marketplace.services.auth_dependencies import is_admin
from marketplace.services.categories import service_categories
from marketplace.services.common import apply_ordering, apply_pagination, coerce_uuid, get_or_404

logger = logging.getLogger(__name__)

# sort key -> column attribute
PROVIDER_SORTS = {
    "rating": "rating",
    "price": "price",
    "review_count": "review_count",
    "newest": "created_at",
    "name": "name",
}


def _require_active_category(db: Session, category_id) -> ServiceCategory:
    category = db.get(ServiceCategory, coerce_uuid(category_id))
    if not category or not category.is_active:
        raise ValidationError(
            "Validation errors",
            errors=[{"field": "category_id", "message": "Category does not exist or is inactive"}],
        )
    return category


class ServiceProviders:
    @staticmethod
    def create(db: Session, user_id: str, payload: ServiceProviderCreate) -> ServiceProvider:
        existing = db.query(ServiceProvider).filter(ServiceProvider.user_id == coerce_uuid(user_id)).first()
        if existing:
            raise ConflictError("Provider profile already exists for this user")
        category = _require_active_category(db, payload.category_id)
        data = payload.model_dump()
        data["email"] = data["email"].lower()
        provider = ServiceProvider(user_id=coerce_uuid(user_id), **data)
        db.add(provider)
        db.flush()
        service_categories.refresh_provider_count(db, category.id)
        db.commit()
        db.refresh(provider)
        logger.info("Provider profile created id=%s user=%s", provider.id, user_id)
        return provider

    @staticmethod
    def get(db: Session, provider_id: str) -> ServiceProvider:
        return get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")

    @staticmethod
    def get_public(db: Session, provider_id: str) -> ServiceProvider:
        provider = get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")
        if not provider.is_active or provider.approval_status != ApprovalStatus.approved:
            raise NotFoundError("Service provider not found")
        return provider

    @staticmethod
    def get_for_user(db: Session, user_id: str) -> ServiceProvider | None:
        return db.query(ServiceProvider).filter(ServiceProvider.user_id == coerce_uuid(user_id)).first()

    @staticmethod
    def _filtered(
        db: Session,
        category: str | None = None,
        location: str | None = None,
        min_rating: float | None = None,
        search: str | None = None,
        approval_status: ApprovalStatus | None = ApprovalStatus.approved,
        is_active: bool | None = True,
    ):
        query = db.query(ServiceProvider)
        if is_active is not None:
            query = query.filter(ServiceProvider.is_active.is_(is_active))
        if approval_status is not None:
            query = query.filter(ServiceProvider.approval_status == approval_status)
        if category:
            query = query.join(ServiceCategory, ServiceCategory.id == ServiceProvider.category_id).filter(
                or_(ServiceCategory.slug == category, ServiceCategory.name == category)
            )
        if location:
            pattern = f"%{location.strip()}%"
            query = query.filter(or_(ServiceProvider.location.ilike(pattern), ServiceProvider.country.ilike(pattern)))
        if min_rating is not None:
            query = query.filter(ServiceProvider.rating >= min_rating)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    ServiceProvider.name.ilike(pattern),
                    ServiceProvider.bio.ilike(pattern),
                    ServiceProvider.subcategory.ilike(pattern),
                )
            )
        return query

    @staticmethod
    def list(
        db: Session,
        category: str | None = None,
        location: str | None = None,
        min_rating: float | None = None,
        search: str | None = None,
        sort: str = "rating",
        order_dir: str = "desc",
        approval_status: ApprovalStatus | None = ApprovalStatus.approved,
        is_active: bool | None = True,
        limit: int = 20,
        offset: int = 0,
    ) -> list[ServiceProvider]:
        query = ServiceProviders._filtered(db, category, location, min_rating, search, approval_status, is_active)
        query = apply_ordering(
            query,
            sort,
            order_dir,
            {key: getattr(ServiceProvider, column) for key, column in PROVIDER_SORTS.items()},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def count(
        db: Session,
        category: str | None = None,
        location: str | None = None,
        min_rating: float | None = None,
        search: str | None = None,
        approval_status: ApprovalStatus | None = ApprovalStatus.approved,
        is_active: bool | None = True,
    ) -> int:
        return ServiceProviders._filtered(
            db, category, location, min_rating, search, approval_status, is_active
        ).count()

    @staticmethod
    def update(db: Session, provider_id: str, auth: dict, payload: ServiceProviderUpdate) -> ServiceProvider:
        provider = get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")
        assert_owner_or_admin(provider, auth)
        data = payload.model_dump(exclude_unset=True)
        previous_category = provider.category_id
        if data.get("category_id"):
            _require_active_category(db, data["category_id"])
        if data.get("email"):
            data["email"] = data["email"].lower()
        for field, value in data.items():
            setattr(provider, field, value)
        db.flush()
        if provider.category_id != previous_category:
            service_categories.refresh_provider_count(db, previous_category)
            service_categories.refresh_provider_count(db, provider.category_id)
        db.commit()
        db.refresh(provider)
        return provider

    @staticmethod
    def set_approval(db: Session, provider_id: str, payload: ProviderApprovalRequest) -> ServiceProvider:
        provider = get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")
        provider.approval_status = payload.approval_status
        if payload.is_verified is not None:
            provider.is_verified = payload.is_verified
        elif payload.approval_status == ApprovalStatus.approved:
            provider.is_verified = True
        db.commit()
        db.refresh(provider)
        logger.info("Provider %s approval=%s", provider.id, provider.approval_status.value)
        return provider

    @staticmethod
    def delete(db: Session, provider_id: str, auth: dict) -> None:
        provider = get_or_404(db, ServiceProvider, provider_id, detail="Service provider not found")
        assert_owner_or_admin(provider, auth)
        provider.is_active = False
        db.flush()
        service_categories.refresh_provider_count(db, provider.category_id)
        db.commit()
        logger.info("Provider deactivated id=%s", provider.id)


def assert_owner_or_admin(provider: ServiceProvider, auth: dict) -> None:
    if is_admin(auth):
        return
    if str(provider.user_id) != str(auth.get("user_id")):
        raise AuthorizationError("Not authorized to modify this provider")


def assert_can_access_provider(db: Session, auth: dict, provider_id: str) -> None:
    """Admins see every provider; anyone else only the profile they own."""
    if is_admin(auth):
        return
    own = ServiceProviders.get_for_user(db, auth.get("user_id"))
    if not own or own.id != coerce_uuid(provider_id):
        raise AuthorizationError("Not authorized to view this provider's quality data")


service_providers = ServiceProviders()
