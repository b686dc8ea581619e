from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from marketplace.models.provider import ApprovalStatus


class ServiceProviderBase(BaseModel):
    name: str = Field(min_length=2, max_length=160)
    category_id: UUID
    email: EmailStr
    phone: str = Field(min_length=5, max_length=40)
    subcategory: str | None = Field(default=None, max_length=120)
    location: str = Field(min_length=2, max_length=160)
    country: str = Field(min_length=2, max_length=80)
    experience_years: int = Field(default=0, ge=0, le=80)
    bio: str | None = Field(default=None, max_length=2000)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    price_unit: str | None = Field(default=None, max_length=40)


class ServiceProviderCreate(ServiceProviderBase):
    pass


class ServiceProviderUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=160)
    category_id: UUID | None = None
    email: EmailStr | None = None
    phone: str | None = Field(default=None, min_length=5, max_length=40)
    subcategory: str | None = Field(default=None, max_length=120)
    location: str | None = Field(default=None, min_length=2, max_length=160)
    country: str | None = Field(default=None, min_length=2, max_length=80)
    experience_years: int | None = Field(default=None, ge=0, le=80)
    bio: str | None = Field(default=None, max_length=2000)
    price: Decimal | None = Field(default=None, ge=0)
    price_unit: str | None = Field(default=None, max_length=40)


class ProviderApprovalRequest(BaseModel):
    approval_status: ApprovalStatus
    is_verified: bool | None = None


class ServiceProviderRead(ServiceProviderBase):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    email: str
    rating: Decimal
    review_count: int
    approval_status: ApprovalStatus
    is_verified: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
