from __future__ import annotations

from pydantic import BaseModel, Field

from marketplace.models.user import UserRole


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=160)
    phone: str | None = Field(default=None, max_length=40)


class UserAdminUpdate(UserUpdate):
    role: UserRole | None = None
    is_active: bool | None = None
