from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    offset: int
    total: int
    pages: int


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class ListResponse(BaseModel, Generic[T]):
    success: bool = True
    count: int
    data: list[T]
    pagination: Pagination


class MessageResponse(BaseModel):
    success: bool = True
    message: str
