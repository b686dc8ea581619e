from __future__ import annotations

import math
from typing import Any


def pagination(total: int, limit: int, offset: int) -> dict[str, int]:
    return {
        "page": offset // limit + 1 if limit else 1,
        "limit": limit,
        "offset": offset,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def success_response(data: Any = None, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def list_response(items: list, limit: int, offset: int, total: int | None = None) -> dict[str, Any]:
    total = len(items) + offset if total is None else total
    return {
        "success": True,
        "count": len(items),
        "data": items,
        "pagination": pagination(total, limit, offset),
    }
