from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from marketplace.db import get_db as _get_db
from marketplace.errors import AuthenticationError, AuthorizationError
from marketplace.models.user import User
from marketplace.services.auth import decode_access_token
from marketplace.services.common import coerce_uuid


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None


def require_user_auth(
    request: Request = None,  # type: ignore[assignment]
    authorization: str | None = Header(default=None),
    db: Session = Depends(_get_db),
):
    """Resolve the bearer token into an auth context.

    Returns a dict with ``user_id`` and ``roles``. Roles come from the stored
    user so a role change takes effect without reissuing tokens.
    """
    token = _extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Not authorized, no token")
    payload = decode_access_token(token)
    user = db.get(User, coerce_uuid(payload.get("sub")))
    if not user or not user.is_active:
        raise AuthenticationError("Not authorized")
    if request is not None:
        request.state.actor_id = str(user.id)
    return {"user_id": str(user.id), "roles": [user.role.value]}


def require_role(*role_names: str):
    def _require_role(auth=Depends(require_user_auth)):
        roles = set(auth.get("roles") or [])
        if roles.intersection(role_names):
            return auth
        raise AuthorizationError(f"User role {', '.join(sorted(roles))} is not authorized to access this route")

    return _require_role


def is_admin(auth: dict) -> bool:
    return "admin" in (auth.get("roles") or [])
