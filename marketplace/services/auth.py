from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.errors import AuthenticationError, AuthorizationError, ConflictError, ValidationError
from marketplace.models.user import User, UserRole
from marketplace.schemas.auth import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SELF_REGISTER_ROLES = {UserRole.user, UserRole.provider}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unknown or malformed hash.
        return False


def create_access_token(user: User, expires_minutes: int | None = None) -> str:
    now = datetime.now(UTC)
    expires_at = now + timedelta(minutes=expires_minutes or settings.jwt_access_ttl_minutes)
    payload = {
        "sub": str(user.id),
        "roles": [user.role.value],
        "typ": "access",
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationError("Invalid token") from exc
    if payload.get("typ") != "access" or not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return payload


class Auth:
    @staticmethod
    def register(db: Session, payload: RegisterRequest) -> User:
        role = UserRole(payload.role)
        if role not in SELF_REGISTER_ROLES:
            raise AuthorizationError("Admin accounts cannot be self-registered")
        email = payload.email.strip().lower()
        existing = db.query(User).filter(func.lower(User.email) == email).first()
        if existing:
            raise ConflictError("User already exists with this email")
        user = User(
            email=email,
            name=payload.name.strip(),
            phone=payload.phone,
            role=role,
            password_hash=hash_password(payload.password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("User registered id=%s role=%s", user.id, role.value)
        return user

    @staticmethod
    def login(db: Session, payload: LoginRequest) -> tuple[User, str]:
        email = payload.email.strip().lower()
        user = db.query(User).filter(func.lower(User.email) == email).first()
        if not user or not verify_password(payload.password, user.password_hash):
            logger.warning("Failed login for %s", email)
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            logger.warning("Login refused for inactive user id=%s", user.id)
            raise AuthenticationError("Account is deactivated")
        return user, create_access_token(user)

    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise ValidationError(
                "Validation errors",
                errors=[{"field": "current_password", "message": "Current password is incorrect"}],
            )
        user.password_hash = hash_password(new_password)
        db.commit()
        logger.info("Password changed user=%s", user.id)


auth = Auth()
