import os
import uuid
from datetime import UTC, datetime

os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from marketplace import models  # noqa: F401,E402
from marketplace.db import Base, get_db  # noqa: E402
from marketplace.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from marketplace.models.provider import ApprovalStatus, ServiceCategory, ServiceProvider  # noqa: E402
from marketplace.models.user import User, UserRole  # noqa: E402
from marketplace.services.auth import create_access_token, hash_password  # noqa: E402


class _JoseDateTimeProxy:
    @staticmethod
    def utcnow():
        return datetime.now(UTC)

    @staticmethod
    def now(tz=None):
        return datetime.now(tz)

    def __getattr__(self, name: str):
        return getattr(datetime, name)


@pytest.fixture(autouse=True)
def _patch_jose_datetime(monkeypatch):
    import jose.jwt as jose_jwt

    monkeypatch.setattr(jose_jwt, "datetime", _JoseDateTimeProxy, raising=False)


@pytest.fixture(scope="session")
def engine():
    database_url = os.environ["DATABASE_URL"]
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_engine(database_url)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def client(db_session):
    from marketplace.main import app

    def _get_db_override():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_override
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex}@example.com"


def _make_user(db_session, role: UserRole, name: str) -> User:
    user = User(
        email=_unique_email(),
        name=name,
        role=role,
        password_hash=hash_password("secret123"),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def customer(db_session):
    return _make_user(db_session, UserRole.user, "Test Customer")


@pytest.fixture()
def other_customer(db_session):
    return _make_user(db_session, UserRole.user, "Other Customer")


@pytest.fixture()
def provider_user(db_session):
    return _make_user(db_session, UserRole.provider, "Test Provider")


@pytest.fixture()
def admin_user(db_session):
    return _make_user(db_session, UserRole.admin, "Test Admin")


@pytest.fixture()
def category(db_session):
    category = ServiceCategory(name=f"Plumbing {uuid.uuid4().hex[:6]}", slug=f"plumbing-{uuid.uuid4().hex[:6]}")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


def _make_provider(db_session, user: User, category: ServiceCategory, **overrides) -> ServiceProvider:
    data = {
        "user_id": user.id,
        "category_id": category.id,
        "name": f"{user.name} Services",
        "email": user.email,
        "phone": "+15550001111",
        "location": "Lagos",
        "country": "Nigeria",
        "price": 50,
        "approval_status": ApprovalStatus.approved,
    }
    data.update(overrides)
    provider = ServiceProvider(**data)
    db_session.add(provider)
    db_session.commit()
    db_session.refresh(provider)
    return provider


@pytest.fixture()
def provider(db_session, provider_user, category):
    return _make_provider(db_session, provider_user, category)


@pytest.fixture()
def other_provider(db_session, category):
    user = _make_user(db_session, UserRole.provider, "Second Provider")
    return _make_provider(db_session, user, category)


@pytest.fixture()
def make_appointment(db_session, customer, provider):
    """Factory for appointments with explicit timestamps."""

    def _make(
        status: AppointmentStatus = AppointmentStatus.pending,
        created_at: datetime | None = None,
        responded_at: datetime | None = None,
        scheduled_at: datetime | None = None,
        user=None,
        target_provider=None,
    ) -> Appointment:
        created_at = created_at or datetime.now(UTC)
        appointment = Appointment(
            user_id=(user or customer).id,
            provider_id=(target_provider or provider).id,
            scheduled_at=scheduled_at or created_at,
            service_type="Pipe repair",
            status=status,
            created_at=created_at,
            responded_at=responded_at,
            total_amount=50,
        )
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers
