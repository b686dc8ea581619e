from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from marketplace.config import settings


class Base(DeclarativeBase):
    pass


_engine = None


def get_engine():
    global _engine
    if _engine is None:
        if settings.database_url.startswith("sqlite"):
            _engine = create_engine(settings.database_url, connect_args={"check_same_thread": False})
        else:
            _engine = create_engine(
                settings.database_url,
                pool_pre_ping=True,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_recycle=settings.db_pool_recycle,
            )
    return _engine


SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)


def get_db():
    """Database session dependency for FastAPI.

    Yields a session and closes it once the request is done.

    Example:
        @router.get("/providers")
        def list_providers(db: Session = Depends(get_db)):
            return db.query(ServiceProvider).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
