from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from historybox.core.config import settings


def _connect_args(url: str) -> dict:
    # connect_timeout is a libpq option; other drivers reject it
    if url.startswith("postgresql"):
        return {"connect_timeout": settings.db_connect_timeout}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_recycle=settings.db_pool_recycle_seconds,
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    """One session per request; uncommitted work is rolled back when the handler raises."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
