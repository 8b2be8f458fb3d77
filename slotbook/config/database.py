"""Database configuration and connection setup"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from slotbook.config.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(database_url: str, **overrides):
    """Create an engine, with connection pooling for server databases"""
    options = {"pool_pre_ping": True, "echo": False}

    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    options.update(overrides)
    return create_engine(database_url, **options)


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """Create all booking tables that do not exist yet"""
    from slotbook.models import Base

    Base.metadata.create_all(bind=bind or engine)
    logger.info("✅ Database tables created successfully")


if __name__ == "__main__":
    create_tables()
