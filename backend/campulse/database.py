"""
Database configuration and session management
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from .config import get_settings
from .models.base import Base
# Import all models to ensure they're registered with SQLAlchemy
from .models import transaction, profile, product, cart  # noqa: F401

settings = get_settings()


def build_engine(database_url: str, echo: bool = False):
    """Create an engine; SQLite needs cross-thread access for FastAPI's threadpool"""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=300,
    )


engine = build_engine(settings.database_url, echo=(settings.log_verbosity == "full"))

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Create any missing tables"""
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """
    Database dependency for FastAPI routes
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
