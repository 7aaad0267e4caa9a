"""
SQLAlchemy engine and session factory.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import settings

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    pool_pre_ping=not _is_sqlite,  # health-check connections for PostgreSQL
)

# Background analysis jobs and request handlers each open their own session.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Create all tables for the registered models."""
    from models import notification, submission, user, workflow_stage  # noqa: F401
    from db.base import Base

    Base.metadata.create_all(bind=engine)
