"""Database base configuration (project selections only)"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings


def make_engine(database_url: str) -> Engine:
    """Engine for `database_url`; in-memory SQLite shares one connection."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None):
    """Create the selection tables if missing"""
    # Ensure all models are imported so SQLAlchemy metadata is populated.
    import app.models  # noqa: F401  (import for side-effects)

    Base.metadata.create_all(bind=bind or engine)
