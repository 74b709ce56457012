"""
Database engine and session management.

SQLAlchemy with PostgreSQL in deployment and SQLite for local use. The
session factory backs the get_db() dependency used by every route.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from smartschool.config import get_settings

DATABASE_URL = get_settings().database_url

# SQLite does not accept pool_size, max_overflow or pool_pre_ping
engine_kwargs = {"echo": False}

if DATABASE_URL.startswith("postgresql"):
    engine_kwargs.update({
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
    })
elif DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, **engine_kwargs)

if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for the ORM models."""
    pass


def get_db():
    """
    FastAPI dependency yielding one session per request.

    The session is always closed, returning its connection to the pool even
    when the handler raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Create all tables directly (SQLite and tests).
    PostgreSQL deployments run the Alembic migrations instead.
    """
    Base.metadata.create_all(bind=bind or engine)
