# valet_app/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL in production and SQLite locally. All models
are auto-imported here so create_tables() creates every table in one call.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from valet_app.config import settings
from valet_app.errors import Unavailable
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    """Connection options per backend; both enforce the per-call timeout."""
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False, "timeout": settings.DB_TIMEOUT_SECONDS},
        }
    return {
        "pool_pre_ping": True,       # Auto-reconnect if DB connection drops
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": settings.DB_TIMEOUT_SECONDS,
        "connect_args": {
            "connect_timeout": settings.DB_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={settings.DB_TIMEOUT_SECONDS * 1000}",
        },
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,                  # Set True to log all SQL queries (debug only)
    **_engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def storage_errors(db, action: str):
    """
    Roll back and re-raise any storage failure inside the block as Unavailable.
    `action` completes the sentence "Failed to ...".
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[DB] Failed to {action}: {e}")
        raise Unavailable(f"Failed to {action}") from e


def create_tables():
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from valet_app.models.user import User                        # noqa
    from valet_app.models.vehicle import Vehicle                  # noqa
    from valet_app.models.otp_challenge import OTPChallenge       # noqa
    from valet_app.models.parking_session import ParkingSession   # noqa

    Base.metadata.create_all(bind=engine)
