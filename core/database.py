"""
Engine, sessions and FastAPI session dependencies.

Postgres is the production store. DATABASE_URL may point anywhere
SQLAlchemy understands; an in-memory sqlite:// URL is used by the tests.
"""
import logging
import time
from typing import Iterator

from fastapi import HTTPException
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from core.config import settings

logger = logging.getLogger(__name__)

CONNECT_ATTEMPTS = 3
RETRY_BASE_DELAY = 0.1  # seconds, doubled per attempt


def build_database_url() -> str:
    """DATABASE_URL when set, otherwise a Postgres URL from the POSTGRES_* parts."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    return (
        f"postgresql://{settings.POSTGRES_USER}:{settings.POSTGRES_PASSWORD}"
        f"@{settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}"
    )


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection keeps an in-memory database alive across sessions
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


DATABASE_URL = build_database_url()

engine = create_engine(DATABASE_URL, echo=settings.DEBUG, **_engine_options(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


@event.listens_for(engine, "checkout")
def _on_checkout(dbapi_conn, connection_record, connection_proxy):
    logger.debug("Connection checked out from pool")


@event.listens_for(engine, "checkin")
def _on_checkin(dbapi_conn, connection_record):
    logger.debug("Connection returned to pool")


def _open_verified_session() -> Session:
    """Open a session and run SELECT 1, retrying with exponential backoff."""
    for attempt in range(1, CONNECT_ATTEMPTS + 1):
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            return db
        except OperationalError as e:
            db.close()
            if attempt == CONNECT_ATTEMPTS:
                logger.error(f"Database unreachable after {CONNECT_ATTEMPTS} attempts: {e}")
                raise
            logger.warning(f"Database connection attempt {attempt} failed, retrying")
            time.sleep(RETRY_BASE_DELAY * 2 ** (attempt - 1))


def get_db() -> Iterator[Session]:
    """
    Request-scoped session.

    Commits when the handler returns normally and rolls back when it raises.
    HTTP errors raised by handlers are not logged as database failures.
    """
    db = _open_verified_session()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        if not isinstance(e, HTTPException):
            logger.error(f"Rolled back database transaction: {e}")
        raise
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """
    The session factory itself, for handlers that open sessions on their own.

    POST /api/bmi uses this so that an unreachable database degrades to an
    unsaved result instead of failing the request.
    """
    return SessionLocal


def get_db_sync() -> Session:
    """Plain session for Celery tasks and scripts; the caller commits and closes."""
    return SessionLocal()


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True
