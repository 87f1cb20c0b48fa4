# pyright: reportMissingTypeStubs=false
"""
Database configuration and session management.

This module sets up SQLAlchemy database connection, session management,
and provides dependency injection for database sessions in FastAPI routes.
"""

import logging
from typing import Generator

from fastapi import HTTPException
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from dental_booking.core.config import DATABASE_URL
from dental_booking.core.constants import DB_POOL_RECYCLE_SECONDS

logger = logging.getLogger(__name__)

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,  # Verify connections before use
    pool_recycle=DB_POOL_RECYCLE_SECONDS,
    echo=False,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Don't expire objects after commit
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Set created_at and updated_at on insert using clinic-local time."""
    # Import here to avoid circular import
    from dental_booking.utils.datetime_utils import clinic_now
    now = clinic_now()
    if hasattr(mapper, "columns") and "created_at" in mapper.columns:  # type: ignore
        if getattr(target, "created_at", None) is None:
            setattr(target, "created_at", now)
    if hasattr(mapper, "columns") and "updated_at" in mapper.columns:  # type: ignore
        if getattr(target, "updated_at", None) is None:
            setattr(target, "updated_at", now)


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    """Set updated_at on update using clinic-local time."""
    from dental_booking.utils.datetime_utils import clinic_now
    if hasattr(mapper, "columns") and "updated_at" in mapper.columns:  # type: ignore
        setattr(target, "updated_at", clinic_now())


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency to provide database sessions.

    Yields a database session that is automatically closed after the request.
    Handles cleanup even if an exception occurs during request processing.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.exception(f"Database error: {e}")
        db.rollback()
        raise
    except HTTPException:
        # Don't log HTTPExceptions as errors - they're expected business logic
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()
