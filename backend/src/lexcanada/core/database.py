"""
Database engine and session management for LexCanada.

PostgreSQL in deployment, SQLite for tests and local experiments.
"""

import logging
from typing import Generator
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.exc import SQLAlchemyError
from contextlib import contextmanager

from lexcanada.core.config import get_config

config = get_config()
logger = logging.getLogger(__name__)


def _build_engine():
    url = config.get_database_url()
    if config.database.is_sqlite:
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=config.application.debug,
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=config.database.db_pool_size,
        max_overflow=config.database.db_max_overflow,
        pool_timeout=config.database.db_pool_timeout,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,   # Recycle connections every hour
        echo=config.application.debug,
        echo_pool=config.application.debug,
    )


engine = _build_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session with proper error handling and cleanup.

    Yields:
        Database session

    Raises:
        SQLAlchemyError: If database connection fails
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_transaction():
    """
    Get database session with transaction management.

    Commits on success, rolls back on any error.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database transaction error: {e}")
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"Unexpected error in database transaction: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    """Create all database tables."""
    try:
        # Importing the package registers every model on Base.metadata
        from lexcanada.models import Base
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise


def drop_tables():
    from lexcanada.models import Base
    Base.metadata.drop_all(bind=engine)


def check_database_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        logger.info("Database connection check successful")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}")
        return False


@event.listens_for(engine, "connect")
def set_connection_pragmas(dbapi_connection, connection_record):
    """Per-connection settings for the active dialect."""
    if engine.dialect.name == "sqlite":
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    elif engine.dialect.name == "postgresql":
        with dbapi_connection.cursor() as cursor:
            cursor.execute("SET statement_timeout = '300s'")
            cursor.execute("SET idle_in_transaction_session_timeout = '600s'")


@event.listens_for(engine, "before_cursor_execute")
def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log SQL queries in debug mode."""
    if config.application.debug:
        logger.debug(f"SQL Query: {statement}")


def initialize_database():
    """Initialize database connection and create tables if needed."""
    if not check_database_connection():
        raise RuntimeError("Database connection failed")

    create_tables()
    logger.info("Database initialized successfully")
