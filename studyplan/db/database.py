"""
Database Connection & Session Management
-----------------------------------------
SQLAlchemy engine, session factory and declarative base for the document
store.

IMPORTANT CONCEPTS:
1. SessionLocal sessions track changes until commit()
2. Always close sessions when done
3. Base.metadata knows about every table (see db/models.py)

SQLite is the default backend. Pool sizing only applies to server databases;
SQLite connections are shared across FastAPI worker threads.
"""

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from studyplan.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# DATABASE ENGINE
# =============================================================================

def make_engine(url: str) -> Engine:
    """
    Create an engine with options suited to the backend.

    EXAMPLE:
    make_engine("sqlite://")  ->  one shared in-memory database
    """
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Every session must see the same in-memory database
            options["poolclass"] = StaticPool
        return create_engine(url, echo=False, **options)

    return create_engine(
        url,
        pool_pre_ping=True,
        echo=False,
        pool_size=5,
        max_overflow=10,
    )


engine = make_engine(settings.DATABASE_URL)

# =============================================================================
# SESSION FACTORY
# =============================================================================

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# =============================================================================
# BASE CLASS FOR MODELS
# =============================================================================

Base = declarative_base()


# =============================================================================
# DATABASE INITIALIZATION
# =============================================================================
def init_db(bind: Engine = None):
    """Create all tables that do not exist yet"""
    # Registers the tables on Base.metadata
    from studyplan.db import models  # noqa: F401

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created")


def drop_db(bind: Engine = None):
    """
    Drop all tables.

    WARNING: This deletes every stored plan and preference blob.
    """
    logger.warning("Dropping all database tables...")
    Base.metadata.drop_all(bind=bind or engine)
    logger.info("Database tables dropped")


# =============================================================================
# DATABASE HEALTH CHECK
# =============================================================================
def check_db_connection() -> bool:
    """
    Test if database connection is working.

    RETURNS:
    True if connection successful, False otherwise
    """
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
    finally:
        db.close()
