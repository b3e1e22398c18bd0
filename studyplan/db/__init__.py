"""
Database Package
----------------
Exposes the engine, session factory and the document table.
"""

from studyplan.db.database import (
    Base, engine, SessionLocal, make_engine, init_db, drop_db, check_db_connection
)
from studyplan.db.models import StoredDocument

__all__ = [
    # Database setup
    "Base",
    "engine",
    "SessionLocal",
    "make_engine",
    "init_db",
    "drop_db",
    "check_db_connection",

    # Models
    "StoredDocument",
]
