"""
MedRep Database Module

Read-only access to the document metadata store:
- SQLAlchemy models
- Engine, session factory and health check
"""

from src.db.models import Base, MedicalDocument
from src.db.postgres import (
    check_database_health,
    close_db,
    get_async_session_maker,
    get_engine,
    init_db,
    read_session,
)

__all__ = [
    # Models
    "Base",
    "MedicalDocument",
    # Functions
    "get_async_session_maker",
    "get_engine",
    "read_session",
    "init_db",
    "close_db",
    "check_database_health",
]
