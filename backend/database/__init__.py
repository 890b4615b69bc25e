"""
Database package for PostgreSQL integration
"""
from .config import settings
from .connection import (
    Base,
    get_engine,
    get_session_maker,
    init_postgres_db,
    get_postgres_session,
    close_postgres_db
)
from .models import (
    User,
    PurchaseRequest,
    PRItem,
    Approval,
    AuditLog,
    Notification
)

__all__ = [
    # Config
    "settings",
    # Connection
    "Base",
    "get_engine",
    "get_session_maker",
    "init_postgres_db",
    "get_postgres_session",
    "close_postgres_db",
    # Models
    "User",
    "PurchaseRequest",
    "PRItem",
    "Approval",
    "AuditLog",
    "Notification"
]
