"""
Shared route dependencies - storage selection, repositories and error mapping
"""
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
import uuid

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.purchase_requests.infrastructure.memory_repository import (
    InMemoryPurchaseRequestRepository,
)
from app.purchase_requests.infrastructure.sqlalchemy_repository import (
    SqlAlchemyPurchaseRequestRepository,
)
from app.shared.errors import (
    ConflictError,
    DomainError,
    InvalidTransition,
    NoCurrentUserError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from app.shared.memory_store import InMemoryStore
from app.users.infrastructure.memory_repository import InMemoryUserRepository
from app.users.infrastructure.sqlalchemy_repository import SqlAlchemyUserRepository
from database import get_postgres_session, settings

# Process-wide state for the in-memory backend
memory_store = InMemoryStore()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_memory_store() -> InMemoryStore:
    return memory_store


async def get_session() -> AsyncGenerator[Optional[AsyncSession], None]:
    """Yield a database session, or None when running on the in-memory backend."""
    if not settings.uses_database:
        yield None
        return
    async for session in get_postgres_session():
        yield session


def get_user_repository(
    session: Optional[AsyncSession] = Depends(get_session),
    store: InMemoryStore = Depends(get_memory_store),
):
    if session is None:
        return InMemoryUserRepository(store)
    return SqlAlchemyUserRepository(session)


def get_pr_repository(
    session: Optional[AsyncSession] = Depends(get_session),
    store: InMemoryStore = Depends(get_memory_store),
):
    if session is None:
        return InMemoryPurchaseRequestRepository(store)
    return SqlAlchemyPurchaseRequestRepository(session)


def to_http_exception(exc: DomainError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, NoCurrentUserError):
        return HTTPException(status_code=401, detail=exc.message)
    if isinstance(exc, PermissionDenied):
        return HTTPException(status_code=403, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, (InvalidTransition, ConflictError)):
        return HTTPException(status_code=409, detail=exc.message)
    return HTTPException(status_code=400, detail=exc.message)
