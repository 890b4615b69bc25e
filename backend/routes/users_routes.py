"""
User Directory Routes - admin managed users
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from typing import Optional

from app.shared.errors import DomainError
from app.users.application.use_cases import (
    CreateUserCommand,
    CreateUserUseCase,
    DeactivateUserUseCase,
    ListUsersUseCase,
    UpdateUserCommand,
    UpdateUserUseCase,
)
from app.users.domain.models import User, UserRole, UserStatus
from app.users.presentation.response_mapper import user_to_response
from routes.auth_routes import get_current_user
from routes.dependencies import get_user_repository, new_id, to_http_exception, utcnow

# Create router
users_router = APIRouter(prefix="/api", tags=["Users"])


# ==================== PYDANTIC MODELS ====================

class UserCreate(BaseModel):
    name: str
    email: EmailStr
    department: str
    position: str
    role: UserRole = UserRole.EMPLOYEE
    status: UserStatus = UserStatus.ACTIVE


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


# ==================== USER ROUTES ====================

@users_router.get("/users")
async def get_users(
    current_user: User = Depends(get_current_user),
    repository=Depends(get_user_repository),
):
    """List users in creation order"""
    users = await ListUsersUseCase(repository).execute()
    return [user_to_response(user) for user in users]


@users_router.post("/users")
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_user_repository),
):
    """Create a user - admin only"""
    use_case = CreateUserUseCase(repository, id_generator=new_id, clock=utcnow)
    command = CreateUserCommand(
        name=user_data.name,
        email=user_data.email,
        department=user_data.department,
        position=user_data.position,
        role=user_data.role,
        status=user_data.status,
    )
    try:
        user = await use_case.execute(command, current_user)
    except DomainError as exc:
        raise to_http_exception(exc)

    return user_to_response(user)


@users_router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_user_repository),
):
    """Update a user - admin only, omitted fields are kept"""
    command = UpdateUserCommand(**user_data.model_dump(exclude_unset=True))
    try:
        user = await UpdateUserUseCase(repository).execute(user_id, command, current_user)
    except DomainError as exc:
        raise to_http_exception(exc)

    return user_to_response(user)


@users_router.post("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    repository=Depends(get_user_repository),
):
    """Deactivate a user - admin only"""
    try:
        user = await DeactivateUserUseCase(repository).execute(user_id, current_user)
    except DomainError as exc:
        raise to_http_exception(exc)

    return user_to_response(user)
