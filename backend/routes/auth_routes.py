"""
Auth Routes - demo identity switch and current user
Identity travels as a bearer token instead of a process-wide "current user"
"""
from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime, timezone, timedelta
from jose import JWTError, jwt
import os

from app.shared.errors import DomainError
from app.users.application.use_cases import SwitchUserUseCase
from app.users.domain.models import User
from app.users.presentation.response_mapper import user_to_response
from database import settings
from routes.dependencies import get_user_repository, to_http_exception

# JWT Settings
SECRET_KEY = os.environ.get('SECRET_KEY', 'your-secret-key-change-in-production')
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get('ACCESS_TOKEN_EXPIRE_MINUTES', 60 * 24))

# Security
security = HTTPBearer()

# Create router
auth_router = APIRouter(prefix="/api", tags=["Auth"])


# ==================== PYDANTIC MODELS ====================

class SwitchUserRequest(BaseModel):
    user_id: Optional[str] = None
    email: Optional[EmailStr] = None


# ==================== HELPER FUNCTIONS ====================

def create_access_token(data: dict) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    repository=Depends(get_user_repository),
) -> User:
    """Resolve the acting user from the bearer token"""
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid access token")

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid access token")

    user = await repository.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="This account has been deactivated")

    return user


# ==================== AUTH ROUTES ====================

@auth_router.post("/auth/switch-user")
async def switch_user(
    switch_data: SwitchUserRequest,
    repository=Depends(get_user_repository),
):
    """Act as another user - demo mode only"""
    if not settings.demo_mode:
        raise HTTPException(status_code=403, detail="Switching users is disabled")

    use_case = SwitchUserUseCase(repository)
    try:
        user = await use_case.execute(user_id=switch_data.user_id, email=switch_data.email)
    except DomainError as exc:
        raise to_http_exception(exc)

    return {
        "access_token": create_access_token({"sub": user.id}),
        "token_type": "bearer",
        "user": user_to_response(user),
    }


@auth_router.get("/auth/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the current user"""
    return user_to_response(current_user)
