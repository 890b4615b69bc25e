import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from app.shared.errors import NotFoundError, PermissionDenied, ValidationError
from app.users.application.ports import UserRepository
from app.users.domain.models import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateUserCommand:
    name: str
    email: str
    department: str
    position: str
    role: UserRole = UserRole.EMPLOYEE
    status: UserStatus = UserStatus.ACTIVE


@dataclass(frozen=True)
class UpdateUserCommand:
    name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


IdGenerator = Callable[[], str]
Clock = Callable[[], datetime]


def _require_admin(current_user: Optional[User], action: str) -> None:
    if current_user is None or current_user.role != UserRole.ADMIN:
        raise PermissionDenied(f"Only an admin can {action}")


def _require_text(field_name: str, value: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


class CreateUserUseCase:
    def __init__(
        self,
        repository: UserRepository,
        id_generator: IdGenerator,
        clock: Clock,
    ) -> None:
        self._repository = repository
        self._id_generator = id_generator
        self._clock = clock

    async def execute(
        self,
        command: CreateUserCommand,
        current_user: Optional[User],
        *,
        bootstrap: bool = False,
    ) -> User:
        # Seeding runs before any identity exists.
        if not bootstrap:
            _require_admin(current_user, "create users")

        name = _require_text("Name", command.name)
        email = _require_text("Email", command.email).lower()
        department = _require_text("Department", command.department)
        position = _require_text("Position", command.position)

        if await self._repository.get_user_by_email(email) is not None:
            raise ValidationError("Email is already registered")

        user = User(
            id=self._id_generator(),
            name=name,
            email=email,
            department=department,
            position=position,
            role=command.role,
            status=command.status,
            created_at=self._clock(),
        )
        await self._repository.add_user(user)
        await self._repository.commit()

        logger.info("User created: %s (%s, %s)", user.name, user.role.value, user.department)
        return user


class UpdateUserUseCase:
    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    async def execute(
        self,
        user_id: str,
        command: UpdateUserCommand,
        current_user: Optional[User],
    ) -> User:
        _require_admin(current_user, "edit users")

        user = await self._repository.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        changes = {}
        for field_name in ("name", "department", "position"):
            value = getattr(command, field_name)
            if value is not None:
                changes[field_name] = _require_text(field_name.capitalize(), value)
        if command.email is not None:
            email = _require_text("Email", command.email).lower()
            if email != user.email:
                existing = await self._repository.get_user_by_email(email)
                if existing is not None and existing.id != user.id:
                    raise ValidationError("Email is already registered")
            changes["email"] = email
        if command.role is not None:
            changes["role"] = command.role
        if command.status is not None:
            changes["status"] = command.status

        updated = replace(user, **changes)
        await self._repository.update_user(updated)
        await self._repository.commit()

        logger.info("User %s updated by %s: %s", user.id, current_user.name, sorted(changes))
        return updated


class DeactivateUserUseCase:
    """Users are never deleted; deactivation only flips the status."""

    def __init__(self, repository: UserRepository) -> None:
        self._update = UpdateUserUseCase(repository)

    async def execute(self, user_id: str, current_user: Optional[User]) -> User:
        return await self._update.execute(
            user_id,
            UpdateUserCommand(status=UserStatus.INACTIVE),
            current_user,
        )


class ListUsersUseCase:
    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    async def execute(self) -> Sequence[User]:
        return await self._repository.list_users()


class SwitchUserUseCase:
    """Resolve the identity a demo client wants to act as."""

    def __init__(self, repository: UserRepository) -> None:
        self._repository = repository

    async def execute(self, user_id: Optional[str] = None, email: Optional[str] = None) -> User:
        if user_id:
            user = await self._repository.get_user(user_id)
        elif email:
            user = await self._repository.get_user_by_email(email)
        else:
            raise ValidationError("A user id or email is required")
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise PermissionDenied("This account has been deactivated")

        logger.info("Current user set to: %s %s", user.name, user.role.value)
        return user
