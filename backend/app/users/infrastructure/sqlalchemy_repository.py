from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.users.application.ports import UserRepository
from app.users.domain.models import User, UserRole, UserStatus
from database import User as UserModel


def to_domain_user(row: UserModel) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        department=row.department,
        position=row.position,
        role=UserRole(row.role),
        status=UserStatus(row.status),
        created_at=row.created_at,
    )


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user(self, user_id: str) -> Optional[User]:
        result = await self._session.execute(select(UserModel).where(UserModel.id == user_id))
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return to_domain_user(row)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(
            select(UserModel).where(func.lower(UserModel.email) == email.lower())
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return to_domain_user(row)

    async def list_users(self) -> Sequence[User]:
        result = await self._session.execute(
            select(UserModel).order_by(UserModel.created_at, UserModel.id)
        )
        return [to_domain_user(row) for row in result.scalars().all()]

    async def add_user(self, user: User) -> None:
        self._session.add(
            UserModel(
                id=user.id,
                name=user.name,
                email=user.email,
                department=user.department,
                position=user.position,
                role=user.role.value,
                status=user.status.value,
                created_at=user.created_at,
            )
        )

    async def update_user(self, user: User) -> None:
        row = await self._session.get(UserModel, user.id)
        if row is None:
            return
        row.name = user.name
        row.email = user.email
        row.department = user.department
        row.position = user.position
        row.role = user.role.value
        row.status = user.status.value

    async def commit(self) -> None:
        await self._session.commit()
