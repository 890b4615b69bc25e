from typing import Optional, Protocol, Sequence

from app.users.domain.models import User


class UserRepository(Protocol):
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    async def list_users(self) -> Sequence[User]:
        ...

    async def add_user(self, user: User) -> None:
        ...

    async def update_user(self, user: User) -> None:
        ...

    async def commit(self) -> None:
        ...
